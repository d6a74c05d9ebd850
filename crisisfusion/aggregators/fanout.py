"""Concurrent fan-out over independent feed providers.

Each round gets its own pool with one worker per provider, so every provider
starts immediately and concurrent rounds never queue behind each other. The
round waits at most ``timeout`` seconds. Providers that raise or are still
running at the deadline are logged and excluded. Results are merged in
provider order, not completion order, so output is deterministic for a given
set of answers.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, List, Sequence

logger = logging.getLogger(__name__)


def fan_out(
    providers: Sequence[Any],
    keywords: Sequence[str],
    timeout: float,
    label: str,
) -> List[Any]:
    """Call ``provider.search(keywords)`` on every provider concurrently.

    Args:
        providers: Adapters exposing ``name`` and ``search(keywords) -> list``.
        keywords: Search keywords passed to every provider.
        timeout: Wall-clock budget for the whole round in seconds.
        label: Aggregator name used in log messages.

    Returns:
        Concatenation of every successful provider's items.
    """
    if not providers:
        return []

    executor = ThreadPoolExecutor(max_workers=len(providers), thread_name_prefix=f"{label}-fanout")
    try:
        future_map = {executor.submit(p.search, list(keywords)): p for p in providers}
        done, not_done = wait(future_map, timeout=timeout)
    finally:
        # Stragglers keep running in the background; their results are dropped.
        executor.shutdown(wait=False, cancel_futures=True)

    for future in not_done:
        logger.warning("%s: provider %s timed out after %ss", label, future_map[future].name, timeout)

    merged: List[Any] = []
    for future, provider in future_map.items():
        if future not in done:
            continue
        try:
            items = future.result()
        except Exception as exc:
            logger.warning("%s: provider %s failed: %s", label, provider.name, exc)
            continue
        logger.debug("%s: provider %s returned %d items", label, provider.name, len(items or []))
        merged.extend(items or [])
    return merged
