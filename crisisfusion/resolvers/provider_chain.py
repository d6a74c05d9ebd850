"""Ordered fallback execution across unreliable providers.

A ProviderChain calls its providers one at a time, in order. A provider
fails when it raises, exceeds the per-provider timeout, returns None or an
empty value, or returns a value the validator rejects. The first success
wins and later providers are never called. When every provider fails the
chain returns the substitute value, tagged with the substitute tag.

Provider failures never propagate out of resolve().
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

FAILED_SOURCE = "failed"

Provider = Tuple[str, Callable[[Any], Any]]


@dataclass
class ChainResult(Generic[T]):
    """Value produced by a chain and the name of the provider that produced it."""

    value: Optional[T]
    source: str

    @property
    def failed(self) -> bool:
        return self.source == FAILED_SOURCE


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, dict, set)):
        return len(value) == 0
    return False


class ProviderChain(Generic[T]):
    """Sequential fallback executor terminating in a substitute.

    Args:
        providers: Ordered (name, callable) pairs. Each callable takes the
            chain input and returns a value or raises.
        substitute: Always-succeeding fallback taking the chain input, or
            None for a chain that reports "failed" when exhausted.
        substitute_tag: Source tag attached to substitute results.
        timeout: Per-provider wall-clock budget in seconds (None = unbounded).
            Each timed call gets its own worker, so the budget starts when the
            provider starts however many resolves run at once. A timed-out
            call is abandoned and may finish in the background.
        validator: Optional predicate; a result it rejects counts as a failure.
        name: Chain name used in log messages.
    """

    def __init__(
        self,
        providers: Sequence[Provider],
        substitute: Optional[Callable[[Any], T]] = None,
        substitute_tag: str = "mock",
        timeout: Optional[float] = None,
        validator: Optional[Callable[[T], bool]] = None,
        name: str = "chain",
    ) -> None:
        self.providers: List[Provider] = list(providers)
        self.substitute = substitute
        self.substitute_tag = substitute_tag
        self.timeout = timeout
        self.validator = validator
        self.name = name

    def _invoke(self, fn: Callable[[Any], Any], value: Any) -> Any:
        if self.timeout is None:
            return fn(value)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{self.name}-provider")
        future = executor.submit(fn, value)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError:
            future.cancel()
            raise
        finally:
            executor.shutdown(wait=False)

    def resolve(self, value: Any) -> ChainResult[T]:
        """Run the chain for one input.

        Returns:
            ChainResult from the first succeeding provider, else the
            substitute result, else ChainResult(None, "failed").
        """
        for provider_name, fn in self.providers:
            try:
                result = self._invoke(fn, value)
            except FutureTimeoutError:
                logger.warning(
                    "%s: provider %s timed out after %ss", self.name, provider_name, self.timeout
                )
                continue
            except Exception as exc:
                logger.warning("%s: provider %s failed: %s", self.name, provider_name, exc)
                continue

            if _is_empty(result):
                logger.warning("%s: provider %s returned no result", self.name, provider_name)
                continue

            if self.validator is not None:
                try:
                    valid = self.validator(result)
                except Exception as exc:
                    logger.warning(
                        "%s: validator raised on %s result: %s", self.name, provider_name, exc
                    )
                    valid = False
                if not valid:
                    logger.warning(
                        "%s: provider %s returned an invalid result", self.name, provider_name
                    )
                    continue

            logger.debug("%s: resolved by %s", self.name, provider_name)
            return ChainResult(value=result, source=provider_name)

        if self.substitute is None:
            logger.warning("%s: all %d providers failed", self.name, len(self.providers))
            return ChainResult(value=None, source=FAILED_SOURCE)

        logger.info(
            "%s: all %d providers failed; using %s substitute",
            self.name,
            len(self.providers),
            self.substitute_tag,
        )
        return ChainResult(value=self.substitute(value), source=self.substitute_tag)
