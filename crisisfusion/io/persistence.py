"""On-disk JSON for the record store, cache values and CLI output.

Files are replaced whole: content goes to a sibling ``.tmp`` file first and is
swapped in with ``os.replace``, so readers never observe a half-written
collection.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def _to_jsonable(value: Any) -> Any:
    # Records, coordinates and analysis results are dataclasses.
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if isinstance(value, Path):
        return value.as_posix()
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def dumps(data: Any, indent: Optional[int] = None) -> str:
    """Render ``data`` as JSON text, expanding dataclasses, sets and paths.

    Raises TypeError for anything else json cannot encode.
    """
    return json.dumps(data, indent=indent, ensure_ascii=False, default=_to_jsonable)


def _replace_file(target: Path, text: str) -> None:
    fd, staging = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(staging, target)
    except OSError:
        if os.path.exists(staging):
            os.remove(staging)
        raise


def save_json(data: Any, path: str | Path, indent: int = 2) -> None:
    """Write ``data`` to ``path`` as JSON, replacing any previous file atomically.

    Missing parent directories are created. Serialization errors and I/O
    errors are logged and re-raised; on failure the previous file (if any)
    is left untouched.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    try:
        text = dumps(data, indent=indent)
    except (TypeError, ValueError) as exc:
        logger.error("Cannot encode record data for %s: %s", target, exc)
        raise

    try:
        _replace_file(target, text)
    except OSError as exc:
        logger.error("Could not write %s: %s", target, exc)
        raise

    logger.debug("Wrote %d bytes to %s", len(text), target)


def load_json(path: str | Path) -> Optional[Any]:
    """Read JSON from ``path``.

    A missing, unreadable or malformed file yields None so callers can treat
    it as an empty collection.
    """
    source = Path(path)
    if not source.is_file():
        logger.debug("No JSON file at %s", source)
        return None

    try:
        return json.loads(source.read_text(encoding="utf-8"))
    except (ValueError, OSError) as exc:
        logger.warning("Ignoring unreadable JSON file %s: %s", source, exc)
        return None
