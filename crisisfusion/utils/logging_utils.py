"""Logging setup for CrisisFusion.

``configure_logging`` applies ``config/logging.yaml`` through dictConfig.
Per-disaster work logs through ``get_disaster_logger`` so every line carries
the disaster id it belongs to.
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any, MutableMapping, Optional

import yaml

ROOT_LOGGER_NAME = "crisisfusion"
DEFAULT_LOGGING_YAML = Path(__file__).resolve().parents[2] / "config" / "logging.yaml"
FALLBACK_FORMAT = "%(asctime)s %(levelname)-8s %(name)s | %(message)s"


def _read_logging_yaml(path: Path) -> Optional[dict]:
    if not path.is_file():
        return None
    with path.open(encoding="utf-8") as fh:
        loaded = yaml.safe_load(fh)
    return loaded if isinstance(loaded, dict) else None


def _override(cfg: dict, level: Optional[str], log_file: Optional[str]) -> dict:
    if log_file:
        for handler in cfg.get("handlers", {}).values():
            if handler.get("class") == "logging.FileHandler":
                handler["filename"] = log_file
    if level:
        for name, logger_cfg in cfg.get("loggers", {}).items():
            if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
                logger_cfg["level"] = level.upper()
    return cfg


def configure_logging(
    config_path: Optional[str] = None,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """Install the logging configuration for a CLI run or service process.

    ``log_level`` overrides the level of the ``crisisfusion`` logger tree and
    ``log_file`` redirects every FileHandler. Without a readable YAML file a
    plain stderr configuration is installed instead.
    """
    path = Path(config_path) if config_path else DEFAULT_LOGGING_YAML
    cfg = _read_logging_yaml(path)

    if cfg is None:
        level_name = (log_level or "INFO").upper()
        logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=FALLBACK_FORMAT)
        logging.getLogger(ROOT_LOGGER_NAME).debug("No logging config at %s; using basicConfig", path)
        return

    logging.config.dictConfig(_override(cfg, log_level, log_file))


def get_logger(name: str) -> logging.Logger:
    """Return the ``crisisfusion.<name>`` logger (names already rooted are kept)."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class DisasterContextAdapter(logging.LoggerAdapter):
    """Tags messages with ``[disaster=<id>]``.

    >>> log = get_disaster_logger("coordinator", "d-42")
    >>> log.info("Geocoded location")   # -> "[disaster=d-42] Geocoded location"
    """

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        return f"[disaster={self.extra.get('disaster_id', 'unknown')}] {msg}", kwargs


def get_disaster_logger(name: str, disaster_id: str) -> DisasterContextAdapter:
    return DisasterContextAdapter(get_logger(name), {"disaster_id": disaster_id})
