"""Cache entry model for CrisisFusion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class CacheEntry:
    """A cached provider resolution.

    ``value`` holds JSON text; ``expires_at`` is epoch seconds. A read past
    ``expires_at`` is treated as absent.
    """

    key: str
    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def to_record(self) -> Dict[str, Any]:
        return {"id": self.key, "value": self.value, "expires_at": self.expires_at}

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "CacheEntry":
        return cls(
            key=record["id"],
            value=record["value"],
            expires_at=float(record["expires_at"]),
        )
