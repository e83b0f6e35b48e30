"""
Process-local TTL cache for bridge lookups.

Entries are replaced wholesale and never mutated in place, so concurrent
requests on the same event loop can share the cache without locking.
"""

import time
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..core.config import settings

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CacheEntry:
    data: Any
    timestamp: int  # epoch ms when stored
    ttl: int  # ms

    def is_valid(self, now_ms: int) -> bool:
        return now_ms <= self.timestamp + self.ttl


class CacheBackend(ABC):
    """Interface for bridge caches"""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or ``None`` on a miss or an expired entry"""

    @abstractmethod
    def set(self, key: str, data: Any, ttl_ms: Optional[int] = None) -> None:
        """Store ``data`` under ``key``"""

    @abstractmethod
    def sweep(self) -> int:
        """Remove expired entries; returns how many were dropped"""

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry"""

    @abstractmethod
    def stats(self) -> Dict[str, Any]:
        """Size and keys, for diagnostics"""


class InMemoryTTLCache(CacheBackend):
    """Dict-backed cache with lazy expiry and a size-triggered sweep"""

    def __init__(
        self,
        default_ttl_ms: Optional[int] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], int] = _now_ms
    ):
        self.default_ttl_ms = default_ttl_ms if default_ttl_ms is not None else settings.INTEGRATION_CACHE_TTL_SECONDS * 1000
        self.max_entries = max_entries if max_entries is not None else settings.INTEGRATION_CACHE_MAX_ENTRIES
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        if not entry.is_valid(self._clock()):
            del self._entries[key]
            return None

        data = entry.data
        # Callers get their own list; the stored tuple stays untouched
        return list(data) if isinstance(data, tuple) else data

    def set(self, key: str, data: Any, ttl_ms: Optional[int] = None) -> None:
        if isinstance(data, list):
            data = tuple(data)

        self._entries[key] = CacheEntry(
            data=data,
            timestamp=self._clock(),
            ttl=ttl_ms if ttl_ms is not None else self.default_ttl_ms
        )

        if len(self._entries) > self.max_entries:
            self.sweep()

    def sweep(self) -> int:
        """Remove expired entries; returns how many were dropped"""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_valid(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired integration cache entries")
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        keys: List[str] = list(self._entries.keys())
        return {
            "size": len(keys),
            "keys": keys,
            "max_entries": self.max_entries,
            "ttl_seconds": self.default_ttl_ms // 1000,
        }

    def __len__(self) -> int:
        return len(self._entries)
