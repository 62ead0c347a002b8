"""
In-memory response cache with per-entry TTL and prefix invalidation.

Expiry is lazy: an entry is dropped when it is read after its TTL has
elapsed. Optionally, an eviction callback is scheduled on the running event
loop to bound growth for entries that are never read again.
"""

import asyncio
import json
import time
from collections.abc import Callable, Iterator
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any

from gitplex.logging import log_cache_event

_MISSING = object()


@dataclass
class CacheEntry:
    data: Any
    timestamp: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


class ResponseCache:
    """Key to ``CacheEntry`` map with lazy expiry."""

    def __init__(
        self,
        default_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        scheduled_eviction: bool = False,
    ) -> None:
        """
        Args:
            default_ttl: TTL in seconds for entries stored without one
            clock: Monotonic time source in seconds
            scheduled_eviction: Schedule deletion of each entry at expiry
                when an event loop is running
        """
        self.default_ttl = default_ttl
        self._clock = clock
        self._scheduled_eviction = scheduled_eviction
        self._entries: dict[str, CacheEntry] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def keys(self) -> Iterator[str]:
        return iter(list(self._entries))

    def get(self, key: str, default: Any = None) -> Any:
        """Cached value for ``key``, or ``default`` when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            log_cache_event("miss", key)
            return default
        if not entry.is_fresh(self._clock()):
            self._remove(key)
            log_cache_event("expire", key)
            return default
        log_cache_event("hit", key)
        return entry.data

    def set(self, key: str, data: Any, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        self._cancel_timer(key)
        self._entries[key] = CacheEntry(data=data, timestamp=self._clock(), ttl=ttl)
        log_cache_event("store", key, f"ttl={ttl}s")
        if self._scheduled_eviction:
            self._schedule_eviction(key, ttl)

    def delete(self, key: str) -> bool:
        if key not in self._entries:
            return False
        self._remove(key)
        return True

    def clear_by_prefix(self, prefix: str) -> int:
        """Remove every key starting with ``prefix``; returns the number removed."""
        matching = [key for key in self._entries if key.startswith(prefix)]
        for key in matching:
            self._remove(key)
        log_cache_event("invalidate", prefix, f"removed={len(matching)}")
        return len(matching)

    def clear(self) -> None:
        for key in list(self._entries):
            self._remove(key)
        log_cache_event("invalidate", "*")

    def _remove(self, key: str) -> None:
        self._entries.pop(key, None)
        self._cancel_timer(key)

    def _cancel_timer(self, key: str) -> None:
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()

    def _schedule_eviction(self, key: str, ttl: float) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._timers[key] = loop.call_later(ttl, self._evict_expired, key)

    def _evict_expired(self, key: str) -> None:
        # set() and _remove() cancel superseded timers
        self._timers.pop(key, None)
        if self._entries.pop(key, None) is not None:
            log_cache_event("expire", key, "scheduled")


def cache_key(*parts: Any) -> str:
    """Join key parts with ``-``; enum parts contribute their value."""
    return "-".join(str(getattr(part, "value", part)) for part in parts)


def options_key(options: Any) -> str:
    """Stable serialization of an options object for use in a cache key."""
    if options is None:
        return "{}"
    if is_dataclass(options):
        options = asdict(options)
    return json.dumps(options, sort_keys=True, default=str)
