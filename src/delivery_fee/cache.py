# src/delivery_fee/cache.py
"""In-process TTL cache with tag-based invalidation.

Entries are computed on demand; concurrent misses for the same key may both
compute and both write. Computations are idempotent, so the last write wins.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterable, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_S = 300  # 5 min


@dataclass
class _Entry:
    expires_at: float
    value: Any
    tags: frozenset


class TTLCache:
    def __init__(self, default_ttl: float = DEFAULT_TTL_S, *, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[Hashable, _Entry] = {}
        self._next_sweep = self._clock() + default_ttl

    def get(self, key: Hashable) -> Tuple[bool, Any]:
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        if entry.expires_at <= self._clock():
            self._entries.pop(key, None)
            return False, None
        return True, entry.value

    def set(self, key: Hashable, value: Any, *, ttl: Optional[float] = None, tags: Iterable[str] = ()) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        now = self._clock()
        if now >= self._next_sweep:
            self._purge_expired(now)
        self._entries[key] = _Entry(now + ttl, value, frozenset(tags))

    def _purge_expired(self, now: float) -> None:
        # At most one full scan per default TTL.
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            del self._entries[k]
        self._next_sweep = now + self.default_ttl
        if expired:
            logger.debug("Purged %d expired cache entries", len(expired))

    async def get_or_compute(
        self,
        key: Hashable,
        compute: Callable[[], Awaitable[T]],
        *,
        ttl: Optional[float] = None,
        tags: Iterable[str] = (),
        cache_if: Optional[Callable[[T], bool]] = None,
    ) -> T:
        hit, value = self.get(key)
        if hit:
            logger.debug("cache hit %s", key)
            return value
        logger.debug("cache miss %s", key)
        value = await compute()
        if cache_if is None or cache_if(value):
            self.set(key, value, ttl=ttl, tags=tags)
        return value

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def invalidate_by_tag(self, tag: str) -> int:
        doomed = [k for k, e in self._entries.items() if tag in e.tags]
        for k in doomed:
            self._entries.pop(k, None)
        logger.info("Invalidated %d cache entries tagged %r", len(doomed), tag)
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Cache cleared")

    def stats(self) -> Dict[str, int]:
        now = self._clock()
        active = sum(1 for e in self._entries.values() if e.expires_at > now)
        return {
            "total_entries": len(self._entries),
            "active_entries": active,
            "expired_entries": len(self._entries) - active,
        }
