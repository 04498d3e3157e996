from __future__ import annotations

from asyncio import Lock
import time
from typing import Any

from .config import SCOREBOARD_CACHE_TTL


class TTLCache:
    """A simple in-memory TTL cache with async-safe access.

    Each key carries a generation that ``invalidate`` and ``clear`` advance.
    A reader that captured the generation before computing a value passes it
    to ``set``; the write is dropped if the key was invalidated meanwhile.
    """

    def __init__(self, ttl_seconds: float = 300.0) -> None:
        self._ttl = ttl_seconds
        self._lock = Lock()
        self._store: dict[Any, tuple[Any, float]] = {}
        self._generations: dict[Any, int] = {}
        self._epoch = 0

    def _generation(self, key: Any) -> tuple[int, int]:
        return self._epoch, self._generations.get(key, 0)

    async def generation(self, key: Any) -> tuple[int, int]:
        async with self._lock:
            return self._generation(key)

    async def get(self, key: Any) -> Any | None:
        now = time.monotonic()
        async with self._lock:
            entry = self._store.get(key)
            if not entry:
                return None
            value, expires_at = entry
            if expires_at <= now:
                self._store.pop(key, None)
                return None
            return value

    async def set(
        self,
        key: Any,
        value: Any,
        ttl_seconds: float | None = None,
        *,
        generation: tuple[int, int] | None = None,
    ) -> bool:
        """Store ``value``; return ``False`` when a stale generation drops it."""

        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        expires_at = time.monotonic() + max(ttl, 0.0)
        async with self._lock:
            if generation is not None and generation != self._generation(key):
                return False
            if ttl <= 0:
                self._store.pop(key, None)
                return False
            self._store[key] = (value, expires_at)
            return True

    async def invalidate(self, key: Any) -> None:
        async with self._lock:
            self._store.pop(key, None)
            self._generations[key] = self._generations.get(key, 0) + 1

    async def clear(self) -> None:
        async with self._lock:
            self._store.clear()
            self._generations.clear()
            self._epoch += 1


scoreboard_cache = TTLCache(ttl_seconds=SCOREBOARD_CACHE_TTL)
