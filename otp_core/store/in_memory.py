"""
In-Memory Store
===============
Single-process ephemeral store for development and testing.
"""

import asyncio
import time
from typing import Callable, Dict, Optional, Tuple

from .base import EphemeralStore


class InMemoryStore(EphemeralStore):
    """
    In-memory TTL store.

    For development and testing only; state is not shared between processes.
    Use RedisStore in production.

    Every operation yields to the event loop once before touching state, the
    way a network round-trip would, so concurrent callers interleave between
    operations. Each operation itself runs without suspension and is atomic.
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    async def _round_trip(self) -> None:
        await asyncio.sleep(0)

    def _live(self, key: str) -> Optional[Tuple[str, Optional[float]]]:
        entry = self._data.get(key)
        if entry is None:
            return None
        _, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return entry

    async def get(self, key: str) -> Optional[str]:
        await self._round_trip()
        entry = self._live(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._round_trip()
        self._data[key] = (str(value), self._clock() + ttl_seconds)

    async def incr(self, key: str) -> int:
        await self._round_trip()
        entry = self._live(key)
        if entry is None:
            value, expires_at = 0, None
        else:
            value, expires_at = int(entry[0]), entry[1]
        value += 1
        self._data[key] = (str(value), expires_at)
        return value

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        await self._round_trip()
        entry = self._live(key)
        if entry is None:
            return False
        self._data[key] = (entry[0], self._clock() + ttl_seconds)
        return True

    async def delete(self, *keys: str) -> int:
        await self._round_trip()
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                del self._data[key]
                removed += 1
        return removed

    async def ttl(self, key: str) -> Optional[int]:
        await self._round_trip()
        entry = self._live(key)
        if entry is None or entry[1] is None:
            return None
        return max(0, int(round(entry[1] - self._clock())))

    async def ping(self) -> bool:
        await self._round_trip()
        return True
