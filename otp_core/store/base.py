"""
Ephemeral Store Interface
=========================
Contract for the shared, TTL-capable key-value store behind all OTP state.
"""

from abc import ABC, abstractmethod
from typing import Optional


class EphemeralStore(ABC):
    """
    Abstract shared key-value store with per-key expiry.

    Every implementation must make ``incr`` atomic across processes; the
    throttle counters depend on it. Transport failures are raised as
    ``StoreUnavailableError``.
    """

    name: str = "base"

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value for ``key``, or None if absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key``, replacing any value and TTL."""

    @abstractmethod
    async def incr(self, key: str) -> int:
        """Atomically increment ``key`` (absent counts as 0) and return the new value."""

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Set the TTL of an existing key. Returns False if the key is absent."""

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""

    @abstractmethod
    async def ttl(self, key: str) -> Optional[int]:
        """Seconds left on ``key``; None if absent or without expiry."""

    @abstractmethod
    async def ping(self) -> bool:
        """Round-trip health probe."""

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None
