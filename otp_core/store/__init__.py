"""
Shared Ephemeral Store
======================
TTL-capable key-value stores backing all OTP and throttle state.
"""

from .base import EphemeralStore
from .in_memory import InMemoryStore
from .redis_store import RedisStore

__all__ = [
    "EphemeralStore",
    "InMemoryStore",
    "RedisStore",
]
