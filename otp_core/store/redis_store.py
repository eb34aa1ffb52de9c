"""
Redis Store
===========
Redis-backed ephemeral store using ``redis.asyncio``.

The process entry point owns the lifecycle:

    store = RedisStore(StoreConfig())
    await store.connect()
    ...
    await store.close()
"""

from contextlib import contextmanager
from typing import Iterator, Optional
import structlog
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ..config import StoreConfig
from ..errors import StoreUnavailableError
from .base import EphemeralStore

logger = structlog.get_logger(__name__)


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as e:
        raise StoreUnavailableError(f"Redis {operation} failed: {e}", cause=e) from e


class RedisStore(EphemeralStore):
    """
    Shared store over Redis.

    ``INCR`` is atomic server-side, which is what the throttle counters rely
    on. Connection and timeout errors surface as ``StoreUnavailableError``.
    """

    name = "redis"

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        client: Optional[Redis] = None,
    ):
        """
        Args:
            config: Connection settings (ignored when ``client`` is given)
            client: Pre-built async Redis client
        """
        self.config = config or StoreConfig()
        self._client: Optional[Redis] = client

    def _build_client(self) -> Redis:
        options = dict(
            decode_responses=True,
            socket_timeout=self.config.socket_timeout,
            socket_connect_timeout=self.config.socket_connect_timeout,
            retry_on_timeout=False,
            max_connections=self.config.max_connections,
            health_check_interval=self.config.health_check_interval,
        )
        if self.config.url:
            return Redis.from_url(self.config.url, **options)
        return Redis(
            host=self.config.host,
            port=self.config.port,
            password=self.config.password,
            db=self.config.db,
            ssl=self.config.tls,
            **options,
        )

    @property
    def client(self) -> Redis:
        if self._client is None:
            raise RuntimeError("RedisStore not connected. Call connect() first.")
        return self._client

    async def connect(self) -> None:
        """Create the client and verify it with a ping."""
        if self._client is None:
            self._client = self._build_client()
        try:
            await self.ping()
        except StoreUnavailableError:
            logger.error(
                "Failed to connect to Redis",
                host=self.config.host,
                port=self.config.port,
            )
            raise
        logger.info("Redis connected and healthy", host=self.config.host, port=self.config.port)

    async def health_check(self) -> bool:
        """Ping without raising. False means the store is unreachable."""
        try:
            return await self.ping()
        except StoreUnavailableError as e:
            logger.warning("Redis health check failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close the client and its connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Redis disconnected gracefully")

    async def get(self, key: str) -> Optional[str]:
        with _translate_errors("GET"):
            return await self.client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with _translate_errors("SET"):
            await self.client.set(key, value, ex=ttl_seconds)

    async def incr(self, key: str) -> int:
        with _translate_errors("INCR"):
            return int(await self.client.incr(key))

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        with _translate_errors("EXPIRE"):
            return bool(await self.client.expire(key, ttl_seconds))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        with _translate_errors("DEL"):
            return int(await self.client.delete(*keys))

    async def ttl(self, key: str) -> Optional[int]:
        with _translate_errors("TTL"):
            remaining = await self.client.ttl(key)
        # -2: key absent, -1: key without expiry
        if remaining is None or remaining < 0:
            return None
        return int(remaining)

    async def ping(self) -> bool:
        with _translate_errors("PING"):
            return bool(await self.client.ping())
