"""Redis connection management for the session cache."""

from __future__ import annotations

import logging

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class RedisUnavailableError(Exception):
    """Raised when Redis cannot be reached."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class RedisConnection:
    """Manages a pooled async Redis connection."""

    def __init__(
        self,
        url: str = "redis://localhost:6379",
        max_connections: int = 10,
    ) -> None:
        """Initialize Redis connection manager.

        Args:
            url: Redis connection URL
            max_connections: Maximum connections in pool
        """
        self._url = url
        self._max_connections = max_connections
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    async def connect(self) -> None:
        """Establish connection to Redis.

        Raises:
            RedisUnavailableError: If connection fails
        """
        try:
            self._pool = ConnectionPool.from_url(
                self._url,
                max_connections=self._max_connections,
                decode_responses=True,
            )
            self._client = Redis(connection_pool=self._pool)

            # Test connection
            await self._client.ping()
            logger.info("Connected to Redis at %s", self._url)
        except RedisConnectionError as e:
            logger.error("Failed to connect to Redis: %s", e)
            raise RedisUnavailableError(
                f"Failed to connect to Redis: {e}",
                {"url": self._url},
            ) from e
        except RedisError as e:
            logger.error("Redis error during connection: %s", e)
            raise RedisUnavailableError(
                f"Redis error: {e}",
                {"url": self._url},
            ) from e

    async def disconnect(self) -> None:
        """Close Redis connection and pool."""
        if self._client:
            await self._client.aclose()
            self._client = None
        if self._pool:
            await self._pool.disconnect()
            self._pool = None
        logger.info("Disconnected from Redis")

    async def health_check(self) -> bool:
        """Check if Redis connection is healthy."""
        if not self._client:
            return False
        try:
            await self._client.ping()
            return True
        except RedisError as e:
            logger.warning("Redis health check failed: %s", e)
            return False

    @property
    def client(self) -> Redis:
        """Get the Redis client instance.

        Raises:
            RedisUnavailableError: If not connected
        """
        if not self._client:
            raise RedisUnavailableError("Not connected to Redis")
        return self._client

    @property
    def is_connected(self) -> bool:
        """Check if client is connected."""
        return self._client is not None
