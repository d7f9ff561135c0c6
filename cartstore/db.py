"""
Database Module - Redis Client

Provides the async Upstash Redis client used as the cart store and a
ConnectionState that reports store reachability per request.

Carts are stored as one JSON document per cart, keyed by the cart id
itself so existing carts remain readable.
"""

from typing import Any, Optional

from upstash_redis.asyncio import Redis as AsyncRedis

from cartstore.config import Settings
from cartstore.logging import get_logger

logger = get_logger(__name__)


def create_redis(settings: Settings) -> AsyncRedis:
    """
    Create an async Upstash Redis client from settings.

    Raises:
        ValueError: when the REST URL or token is not configured
    """
    if not settings.redis_url or not settings.redis_token:
        raise ValueError("REDIS_REST_URL and REDIS_REST_TOKEN must be set")
    return AsyncRedis(url=settings.redis_url, token=settings.redis_token)


def cart_key(cart_id: str) -> str:
    """Redis key holding the cart document."""
    return cart_id


class ConnectionState:
    """
    Store reachability owned by the engine.

    The state is refreshed by pinging on demand, never flipped by
    background callbacks.
    """

    def __init__(self, redis: Any):
        self._redis = redis
        self.connected: bool = False
        self.last_error: Optional[str] = None

    async def check(self) -> bool:
        """Ping the store and record the outcome."""
        try:
            await self._redis.ping()
        except Exception as e:
            if self.connected or self.last_error is None:
                logger.error("Redis ping failed: %s", e)
            self.connected = False
            self.last_error = str(e)
            return False

        if not self.connected:
            logger.info("Redis READY")
        self.connected = True
        self.last_error = None
        return True
