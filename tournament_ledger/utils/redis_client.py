"""Redis client for distributed locks, event stream and snapshots.

Redis is optional: when ``redis_url`` is not configured the ledger runs
with in-process locks and keeps events and state in memory only.
"""

from redis.asyncio import ConnectionPool, Redis

from ..config import get_settings

redis_pool: ConnectionPool | None = None
redis_client: Redis | None = None


async def init_redis(url: str | None = None) -> Redis | None:
    """Initialize the shared Redis client, or return None if not configured."""
    global redis_pool, redis_client

    settings = get_settings()
    url = url or settings.redis_url
    if not url:
        return None

    redis_pool = ConnectionPool.from_url(
        url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=True,
        encoding="utf-8",
        decode_responses=True,
    )
    redis_client = Redis(connection_pool=redis_pool)

    # Test connection
    await redis_client.ping()
    return redis_client


async def close_redis() -> None:
    """Close Redis connection and pool."""
    global redis_pool, redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
    if redis_pool:
        await redis_pool.disconnect()
        redis_pool = None


def get_redis_client() -> Redis | None:
    """Current shared client, if one was initialized."""
    return redis_client
