"""
MongoDB and Redis clients, created lazily and shared by the whole process.
"""
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from redis.asyncio import Redis

from storefront.config import get_settings

_mongo_client: Optional[AsyncIOMotorClient] = None
_redis_client: Optional[Redis] = None


async def get_mongo_client() -> AsyncIOMotorClient:
    """Get or create the MongoDB client. Datetimes come back tz-aware."""
    global _mongo_client
    if _mongo_client is None:
        settings = get_settings()
        _mongo_client = AsyncIOMotorClient(settings.mongo_uri, tz_aware=True)
    return _mongo_client


async def get_redis_client() -> Redis:
    """Get or create the Redis client used by the event stream forwarder."""
    global _redis_client
    if _redis_client is None:
        settings = get_settings()
        _redis_client = Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            decode_responses=True,
        )
    return _redis_client


async def get_database(db_name: Optional[str] = None) -> AsyncIOMotorDatabase:
    """The shop database, or another one on the same client."""
    client = await get_mongo_client()
    return client[db_name or get_settings().db_name]


async def ping_mongo() -> None:
    """Raise if MongoDB does not answer."""
    client = await get_mongo_client()
    await client.admin.command("ping")


async def ping_redis() -> None:
    """Raise if Redis does not answer."""
    redis = await get_redis_client()
    await redis.ping()


async def close_connections() -> None:
    global _mongo_client, _redis_client

    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
