"""
Database module - MongoDB and Redis connections and collection names.
"""
from storefront.database.connections import (
    get_mongo_client,
    get_redis_client,
    close_connections,
    get_database,
)
from storefront.database.databases import shop_db

__all__ = [
    "get_mongo_client",
    "get_redis_client",
    "close_connections",
    "get_database",
    "shop_db",
]
