"""
Database definitions and collection names.
"""
from storefront.database.databases import shop_db

__all__ = ["shop_db"]
