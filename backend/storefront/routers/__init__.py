"""
API routers.
"""
from storefront.routers import attributes, auth, categories, health, users

__all__ = ["attributes", "auth", "categories", "health", "users"]
