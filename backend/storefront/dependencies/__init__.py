"""
FastAPI dependencies.
"""
from storefront.dependencies.services import get_services
from storefront.dependencies.auth import get_current_user

__all__ = ["get_services", "get_current_user"]
