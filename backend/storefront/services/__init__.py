"""
Service layer: document services, hooks and cross-collection consistency.
"""
from storefront.services.anonymizer import CascadeAnonymizer, CascadeReport
from storefront.services.attribute_service import AttributeService
from storefront.services.auth_service import AuthService
from storefront.services.base import DocumentService, WriteResult
from storefront.services.category_service import CategoryService
from storefront.services.history_service import BillService, OrderService
from storefront.services.propagation import AttributePropagator
from storefront.services.user_service import UserService

__all__ = [
    "AttributePropagator",
    "AttributeService",
    "AuthService",
    "BillService",
    "CascadeAnonymizer",
    "CascadeReport",
    "CategoryService",
    "DocumentService",
    "OrderService",
    "UserService",
    "WriteResult",
]
