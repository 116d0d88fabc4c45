"""
Startup wiring: services, their hook pipelines and the event bus.

Each entity owns one pipeline. Cross-entity hooks (propagator, cascade
anonymizer) receive the repositories they need here, so services never
import each other.
"""
from dataclasses import dataclass

from motor.motor_asyncio import AsyncIOMotorDatabase

from storefront.config import Settings, get_settings
from storefront.events.bus import EventBus
from storefront.hooks.pipeline import HookPipeline, TimestampHooks
from storefront.services.anonymizer import CascadeAnonymizer
from storefront.services.attribute_service import (
    AttributeEventHooks,
    AttributeHooks,
    AttributeService,
)
from storefront.services.auth_service import AuthService
from storefront.services.category_service import CategoryHooks, CategoryService
from storefront.services.history_service import BillService, OrderService
from storefront.services.propagation import AttributePropagator
from storefront.services.user_service import (
    CredentialHooks,
    UserEventHooks,
    UserProfileHooks,
    UserService,
)


@dataclass
class Services:
    """Everything the API and scripts need, built once per process."""
    bus: EventBus
    attributes: AttributeService
    categories: CategoryService
    users: UserService
    orders: OrderService
    bills: BillService
    propagator: AttributePropagator
    anonymizer: CascadeAnonymizer
    auth: AuthService


def build_services(
    db: AsyncIOMotorDatabase,
    bus: EventBus,
    settings: Settings | None = None,
) -> Services:
    """Create every service and register its hooks in order."""
    settings = settings or get_settings()

    categories = CategoryService(db, HookPipeline("category", [
        CategoryHooks(settings.default_lang),
        TimestampHooks(),
    ]))
    orders = OrderService(db, HookPipeline("order", [TimestampHooks()]))
    bills = BillService(db, HookPipeline("bill", [TimestampHooks()]))

    attributes = AttributeService(db)
    propagator = AttributePropagator(attributes, categories)
    attributes.hooks.register(AttributeHooks(settings.default_lang, attributes))
    attributes.hooks.register(TimestampHooks())
    attributes.hooks.register(propagator)
    attributes.hooks.register(AttributeEventHooks(bus))

    users = UserService(db)
    anonymizer = CascadeAnonymizer([bills, orders])
    users.hooks.register(UserProfileHooks(users))
    users.hooks.register(CredentialHooks())
    users.hooks.register(TimestampHooks())
    users.hooks.register(anonymizer)
    users.hooks.register(UserEventHooks(bus))

    return Services(
        bus=bus,
        attributes=attributes,
        categories=categories,
        users=users,
        orders=orders,
        bills=bills,
        propagator=propagator,
        anonymizer=anonymizer,
        auth=AuthService(users),
    )
