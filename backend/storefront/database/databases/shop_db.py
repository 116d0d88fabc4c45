"""
Shop database layout: catalog attributes and categories, customers, orders
and bills.
"""


class Collections:
    """Collection names in the shop database."""
    ATTRIBUTES = "attributes"
    CATEGORIES = "categories"
    USERS = "users"
    ORDERS = "orders"
    BILLS = "bills"
    METADATA = "_metadata"


# Collections holding documents; _metadata only holds bookkeeping
DATA_COLLECTIONS = [
    Collections.ATTRIBUTES,
    Collections.CATEGORIES,
    Collections.USERS,
    Collections.ORDERS,
    Collections.BILLS,
]
