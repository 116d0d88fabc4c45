"""
Access to the services built at startup.
"""
from fastapi import Request

from storefront.wiring import Services


def get_services(request: Request) -> Services:
    """Dependency returning the process-wide services."""
    return request.app.state.services
