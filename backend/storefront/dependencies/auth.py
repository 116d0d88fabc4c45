"""
Authentication dependencies for route protection.
"""
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Query, status
from jose import JWTError

from storefront.core.security import decode_token
from storefront.dependencies.services import get_services
from storefront.wiring import Services


async def get_current_user(
    token: Annotated[str, Query(description="JWT access token")],
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """
    Dependency to get the current user document from a JWT token.

    Token is passed as query parameter: ?token=xxx

    Raises:
        HTTPException 401: If token is invalid, expired or the user is gone
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(token)
    except JWTError:
        raise credentials_exception

    user_id = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    user = await services.users.get_by_id(user_id)
    if user is None:
        raise credentials_exception
    return user
