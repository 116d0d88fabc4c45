"""
Authentication router for login.
"""
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status

from storefront.dependencies.auth import get_current_user
from storefront.dependencies.services import get_services
from storefront.schemas.auth import LoginRequest, LoginResponse
from storefront.schemas.user import UserResponse
from storefront.wiring import Services

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login and get access token",
)
async def login(body: LoginRequest, services: Services = Depends(get_services)):
    """Exchange email and password for a JWT."""
    try:
        return await services.auth.login(body)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user",
)
async def me(current_user: Annotated[dict[str, Any], Depends(get_current_user)]):
    return UserResponse.from_document(current_user)
