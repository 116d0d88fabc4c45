"""
Users router. Deleting a user keeps its orders and bills but clears their
reference to the user.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status

from storefront.dependencies.services import get_services
from storefront.schemas.user import UserCreate, UserResponse, UserUpdate
from storefront.wiring import Services

router = APIRouter(prefix="/users", tags=["Users"])


def _not_found(user_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"User {user_id} not found",
    )


@router.get("", response_model=list[UserResponse], summary="List users")
async def list_users(
    limit: int = Query(default=100, ge=1, le=1000),
    services: Services = Depends(get_services),
):
    docs = await services.users.find(limit=limit)
    return [UserResponse.from_document(d) for d in docs]


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
)
async def create_user(body: UserCreate, services: Services = Depends(get_services)):
    """
    Create a user. Without a password, a random one is generated; the
    stored value is always a hash.
    """
    result = await services.users.save(body.to_document())
    return UserResponse.from_document(result.document)


@router.get("/{user_id}", response_model=UserResponse, summary="Get user")
async def get_user(user_id: str, services: Services = Depends(get_services)):
    doc = await services.users.get_by_id(user_id)
    if doc is None:
        raise _not_found(user_id)
    return UserResponse.from_document(doc)


@router.patch("/{user_id}", response_model=UserResponse, summary="Update user")
async def update_user(user_id: str, body: UserUpdate, services: Services = Depends(get_services)):
    result = await services.users.update_by_id(user_id, body.to_patch())
    if not result.matched:
        raise _not_found(user_id)
    return UserResponse.from_document(result.document)


@router.delete("/{user_id}", summary="Delete user")
async def delete_user(user_id: str, services: Services = Depends(get_services)):
    """
    Delete a user. Post-delete warnings (e.g. an order that could not be
    anonymized) are returned but do not fail the request.
    """
    result = await services.users.delete_by_id(user_id)
    if not result.matched:
        raise _not_found(user_id)
    return {"deleted": user_id, "warnings": result.warnings}
