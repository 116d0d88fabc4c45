"""
Attributes router. Writes go through the attribute hook pipeline, so
updates and deletes are propagated to category filters.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from storefront.dependencies.services import get_services
from storefront.schemas.attribute import (
    AttributeCreate,
    AttributeResponse,
    AttributeScope,
    AttributeUpdate,
)
from storefront.wiring import Services

router = APIRouter(prefix="/attributes", tags=["Attributes"])


def _not_found(attribute_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Attribute {attribute_id} not found",
    )


@router.get("", response_model=list[AttributeResponse], summary="List attributes")
async def list_attributes(
    scope: Optional[AttributeScope] = None,
    services: Services = Depends(get_services),
):
    docs = await services.attributes.list_attributes(scope.value if scope else None)
    return [AttributeResponse.from_document(d) for d in docs]


@router.post(
    "",
    response_model=AttributeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create attribute",
)
async def create_attribute(body: AttributeCreate, services: Services = Depends(get_services)):
    result = await services.attributes.save(body.to_document())
    return AttributeResponse.from_document(result.document)


@router.get("/{attribute_id}", response_model=AttributeResponse, summary="Get attribute")
async def get_attribute(attribute_id: str, services: Services = Depends(get_services)):
    doc = await services.attributes.get_by_id(attribute_id)
    if doc is None:
        raise _not_found(attribute_id)
    return AttributeResponse.from_document(doc)


@router.patch("/{attribute_id}", response_model=AttributeResponse, summary="Update attribute")
async def update_attribute(
    attribute_id: str,
    body: AttributeUpdate,
    services: Services = Depends(get_services),
):
    """
    Patch an attribute. Categories referencing it receive the new
    position, type and translation.
    """
    result = await services.attributes.update_by_id(attribute_id, body.to_patch())
    if not result.matched:
        raise _not_found(attribute_id)
    return AttributeResponse.from_document(result.document)


@router.delete(
    "/{attribute_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete attribute",
)
async def delete_attribute(attribute_id: str, services: Services = Depends(get_services)):
    """Delete an attribute and remove it from every category filter."""
    result = await services.attributes.delete_by_id(attribute_id)
    if not result.matched:
        raise _not_found(attribute_id)
