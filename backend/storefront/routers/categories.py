"""
Categories router.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from storefront.dependencies.services import get_services
from storefront.schemas.category import AttributeFilterAdd, CategoryCreate, CategoryResponse
from storefront.wiring import Services

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=list[CategoryResponse], summary="List categories")
async def list_categories(services: Services = Depends(get_services)):
    docs = await services.categories.find()
    return [CategoryResponse.from_document(d) for d in docs]


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create category",
)
async def create_category(body: CategoryCreate, services: Services = Depends(get_services)):
    result = await services.categories.save(body.model_dump())
    return CategoryResponse.from_document(result.document)


@router.get("/{category_id}", response_model=CategoryResponse, summary="Get category")
async def get_category(category_id: str, services: Services = Depends(get_services)):
    doc = await services.categories.get_by_id(category_id)
    if doc is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return CategoryResponse.from_document(doc)


@router.post(
    "/{category_id}/filters/attributes",
    response_model=CategoryResponse,
    summary="Add attribute filter",
)
async def add_attribute_filter(
    category_id: str,
    body: AttributeFilterAdd,
    services: Services = Depends(get_services),
):
    """
    Embed a copy of an attribute in the category filters.
    Adding an attribute the category already filters on is a no-op.
    """
    attribute = await services.attributes.get_by_id(body.attribute_id)
    if attribute is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attribute not found")

    await services.categories.add_attribute_filter(category_id, attribute)
    doc = await services.categories.get_by_id(category_id)
    if doc is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return CategoryResponse.from_document(doc)
