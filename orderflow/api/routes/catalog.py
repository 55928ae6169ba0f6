"""Catalog API routes."""

from fastapi import APIRouter, Query

from orderflow.api.deps import CatalogServiceDep
from orderflow.schemas.catalog import CatalogItemListResponse, CatalogItemResponse

router = APIRouter(prefix="/catalog-items", tags=["catalog"])


@router.get(
    "",
    response_model=CatalogItemListResponse,
    summary="List catalog items",
    description="Lists catalog items with their base price and any area-tier price table.",
)
async def list_catalog_items(
    service: CatalogServiceDep,
    active_only: bool = Query(default=True, description="Only items currently offered"),
) -> CatalogItemListResponse:
    items = await service.get_catalog_items(active_only=active_only)
    return CatalogItemListResponse(items=[CatalogItemResponse.model_validate(item) for item in items])
