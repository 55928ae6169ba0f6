"""Catalog Pydantic schemas for API responses."""

from pydantic import BaseModel, ConfigDict

from orderflow.models.catalog import PriceOption


class CatalogItemResponse(BaseModel):
    """Schema for catalog item API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    price: int
    active: bool
    has_quantity: bool
    has_area_selection: bool
    price_options: list[PriceOption] | None = None


class CatalogItemListResponse(BaseModel):
    items: list[CatalogItemResponse]
