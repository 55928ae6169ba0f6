"""Catalog item row model."""

import json
import logging
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"true", "1", "yes"}


class PriceOption(BaseModel):
    """One row of an area-tier price table."""

    label: str
    price: int = Field(ge=0)


class CatalogItem(BaseModel):
    """Catalog item row. Read-only reference data for pricing."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    price: int = Field(ge=0)
    active: bool = False
    has_quantity: bool = False
    has_area_selection: bool = False
    price_options: list[PriceOption] | None = None
    created_at: datetime | None = None

    @field_validator("active", "has_quantity", "has_area_selection", mode="before")
    @classmethod
    def _normalize_bool(cls, value: object) -> bool:
        # Columns edited by hand arrive as TRUE/true/1/yes strings
        if isinstance(value, bool):
            return value
        if value is None:
            return False
        return str(value).strip().lower() in _TRUE_VALUES

    @field_validator("price_options", mode="before")
    @classmethod
    def _parse_price_options(cls, value: object, info: ValidationInfo) -> object:
        if isinstance(value, str):
            if not value.strip():
                return None
            try:
                return json.loads(value)
            except json.JSONDecodeError as e:
                # Unparseable tiers leave the item at its base price
                logger.warning(
                    "Ignoring unparseable price_options for catalog item %s: %r (%s)",
                    info.data.get("id", "?"),
                    value,
                    e,
                )
                return None
        return value

    @field_validator("created_at", mode="before")
    @classmethod
    def _created_blank(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def has_tiers(self) -> bool:
        return bool(self.price_options)
