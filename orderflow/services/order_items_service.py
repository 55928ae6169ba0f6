"""Order line item replacement with write-time price stamping."""

import logging
from datetime import datetime, timezone

from orderflow.api.middleware.error_handler import ValidationError
from orderflow.core.record_store import ORDER_ITEMS, RecordStore, get_record_store
from orderflow.models.catalog import CatalogItem
from orderflow.models.order import OrderItemRecord
from orderflow.schemas.order import LineItemRequest
from orderflow.services.catalog_service import CatalogService
from orderflow.services.pricing_service import PricingResolver

logger = logging.getLogger(__name__)


def line_item_id(order_id: str, item_id: str, ordinal: int) -> str:
    """Composite line id: order id, catalog item id and 1-based position."""
    return f"{order_id}_{item_id}_{ordinal}"


def total_amount(items: list[OrderItemRecord]) -> int:
    return sum(item.price * item.quantity for item in items)


class OrderItemsManager:
    """Replaces the full set of line items of an order on every write.

    Line item sets are small and edited wholesale, so a write soft-deletes
    every live row of the order and appends the requested lines again.
    """

    def __init__(
        self,
        store: RecordStore | None = None,
        catalog_service: CatalogService | None = None,
        pricing: PricingResolver | None = None,
    ) -> None:
        self.store = store or get_record_store()
        self.catalog_service = catalog_service or CatalogService(self.store)
        self.pricing = pricing or PricingResolver()

    async def resolve_items(
        self,
        order_id: str,
        requested_items: list[LineItemRequest],
        room_area: float | None = None,
    ) -> list[OrderItemRecord]:
        """Build priced rows for the requested lines without writing anything.

        Raises:
            ValidationError: For unknown or inactive catalog items or a
                quantity below one.
        """
        if not requested_items:
            return []

        catalog = await self.catalog_service.get_catalog_index()
        now = datetime.now(timezone.utc)
        rows: list[OrderItemRecord] = []

        for ordinal, requested in enumerate(requested_items, start=1):
            item = self._catalog_item(catalog, requested)
            unit_price = self.pricing.resolve_unit_price(item, requested.selected_area_option, room_area)
            rows.append(
                OrderItemRecord(
                    id=line_item_id(order_id, item.id, ordinal),
                    order_id=order_id,
                    item_id=item.id,
                    quantity=self.pricing.effective_quantity(item, requested.quantity),
                    price=unit_price,
                    selected_area_option=self.pricing.selected_label(
                        item, requested.selected_area_option, room_area
                    ),
                    created_at=now,
                )
            )
            logger.debug(
                "Priced line %s: base=%d unit=%d qty=%d",
                rows[-1].id,
                item.price,
                unit_price,
                rows[-1].quantity,
            )

        return rows

    async def replace_items(
        self,
        order_id: str,
        requested_items: list[LineItemRequest],
        room_area: float | None = None,
    ) -> list[OrderItemRecord]:
        """Replace every line item of ``order_id``.

        All lines are priced and validated before the first write.

        Returns:
            list[OrderItemRecord]: The newly written rows.
        """
        rows = await self.resolve_items(order_id, requested_items, room_area)
        return await self.write_items(order_id, rows)

    async def write_items(self, order_id: str, rows: list[OrderItemRecord]) -> list[OrderItemRecord]:
        """Soft-delete the live rows of ``order_id`` and append ``rows``."""
        existing = await self.get_items(order_id)
        for row in existing:
            await self.store.soft_delete(ORDER_ITEMS, row.id)

        written = [await self.store.append_row(ORDER_ITEMS, row) for row in rows]
        logger.info(
            "Replaced line items of %s: removed %d, added %d",
            order_id,
            len(existing),
            len(written),
        )
        return written

    async def get_items(self, order_id: str) -> list[OrderItemRecord]:
        """Live line items of an order."""
        rows = await self.store.get_rows(ORDER_ITEMS)
        return [row for row in rows if row.order_id == order_id]

    @staticmethod
    def _catalog_item(catalog: dict[str, CatalogItem], requested: LineItemRequest) -> CatalogItem:
        if requested.quantity < 1:
            raise ValidationError(
                f"Quantity for {requested.item_id} must be at least 1",
                rule="invalid_quantity",
                field="quantity",
            )
        item = catalog.get(requested.item_id)
        if item is None:
            raise ValidationError(
                f"Unknown catalog item: {requested.item_id}",
                rule="unknown_catalog_item",
                field="item_id",
            )
        if not item.active:
            raise ValidationError(
                f"Catalog item is no longer offered: {requested.item_id}",
                rule="inactive_catalog_item",
                field="item_id",
            )
        return item
