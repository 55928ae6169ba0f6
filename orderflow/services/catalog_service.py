"""Catalog read access."""

from orderflow.core.record_store import CATALOG_ITEMS, RecordStore, get_record_store
from orderflow.models.catalog import CatalogItem


class CatalogService:
    """Read-only access to catalog items."""

    def __init__(self, store: RecordStore | None = None) -> None:
        self.store = store or get_record_store()

    async def get_catalog_items(self, active_only: bool = False) -> list[CatalogItem]:
        """List catalog items.

        Args:
            active_only: If True, only return items currently offered.

        Returns:
            list[CatalogItem]: Catalog items in store order.
        """
        items = await self.store.get_rows(CATALOG_ITEMS)
        if active_only:
            items = [item for item in items if item.active]
        return items

    async def get_catalog_index(self) -> dict[str, CatalogItem]:
        """Catalog items keyed by id."""
        return {item.id: item for item in await self.get_catalog_items()}
