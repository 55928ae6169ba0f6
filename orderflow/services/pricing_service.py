"""Line item price resolution, including area-tier price tables."""

from orderflow.models.catalog import CatalogItem

# Fixed breakpoints (m²) mapping a room area to a tier label
AREA_TIER_SMALL = "under 30㎡"
AREA_TIER_MEDIUM = "30㎡ to under 50㎡"
AREA_TIER_LARGE = "50㎡ and over"

# Labels used by catalog rows migrated from the previous store; read as aliases
LEGACY_TIER_LABELS = {
    "30㎡未満": AREA_TIER_SMALL,
    "30㎡以上50㎡未満": AREA_TIER_MEDIUM,
    "50㎡以上": AREA_TIER_LARGE,
}

AREA_TIER_BREAKPOINTS: tuple[tuple[float, str], ...] = (
    (30, AREA_TIER_SMALL),
    (50, AREA_TIER_MEDIUM),
)


def canonical_tier_label(label: str | None) -> str | None:
    """Map a legacy tier label to its current spelling; other labels pass through."""
    if label is None:
        return None
    label = label.strip()
    return LEGACY_TIER_LABELS.get(label, label)


def area_tier_label(room_area: float | None) -> str | None:
    """Derive the tier label for a room area, or None if no area is known."""
    if room_area is None:
        return None
    for upper_bound, label in AREA_TIER_BREAKPOINTS:
        if room_area < upper_bound:
            return label
    return AREA_TIER_LARGE


class PricingResolver:
    """Resolves prices for catalog items.

    Prices are resolved once, when an order line is written; later catalog
    changes never alter an existing line.
    """

    def resolve_unit_price(
        self,
        item: CatalogItem,
        selected_area_label: str | None = None,
        room_area: float | None = None,
    ) -> int:
        """Return the per-unit price for ``item``.

        Args:
            item: Catalog item.
            selected_area_label: Explicit tier label chosen by the requester.
            room_area: Room area used to derive a label when none is chosen.

        Returns:
            int: The matching tier price, else the base price.
        """
        if not item.has_tiers:
            return item.price

        label = canonical_tier_label(selected_area_label) or area_tier_label(room_area)
        if label is None:
            return item.price

        for option in item.price_options or []:
            if canonical_tier_label(option.label) == label:
                return option.price
        return item.price

    def effective_quantity(self, item: CatalogItem, quantity: int) -> int:
        """Quantity that is billed; items without quantity selection count once."""
        return quantity if item.has_quantity else 1

    def resolve_price(
        self,
        item: CatalogItem,
        quantity: int = 1,
        selected_area_label: str | None = None,
        room_area: float | None = None,
    ) -> int:
        """Return the line amount: unit price times billed quantity."""
        unit_price = self.resolve_unit_price(item, selected_area_label, room_area)
        return unit_price * self.effective_quantity(item, quantity)

    def selected_label(
        self,
        item: CatalogItem,
        selected_area_label: str | None = None,
        room_area: float | None = None,
    ) -> str | None:
        """Tier label recorded on the line, if the item is tier-priced."""
        if not item.has_tiers:
            return None
        return canonical_tier_label(selected_area_label) or area_tier_label(room_area)
