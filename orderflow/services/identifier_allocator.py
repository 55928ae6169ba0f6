"""Short human-readable identifiers derived by scanning existing rows."""

import logging
import re
import time
from collections.abc import Callable, Iterable
from typing import Any

from orderflow.core.record_store import RecordStore, Table

logger = logging.getLogger(__name__)

MIN_DIGITS = 3
FALLBACK_DIGITS = 3


class IdentifierAllocator:
    """Allocates ``PREFIX###`` ids as max existing suffix + 1.

    Scan-then-increment is not atomic: two concurrent allocations for the same
    prefix can return the same id. The store does not constrain ids to be
    unique, so the later row simply shadows the earlier one on lookup.
    """

    def __init__(self, store: RecordStore, clock: Callable[[], float] = time.time) -> None:
        """Initialize allocator.

        Args:
            store: Record store to scan.
            clock: Wall clock used for the fallback suffix.
        """
        self.store = store
        self._clock = clock

    async def next_id(self, prefix: str, table: Table[Any]) -> str:
        """Return the next id for ``prefix`` in ``table``.

        Falls back to the last digits of the current Unix time if the scan
        fails, preferring forward progress over strict ordering.
        """
        try:
            rows = await self.store.get_rows(table, include_deleted=True)
        except Exception as e:
            fallback = self.fallback_id(prefix)
            logger.error("Id scan for %s failed, using fallback %s: %s", prefix, fallback, str(e))
            return fallback

        return next_in_sequence(prefix, (row.id for row in rows))

    def fallback_id(self, prefix: str) -> str:
        return f"{prefix}{str(int(self._clock()))[-FALLBACK_DIGITS:]}"


def next_in_sequence(prefix: str, existing_ids: Iterable[str]) -> str:
    """Compute the id after the highest numeric suffix among ``existing_ids``.

    Padding is at least ``MIN_DIGITS`` wide and grows once the number needs
    more digits, so ``ORD999`` is followed by ``ORD1000``.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    highest = 0
    for record_id in existing_ids:
        match = pattern.match(record_id or "")
        if match:
            highest = max(highest, int(match.group(1)))

    next_number = highest + 1
    return f"{prefix}{next_number:0{MIN_DIGITS}d}"
