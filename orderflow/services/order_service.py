"""Order business logic service."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from orderflow.api.middleware.error_handler import NotFoundError, ValidationError
from orderflow.core.record_store import ARCHIVED_ORDERS, ORDERS, USERS, RecordStore, get_record_store
from orderflow.models.event import LifecycleEvent
from orderflow.models.notification import NotificationRecord
from orderflow.models.order import (
    TERMINAL_STATUSES,
    ArchivedLineItem,
    ArchivedOrderRecord,
    KeyStatus,
    OrderItemRecord,
    OrderRecord,
    OrderStatus,
)
from orderflow.schemas.order import LineItemRequest, OrderFields, OrderFieldsUpdate
from orderflow.services.identifier_allocator import IdentifierAllocator
from orderflow.services.notification_service import NotificationDispatcher
from orderflow.services.order_items_service import OrderItemsManager, total_amount
from orderflow.services.order_lifecycle import (
    Actor,
    ActorRole,
    check_key_transition,
    check_owner,
    check_transition,
)

logger = logging.getLogger(__name__)

ORDER_ID_PREFIX = "ORD"

INITIAL_STATUSES = frozenset({OrderStatus.AWAITING_SCHEDULE, OrderStatus.SCHEDULED})

ADMIN_ACTOR = Actor(role=ActorRole.ADMIN)


@dataclass
class OrderDetail:
    order: OrderRecord
    items: list[OrderItemRecord] = field(default_factory=list)
    total_amount: int = 0


class OrderService:
    """Service for the order lifecycle.

    Each operation commits its writes first and dispatches lifecycle events
    afterwards; a failed dispatch never undoes a committed change.
    """

    def __init__(
        self,
        store: RecordStore | None = None,
        dispatcher: NotificationDispatcher | None = None,
        items_manager: OrderItemsManager | None = None,
        allocator: IdentifierAllocator | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize order service.

        Args:
            store: Record store; defaults to the process-wide store.
            dispatcher: Notification dispatcher for lifecycle events.
            items_manager: Line item manager.
            allocator: Order id allocator.
            clock: Returns the current UTC time.
        """
        self.store = store or get_record_store()
        self.dispatcher = dispatcher or NotificationDispatcher(self.store)
        self.items_manager = items_manager or OrderItemsManager(self.store)
        self.allocator = allocator or IdentifierAllocator(self.store)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def create_order(
        self,
        owner_id: str,
        fields: OrderFields,
        line_items: list[LineItemRequest] | None = None,
    ) -> OrderRecord:
        """Create an order with its line items.

        Args:
            owner_id: Id of the requesting user who owns the order.
            fields: Order fields.
            line_items: Requested line items; prices are resolved here.

        Returns:
            OrderRecord: The stored order.

        Raises:
            ValidationError: If the initial status or a line item is invalid.
        """
        if fields.status not in INITIAL_STATUSES:
            raise ValidationError(
                f"New orders cannot start as {fields.status.value}",
                rule="invalid_initial_status",
                field="status",
            )

        order_id = await self.allocator.next_id(ORDER_ID_PREFIX, ORDERS)
        rows = await self.items_manager.resolve_items(order_id, line_items or [], fields.room_area)

        now = self._clock()
        order = OrderRecord(
            id=order_id,
            user_id=owner_id,
            order_date=now.date(),
            key_status=KeyStatus.HANDED,
            created_at=now,
            updated_at=now,
            **fields.model_dump(include=set(OrderFields.model_fields)),
        )
        stored = await self.store.append_row(ORDERS, order)
        if rows:
            await self.items_manager.write_items(order_id, rows)

        logger.info("Order %s created for %s with %d line item(s)", order_id, owner_id, len(rows))
        await self.dispatcher.dispatch(LifecycleEvent.order_created(stored))
        return stored

    async def update_order(
        self,
        order_id: str,
        fields: OrderFieldsUpdate,
        line_items: list[LineItemRequest] | None = None,
        actor: Actor = ADMIN_ACTOR,
    ) -> OrderRecord:
        """Update order fields, optionally replacing line items and status.

        Every check runs before the first write. ``line_items=None`` keeps
        the existing items; an empty list removes them all.

        Raises:
            NotFoundError: If the order does not exist.
            AuthorizationError: If a requester does not own the order.
            ValidationError: If the order is terminal or the status change
                or a line item is not allowed.
        """
        order = await self._get_order(order_id)
        check_owner(order, actor)
        if order.status in TERMINAL_STATUSES:
            raise ValidationError(
                f"Order {order_id} is {order.status.value} and can no longer be edited",
                rule="terminal_status",
            )

        changes = fields.model_dump(include=set(OrderFieldsUpdate.model_fields), exclude_unset=True, exclude_none=True)
        requested_status = changes.pop("status", None)
        status_changes = (
            check_transition(order.status, requested_status, actor.role) if requested_status is not None else False
        )

        rows = None
        if line_items is not None:
            room_area = changes.get("room_area", order.room_area)
            rows = await self.items_manager.resolve_items(order_id, line_items, room_area)

        events: list[LifecycleEvent] = []
        updated = order
        if changes or rows is not None:
            updated = await self.store.update_row(ORDERS, order_id, {**changes, "updated_at": self._clock()})
            if updated is None:
                raise NotFoundError(f"Order {order_id} not found")
            logger.info("Order %s updated: %s", order_id, ", ".join(sorted(changes)) or "line items")
        if rows is not None:
            await self.items_manager.write_items(order_id, rows)

        if updated.construction_date != order.construction_date:
            events.append(
                LifecycleEvent.schedule_changed(
                    updated,
                    order.construction_date.isoformat(),
                    updated.construction_date.isoformat(),
                )
            )

        if status_changes:
            updated = await self._persist_status(updated, requested_status)
            events.append(LifecycleEvent.status_changed(updated, order.status.value, requested_status.value))

        for event in events:
            await self.dispatcher.dispatch(event)
        return updated

    async def set_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        actor_role: ActorRole,
        actor_id: str | None = None,
    ) -> OrderRecord:
        """Move an order to ``new_status``.

        Requesting the current status returns the order unchanged and emits
        nothing. Moving to paid archives the order.
        """
        order = await self._get_order(order_id)
        check_owner(order, Actor(role=actor_role, id=actor_id))
        return await self.apply_status(order, new_status, actor_role)

    async def apply_status(
        self,
        order: OrderRecord,
        requested_status: OrderStatus,
        actor_role: ActorRole,
    ) -> OrderRecord:
        """Validate and persist a status change on a loaded order.

        Args:
            order: The order as currently stored.
            requested_status: Target status.
            actor_role: Role of the caller.

        Returns:
            OrderRecord: The updated order, or ``order`` for a no-op.

        Raises:
            ValidationError: If the edge is not permitted.
        """
        if not check_transition(order.status, requested_status, actor_role):
            logger.debug("Order %s already %s", order.id, requested_status.value)
            return order

        updated = await self._persist_status(order, requested_status)
        await self.dispatcher.dispatch(
            LifecycleEvent.status_changed(updated, order.status.value, requested_status.value)
        )
        return updated

    async def set_key_status(self, order_id: str, new_status: KeyStatus, confirmed: bool = False) -> OrderRecord:
        """Record the key arriving at the office (``handed -> pending``).

        Raises:
            ValidationError: On a reversal or a missing confirmation.
        """
        order = await self._get_order(order_id)
        if not check_key_transition(order.key_status, new_status, confirmed):
            return order

        updated = await self.store.update_row(
            ORDERS, order_id, {"key_status": new_status, "updated_at": self._clock()}
        )
        if updated is None:
            raise NotFoundError(f"Order {order_id} not found")

        logger.info("Order %s key status %s -> %s", order_id, order.key_status.value, new_status.value)
        await self.dispatcher.dispatch(
            LifecycleEvent.key_status_changed(updated, order.key_status.value, new_status.value)
        )
        return updated

    async def list_active_orders(self, user_id: str | None = None) -> list[OrderRecord]:
        """List non-terminal orders, newest first.

        Args:
            user_id: Only return orders owned by this user.
        """
        rows = await self.store.get_rows(ORDERS)
        # Duplicate ids resolve to the last row, as in get_row
        latest = {row.id: row for row in rows}
        orders = [
            order
            for order in latest.values()
            if order.status not in TERMINAL_STATUSES and (user_id is None or order.user_id == user_id)
        ]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders

    async def list_archived_orders(self) -> list[ArchivedOrderRecord]:
        """List archive snapshots, most recently archived first."""
        rows = await self.store.get_rows(ARCHIVED_ORDERS)
        rows.sort(key=lambda a: a.archived_at, reverse=True)
        return rows

    async def get_order_detail(self, order_id: str, actor: Actor | None = None) -> OrderDetail:
        """Get an order with its live line items and total."""
        order = await self._get_order(order_id)
        if actor is not None:
            check_owner(order, actor)
        items = await self.items_manager.get_items(order_id)
        return OrderDetail(order=order, items=items, total_amount=total_amount(items))

    async def notify_user_registered(self, user_id: str) -> NotificationRecord | None:
        """Announce a newly registered user to the administrators."""
        user = await self.store.get_row(USERS, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return await self.dispatcher.dispatch(LifecycleEvent.user_registered(user))

    async def _get_order(self, order_id: str) -> OrderRecord:
        order = await self.store.get_row(ORDERS, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    async def _persist_status(self, order: OrderRecord, new_status: OrderStatus) -> OrderRecord:
        updated = await self.store.update_row(
            ORDERS, order.id, {"status": new_status, "updated_at": self._clock()}
        )
        if updated is None:
            raise NotFoundError(f"Order {order.id} not found")

        logger.info("Order %s status %s -> %s", order.id, order.status.value, new_status.value)
        if new_status == OrderStatus.PAID:
            await self._archive_order(updated)
        return updated

    async def _archive_order(self, order: OrderRecord) -> ArchivedOrderRecord:
        existing = await self.store.get_row(ARCHIVED_ORDERS, order.id)
        if existing is not None:
            logger.warning("Order %s already archived at %s", order.id, existing.archived_at.isoformat())
            return existing

        items = await self.items_manager.get_items(order.id)
        snapshot = ArchivedOrderRecord(
            **order.model_dump(),
            line_items=[
                ArchivedLineItem(
                    id=item.id,
                    item_id=item.item_id,
                    quantity=item.quantity,
                    price=item.price,
                    selected_area_option=item.selected_area_option,
                )
                for item in items
            ],
            total_amount=total_amount(items),
            archived_at=self._clock(),
        )
        stored = await self.store.append_row(ARCHIVED_ORDERS, snapshot)
        logger.info("Order %s archived with total %d", order.id, stored.total_amount)
        return stored
