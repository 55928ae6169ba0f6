"""Notification persistence, feeds and email routing for lifecycle events."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from orderflow.api.middleware.error_handler import AuthorizationError, DispatchError, NotFoundError
from orderflow.core.config import get_settings
from orderflow.core.record_store import NOTIFICATIONS, USERS, RecordStore, get_record_store
from orderflow.models.event import EventType, LifecycleEvent
from orderflow.models.notification import NotificationRecord, NotificationType
from orderflow.models.order import OrderStatus
from orderflow.models.user import UserRecord
from orderflow.services.email_outbox import EmailJob, EmailOutbox, get_email_outbox
from orderflow.services.email_service import render_notification_email
from orderflow.services.identifier_allocator import IdentifierAllocator
from orderflow.services.order_lifecycle import Actor, ActorRole

logger = logging.getLogger(__name__)

NOTIFICATION_ID_PREFIX = "NOT"

STATUS_LABELS = {
    OrderStatus.AWAITING_SCHEDULE: "Awaiting schedule",
    OrderStatus.SCHEDULED: "Scheduled",
    OrderStatus.COMPLETED: "Completed",
    OrderStatus.INVOICED: "Invoiced",
    OrderStatus.PAID: "Paid",
    OrderStatus.CANCELLED_BY_ADMIN: "Cancelled by administrator",
    OrderStatus.CANCELLED_BY_REQUESTER: "Cancelled by requester",
}


class EmailAudience(str, Enum):
    ADMINS = "admins"
    OWNER = "owner"
    NONE = "none"


@dataclass(frozen=True)
class DeliveryRule:
    """Where a lifecycle event is shown and who gets an email about it."""

    notification_type: NotificationType
    broadcast: bool
    email: EmailAudience


_ADMIN_BROADCAST = {
    EventType.ORDER_CREATED: DeliveryRule(NotificationType.ORDER, True, EmailAudience.ADMINS),
    EventType.USER_REGISTERED: DeliveryRule(NotificationType.USER, True, EmailAudience.ADMINS),
    EventType.KEY_STATUS_CHANGED: DeliveryRule(NotificationType.KEY_STATUS, True, EmailAudience.ADMINS),
    EventType.SCHEDULE_CHANGED: DeliveryRule(NotificationType.SCHEDULE, True, EmailAudience.ADMINS),
}

# Status changes administrators must act on go to them; progress updates go to the owner
_STATUS_RULES = {
    OrderStatus.SCHEDULED: DeliveryRule(NotificationType.STATUS, True, EmailAudience.ADMINS),
    OrderStatus.CANCELLED_BY_ADMIN: DeliveryRule(NotificationType.STATUS, True, EmailAudience.ADMINS),
    OrderStatus.CANCELLED_BY_REQUESTER: DeliveryRule(NotificationType.STATUS, True, EmailAudience.ADMINS),
    OrderStatus.PAID: DeliveryRule(NotificationType.PAYMENT, False, EmailAudience.NONE),
}
_OWNER_STATUS_RULE = DeliveryRule(NotificationType.STATUS, False, EmailAudience.OWNER)


def route(event: LifecycleEvent) -> DeliveryRule:
    """Look up the delivery rule for an event."""
    if event.type == EventType.STATUS_CHANGED:
        return _STATUS_RULES.get(OrderStatus(event.new_value), _OWNER_STATUS_RULE)
    return _ADMIN_BROADCAST[event.type]


def compose(event: LifecycleEvent) -> tuple[str, str]:
    """Title and message for an event's notification."""
    order = event.order
    if event.type == EventType.ORDER_CREATED:
        return (
            "New order received",
            f"Order {order.id} was placed for {order.property_name} {order.room_number}.",
        )
    if event.type == EventType.USER_REGISTERED:
        user = event.user
        return "New user registered", f"{user.company_name} {user.store_name} registered as a new user."
    if event.type == EventType.KEY_STATUS_CHANGED:
        return "Key arrived at office", f"The key for order {order.id} has arrived at the office."
    if event.type == EventType.SCHEDULE_CHANGED:
        return (
            "Construction date changed",
            f"Construction date for order {order.id} changed from {event.old_value} to {event.new_value}.",
        )

    new_status = OrderStatus(event.new_value)
    if new_status == OrderStatus.PAID:
        return "Payment received", f"Payment for order {order.id} has been confirmed."
    old_label = STATUS_LABELS.get(OrderStatus(event.old_value), event.old_value) if event.old_value else "-"
    return (
        "Order status updated",
        f"Order {order.id} changed from {old_label} to {STATUS_LABELS[new_status]}.",
    )


class NotificationDispatcher:
    """Persists a notification per lifecycle event and queues its emails.

    Dispatch is best effort: the mutation that produced the event has already
    committed, so failures here are logged and never raised.
    """

    def __init__(
        self,
        store: RecordStore | None = None,
        outbox: EmailOutbox | None = None,
        allocator: IdentifierAllocator | None = None,
        feed_limit: int | None = None,
        frontend_url: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        settings = get_settings()
        self.store = store or get_record_store()
        self.outbox = outbox or get_email_outbox()
        self.allocator = allocator or IdentifierAllocator(self.store)
        self.feed_limit = feed_limit or settings.notification_feed_limit
        self.frontend_url = frontend_url or settings.frontend_url
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def dispatch(self, event: LifecycleEvent) -> NotificationRecord | None:
        """Persist the event's notification, then queue its email.

        Returns:
            NotificationRecord | None: The stored notification, or None if it
                could not be persisted.
        """
        rule = route(event)
        context = self._log_context(event)
        title, message = compose(event)

        try:
            notification_id = await self.allocator.next_id(NOTIFICATION_ID_PREFIX, NOTIFICATIONS)
            record = NotificationRecord(
                id=notification_id,
                user_id=None if rule.broadcast else event.order.user_id,
                type=rule.notification_type,
                title=title,
                message=message,
                read=False,
                created_at=self._clock(),
            )
            notification = await self.store.append_row(NOTIFICATIONS, record)
        except Exception as e:
            error = DispatchError(f"Failed to persist notification for {event.type.value}: {e}")
            logger.error(error.message, extra=context)
            return None

        logger.info(
            "Notification %s stored for %s (%s)",
            notification.id,
            event.type.value,
            "broadcast" if notification.is_broadcast else notification.user_id,
        )

        if rule.email != EmailAudience.NONE:
            await self._queue_email(event, rule, notification, context)
        return notification

    async def _queue_email(
        self,
        event: LifecycleEvent,
        rule: DeliveryRule,
        notification: NotificationRecord,
        context: dict[str, str],
    ) -> None:
        try:
            users = await self.store.get_rows(USERS)
        except Exception as e:
            error = DispatchError(f"Recipient lookup failed for notification {notification.id}: {e}")
            logger.error(error.message, extra=context)
            return

        customer = event.user or self._find_user(users, event.order.user_id if event.order else None)
        if rule.email == EmailAudience.ADMINS:
            recipients = [u.email for u in users if u.is_active_admin and u.email]
        else:
            recipients = [customer.email] if customer and customer.email else []

        if not recipients:
            logger.warning("No email recipients for notification %s", notification.id, extra=context)
            return

        rendered = render_notification_email(notification, self.frontend_url, order=event.order, customer=customer)
        self.outbox.enqueue(
            EmailJob(
                recipients=tuple(recipients),
                subject=rendered.subject,
                html=rendered.html,
                text=rendered.text,
                context={**context, "notification_id": notification.id},
            )
        )

    @staticmethod
    def _find_user(users: list[UserRecord], user_id: str | None) -> UserRecord | None:
        if user_id is None:
            return None
        matches = [u for u in users if u.id == user_id]
        return matches[-1] if matches else None

    @staticmethod
    def _log_context(event: LifecycleEvent) -> dict[str, str]:
        context = {"event_type": event.type.value}
        if event.order is not None:
            context["order_id"] = event.order.id
        if event.user is not None:
            context["user_id"] = event.user.id
        return context

    async def list_notifications(self, user_id: str | None = None) -> list[NotificationRecord]:
        """Return a notification feed, newest first.

        Args:
            user_id: With a user id, that user's notifications plus broadcasts.
                Without, the administrator feed: everything except payment
                notifications.

        Returns:
            list[NotificationRecord]: At most ``feed_limit`` notifications.
        """
        rows = await self.store.get_rows(NOTIFICATIONS)
        if user_id is None:
            feed = [n for n in rows if n.type != NotificationType.PAYMENT]
        else:
            feed = [n for n in rows if n.is_broadcast or n.user_id == user_id]

        feed.sort(key=lambda n: n.created_at, reverse=True)
        return feed[: self.feed_limit]

    async def toggle_read(self, notification_id: str, actor: Actor | None = None) -> bool:
        """Flip a notification's read flag.

        Args:
            notification_id: Notification to flip.
            actor: Caller; requesters may only touch their own notifications.

        Returns:
            bool: The new read state.

        Raises:
            NotFoundError: If the notification does not exist.
            AuthorizationError: If a requester does not own the notification.
        """
        notification = await self._get_notification(notification_id, actor)
        new_state = not notification.read
        await self.store.update_row(NOTIFICATIONS, notification_id, {"read": new_state})
        return new_state

    async def mark_read(self, notification_id: str, actor: Actor | None = None) -> NotificationRecord:
        """Mark a notification read. Same access rule as ``toggle_read``."""
        notification = await self._get_notification(notification_id, actor)
        if notification.read:
            return notification
        updated = await self.store.update_row(NOTIFICATIONS, notification_id, {"read": True})
        return updated or notification.model_copy(update={"read": True})

    async def _get_notification(self, notification_id: str, actor: Actor | None = None) -> NotificationRecord:
        notification = await self.store.get_row(NOTIFICATIONS, notification_id)
        if notification is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        # Broadcast read state is shared by the administrators
        if actor is not None and actor.role == ActorRole.REQUESTER and (
            notification.is_broadcast or notification.user_id != actor.id
        ):
            raise AuthorizationError(f"Notification {notification_id} belongs to another user")
        return notification
