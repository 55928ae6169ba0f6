"""Order status state machine and key handoff rules.

Every permitted status edge lives in ``TRANSITIONS``; ``check_transition`` is
the only place that consults it.
"""

from dataclasses import dataclass
from enum import Enum

from orderflow.api.middleware.error_handler import AuthorizationError, ValidationError
from orderflow.models.order import TERMINAL_STATUSES, KeyStatus, OrderRecord, OrderStatus


class ActorRole(str, Enum):
    """Who is asking for a change."""

    ADMIN = "admin"
    REQUESTER = "requester"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    role: ActorRole
    id: str | None = None


REQUESTER_TARGETS = frozenset(
    {
        OrderStatus.AWAITING_SCHEDULE,
        OrderStatus.SCHEDULED,
        OrderStatus.CANCELLED_BY_REQUESTER,
    }
)

_NON_TERMINAL = tuple(s for s in OrderStatus if s not in TERMINAL_STATUSES)

# Administrators move freely between statuses, forward or backward, but
# never claim a requester cancellation.
_ADMIN_EDGES = {
    current: frozenset(s for s in OrderStatus if s not in (current, OrderStatus.CANCELLED_BY_REQUESTER))
    for current in _NON_TERMINAL
}

TRANSITIONS: dict[ActorRole, dict[OrderStatus, frozenset[OrderStatus]]] = {
    ActorRole.ADMIN: _ADMIN_EDGES,
    ActorRole.SYSTEM: _ADMIN_EDGES,
    ActorRole.REQUESTER: {
        OrderStatus.AWAITING_SCHEDULE: frozenset({OrderStatus.SCHEDULED, OrderStatus.CANCELLED_BY_REQUESTER}),
        OrderStatus.SCHEDULED: frozenset({OrderStatus.AWAITING_SCHEDULE, OrderStatus.CANCELLED_BY_REQUESTER}),
    },
}


def check_transition(current: OrderStatus, requested: OrderStatus, actor_role: ActorRole) -> bool:
    """Validate a status change.

    Args:
        current: Stored status.
        requested: Requested status.
        actor_role: Role of the caller.

    Returns:
        bool: True if the status changes, False for a no-op request of the
            current status.

    Raises:
        ValidationError: If the edge is not permitted for ``actor_role``.
    """
    if current in TERMINAL_STATUSES:
        raise ValidationError(
            f"Order is already {current.value}; no further status changes are allowed",
            rule="terminal_status",
            field="status",
        )

    if requested == current:
        return False

    if actor_role == ActorRole.REQUESTER:
        if requested not in REQUESTER_TARGETS:
            raise ValidationError(
                f"Requesters cannot set status {requested.value}",
                rule="requester_status_not_allowed",
                field="status",
            )
        if current not in TRANSITIONS[ActorRole.REQUESTER]:
            raise ValidationError(
                f"Order has progressed past scheduling ({current.value})",
                rule="requester_order_advanced",
                field="status",
            )
    elif requested == OrderStatus.CANCELLED_BY_REQUESTER:
        raise ValidationError(
            "Only the requester can cancel on their own behalf",
            rule="requester_cancellation_only",
            field="status",
        )

    if requested not in TRANSITIONS[actor_role].get(current, frozenset()):
        raise ValidationError(
            f"Transition {current.value} -> {requested.value} is not allowed",
            rule="transition_not_allowed",
            field="status",
        )
    return True


def check_owner(order: OrderRecord, actor: Actor) -> None:
    """Reject a requester acting on an order they do not own."""
    if actor.role != ActorRole.REQUESTER:
        return
    if actor.id is None or actor.id != order.user_id:
        raise AuthorizationError(f"Order {order.id} belongs to another user")


def check_key_transition(current: KeyStatus, requested: KeyStatus, confirmed: bool) -> bool:
    """Validate a key status change.

    The only edge is ``handed -> pending`` (the key reached the office) and it
    must be explicitly confirmed. Once pending, a key is never handed again.

    Returns:
        bool: True if the key status changes, False if it already matches.

    Raises:
        ValidationError: For a reversal or a missing confirmation.
    """
    if requested == current:
        return False

    if current == KeyStatus.PENDING:
        raise ValidationError(
            "Key status cannot return to handed once the key is at the office",
            rule="key_status_reversal",
            field="key_status",
        )
    if not confirmed:
        raise ValidationError(
            "Key arrival must be confirmed",
            rule="confirmation_required",
            field="confirmed",
        )
    return True
