"""Unit tests for the status state machine and key handoff rules."""

from datetime import date, datetime, timezone

import pytest

from orderflow.api.middleware.error_handler import AuthorizationError, ValidationError
from orderflow.models import KeyStatus, OrderRecord, OrderStatus
from orderflow.services.order_lifecycle import (
    TRANSITIONS,
    Actor,
    ActorRole,
    check_key_transition,
    check_owner,
    check_transition,
)

TERMINAL = [OrderStatus.PAID, OrderStatus.CANCELLED_BY_ADMIN, OrderStatus.CANCELLED_BY_REQUESTER]


class TestCheckTransition:
    """Tests for check_transition."""

    @pytest.mark.parametrize("current", TERMINAL)
    @pytest.mark.parametrize("role", list(ActorRole))
    def test_terminal_states_are_absorbing(self, current: OrderStatus, role: ActorRole) -> None:
        with pytest.raises(ValidationError) as exc_info:
            check_transition(current, OrderStatus.AWAITING_SCHEDULE, role)

        assert exc_info.value.rule == "terminal_status"

    def test_same_status_is_noop(self) -> None:
        assert check_transition(OrderStatus.SCHEDULED, OrderStatus.SCHEDULED, ActorRole.REQUESTER) is False
        assert check_transition(OrderStatus.INVOICED, OrderStatus.INVOICED, ActorRole.ADMIN) is False

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (OrderStatus.AWAITING_SCHEDULE, OrderStatus.SCHEDULED),
            (OrderStatus.SCHEDULED, OrderStatus.COMPLETED),
            (OrderStatus.COMPLETED, OrderStatus.INVOICED),
            (OrderStatus.INVOICED, OrderStatus.PAID),
            (OrderStatus.INVOICED, OrderStatus.AWAITING_SCHEDULE),
            (OrderStatus.COMPLETED, OrderStatus.CANCELLED_BY_ADMIN),
        ],
    )
    def test_admin_moves_forward_and_backward(self, current: OrderStatus, target: OrderStatus) -> None:
        assert check_transition(current, target, ActorRole.ADMIN) is True

    def test_admin_cannot_cancel_for_requester(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            check_transition(OrderStatus.SCHEDULED, OrderStatus.CANCELLED_BY_REQUESTER, ActorRole.ADMIN)

        assert exc_info.value.rule == "requester_cancellation_only"

    def test_system_has_admin_edges(self) -> None:
        assert TRANSITIONS[ActorRole.SYSTEM] == TRANSITIONS[ActorRole.ADMIN]
        assert check_transition(OrderStatus.SCHEDULED, OrderStatus.COMPLETED, ActorRole.SYSTEM) is True

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (OrderStatus.AWAITING_SCHEDULE, OrderStatus.SCHEDULED),
            (OrderStatus.SCHEDULED, OrderStatus.AWAITING_SCHEDULE),
            (OrderStatus.AWAITING_SCHEDULE, OrderStatus.CANCELLED_BY_REQUESTER),
            (OrderStatus.SCHEDULED, OrderStatus.CANCELLED_BY_REQUESTER),
        ],
    )
    def test_requester_edges(self, current: OrderStatus, target: OrderStatus) -> None:
        assert check_transition(current, target, ActorRole.REQUESTER) is True

    def test_requester_cannot_complete_scheduled_order(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            check_transition(OrderStatus.SCHEDULED, OrderStatus.COMPLETED, ActorRole.REQUESTER)

        assert exc_info.value.rule == "requester_status_not_allowed"
        assert exc_info.value.status_code == 422

    def test_requester_cannot_cancel_advanced_order(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            check_transition(OrderStatus.COMPLETED, OrderStatus.CANCELLED_BY_REQUESTER, ActorRole.REQUESTER)

        assert exc_info.value.rule == "requester_order_advanced"

    def test_requester_cannot_cancel_as_admin(self) -> None:
        with pytest.raises(ValidationError):
            check_transition(OrderStatus.AWAITING_SCHEDULE, OrderStatus.CANCELLED_BY_ADMIN, ActorRole.REQUESTER)


class TestCheckOwner:
    """Tests for check_owner."""

    @pytest.fixture
    def order(self) -> OrderRecord:
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)
        return OrderRecord(
            id="ORD001",
            user_id="USER004",
            order_date=date(2024, 6, 1),
            construction_date=date(2024, 6, 20),
            created_at=now,
            updated_at=now,
        )

    def test_owner_passes(self, order: OrderRecord) -> None:
        check_owner(order, Actor(role=ActorRole.REQUESTER, id="USER004"))

    def test_other_requester_rejected(self, order: OrderRecord) -> None:
        with pytest.raises(AuthorizationError):
            check_owner(order, Actor(role=ActorRole.REQUESTER, id="USER005"))

    def test_requester_without_id_rejected(self, order: OrderRecord) -> None:
        with pytest.raises(AuthorizationError):
            check_owner(order, Actor(role=ActorRole.REQUESTER))

    def test_admin_acts_on_any_order(self, order: OrderRecord) -> None:
        check_owner(order, Actor(role=ActorRole.ADMIN))


class TestCheckKeyTransition:
    """Tests for the one-way key handoff."""

    def test_confirmed_arrival_allowed(self) -> None:
        assert check_key_transition(KeyStatus.HANDED, KeyStatus.PENDING, confirmed=True) is True

    def test_arrival_requires_confirmation(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            check_key_transition(KeyStatus.HANDED, KeyStatus.PENDING, confirmed=False)

        assert exc_info.value.rule == "confirmation_required"

    @pytest.mark.parametrize("confirmed", [True, False])
    def test_reversal_always_rejected(self, confirmed: bool) -> None:
        with pytest.raises(ValidationError) as exc_info:
            check_key_transition(KeyStatus.PENDING, KeyStatus.HANDED, confirmed=confirmed)

        assert exc_info.value.rule == "key_status_reversal"

    def test_unchanged_key_status_is_noop(self) -> None:
        assert check_key_transition(KeyStatus.PENDING, KeyStatus.PENDING, confirmed=False) is False
