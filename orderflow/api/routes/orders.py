"""Order API routes."""

from fastapi import APIRouter, status

from orderflow.api.deps import AdminActor, CurrentActor, OrderServiceDep
from orderflow.api.middleware.error_handler import ValidationError
from orderflow.models.order import ArchivedOrderRecord
from orderflow.schemas.order import (
    ArchivedOrderListResponse,
    ArchivedOrderResponse,
    KeyStatusUpdateRequest,
    OrderCreateRequest,
    OrderDetailResponse,
    OrderItemResponse,
    OrderListResponse,
    OrderResponse,
    OrderUpdateRequest,
    StatusUpdateRequest,
)
from orderflow.services.order_lifecycle import ActorRole
from orderflow.services.order_service import OrderDetail

router = APIRouter(prefix="/orders", tags=["orders"])


def _detail_response(detail: OrderDetail) -> OrderDetailResponse:
    return OrderDetailResponse(
        **detail.order.model_dump(),
        line_items=[OrderItemResponse.model_validate(item) for item in detail.items],
        total_amount=detail.total_amount,
    )


def _archived_response(archived: ArchivedOrderRecord) -> ArchivedOrderResponse:
    return ArchivedOrderResponse(
        **archived.model_dump(exclude={"line_items"}),
        line_items=[OrderItemResponse(**item.model_dump()) for item in archived.line_items],
    )


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an order",
    description="Creates an order owned by the acting user. Line item prices are resolved from the catalog.",
)
async def create_order(
    data: OrderCreateRequest,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderResponse:
    """Create a new order.

    Administrators may pass ``X-Actor-Id`` to create on a user's behalf.

    Args:
        data: Order fields and requested line items.
        actor: The acting identity.
        service: Order service.

    Returns:
        OrderResponse: The created order.
    """
    if actor.id is None:
        raise ValidationError("X-Actor-Id is required to own an order", rule="owner_required", field="user_id")
    order = await service.create_order(actor.id, data, data.line_items)
    return OrderResponse.model_validate(order)


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List active orders",
    description="Lists orders that are not paid or cancelled, newest first. Requesters see only their own.",
)
async def list_orders(
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderListResponse:
    user_id = actor.id if actor.role == ActorRole.REQUESTER else None
    orders = await service.list_active_orders(user_id=user_id)
    return OrderListResponse(items=[OrderResponse.model_validate(o) for o in orders])


@router.get(
    "/archive",
    response_model=ArchivedOrderListResponse,
    summary="List archived orders",
    description="Lists archive snapshots of paid orders, most recently archived first.",
)
async def list_archived_orders(
    actor: AdminActor,
    service: OrderServiceDep,
) -> ArchivedOrderListResponse:
    archived = await service.list_archived_orders()
    return ArchivedOrderListResponse(items=[_archived_response(a) for a in archived])


@router.get(
    "/{order_id}",
    response_model=OrderDetailResponse,
    summary="Get order detail",
    description="Returns an order with its line items and total amount.",
)
async def get_order(
    order_id: str,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderDetailResponse:
    detail = await service.get_order_detail(order_id, actor=actor)
    return _detail_response(detail)


@router.put(
    "/{order_id}",
    response_model=OrderDetailResponse,
    summary="Update an order",
    description="Updates order fields. A line_items list replaces every line item; a status is checked against the lifecycle rules.",
)
async def update_order(
    order_id: str,
    data: OrderUpdateRequest,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderDetailResponse:
    """Update an order.

    Args:
        order_id: The order id.
        data: Changed fields and optional replacement line items.
        actor: The acting identity.
        service: Order service.

    Returns:
        OrderDetailResponse: The updated order with its line items.
    """
    await service.update_order(order_id, data, line_items=data.line_items, actor=actor)
    detail = await service.get_order_detail(order_id)
    return _detail_response(detail)


@router.post(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Change order status",
    description="Moves the order along the status lifecycle. Moving to paid archives the order.",
)
async def set_order_status(
    order_id: str,
    data: StatusUpdateRequest,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderResponse:
    order = await service.set_status(order_id, data.status, actor.role, actor.id)
    return OrderResponse.model_validate(order)


@router.patch(
    "/{order_id}/key-status",
    response_model=OrderResponse,
    summary="Confirm key arrival",
    description="Records that the key has arrived at the office. Requires confirmed=true and cannot be reversed.",
)
async def set_key_status(
    order_id: str,
    data: KeyStatusUpdateRequest,
    actor: AdminActor,
    service: OrderServiceDep,
) -> OrderResponse:
    order = await service.set_key_status(order_id, data.key_status, data.confirmed)
    return OrderResponse.model_validate(order)
