"""Notification API routes."""

from fastapi import APIRouter

from orderflow.api.deps import CurrentActor, NotificationDispatcherDep
from orderflow.schemas.notification import NotificationListResponse, NotificationResponse, ReadStateResponse
from orderflow.services.order_lifecycle import ActorRole

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List notifications",
    description=(
        "Requesters get their own notifications plus broadcasts; administrators get "
        "every notification except payment notices. Newest first."
    ),
)
async def list_notifications(
    actor: CurrentActor,
    dispatcher: NotificationDispatcherDep,
) -> NotificationListResponse:
    user_id = actor.id if actor.role == ActorRole.REQUESTER else None
    notifications = await dispatcher.list_notifications(user_id=user_id)
    return NotificationListResponse(items=[NotificationResponse.model_validate(n) for n in notifications])


@router.patch(
    "/{notification_id}/read",
    response_model=ReadStateResponse,
    summary="Toggle read state",
    description=(
        "Flips the read flag of a notification and returns the new state. Requesters "
        "may only flip their own notifications; broadcasts are administrator-only."
    ),
    responses={403: {"description": "Notification belongs to another user"}},
)
async def toggle_read(
    notification_id: str,
    actor: CurrentActor,
    dispatcher: NotificationDispatcherDep,
) -> ReadStateResponse:
    read = await dispatcher.toggle_read(notification_id, actor=actor)
    return ReadStateResponse(id=notification_id, read=read)
