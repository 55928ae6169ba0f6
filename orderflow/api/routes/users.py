"""User lifecycle hook routes."""

from fastapi import APIRouter, status

from orderflow.api.deps import AdminActor, OrderServiceDep
from orderflow.schemas.notification import NotificationResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "/{user_id}/registered",
    response_model=NotificationResponse | None,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Announce a registered user",
    description="Notifies administrators that a user registered. Called by the registration flow.",
)
async def user_registered(
    user_id: str,
    actor: AdminActor,
    service: OrderServiceDep,
) -> NotificationResponse | None:
    notification = await service.notify_user_registered(user_id)
    return NotificationResponse.model_validate(notification) if notification else None
