"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from orderflow.api.middleware.error_handler import AuthorizationError
from orderflow.services.catalog_service import CatalogService
from orderflow.services.notification_service import NotificationDispatcher
from orderflow.services.order_lifecycle import Actor, ActorRole
from orderflow.services.order_service import OrderService


async def get_actor(
    x_actor_role: Annotated[str, Header(description="admin, requester or system")] = "",
    x_actor_id: Annotated[str | None, Header(description="Id of the acting user")] = None,
) -> Actor:
    """Build the acting identity from the actor headers.

    Authentication happens upstream; this service trusts the headers set by
    the gateway in front of it.

    Raises:
        HTTPException: 401 if the role is missing or unknown, or a requester
            has no id.
    """
    if not x_actor_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-Role header required",
        )

    try:
        role = ActorRole(x_actor_role.strip().lower())
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown actor role: {x_actor_role}",
        ) from e

    if role == ActorRole.REQUESTER and not x_actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-Id header required for requesters",
        )

    return Actor(role=role, id=x_actor_id or None)


async def get_admin_actor(actor: Annotated[Actor, Depends(get_actor)]) -> Actor:
    """Require an administrator or system actor."""
    if actor.role == ActorRole.REQUESTER:
        raise AuthorizationError("Administrator access required")
    return actor


def get_order_service() -> OrderService:
    return OrderService()


def get_notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher()


def get_catalog_service() -> CatalogService:
    return CatalogService()


# Type aliases for cleaner dependency injection
CurrentActor = Annotated[Actor, Depends(get_actor)]
AdminActor = Annotated[Actor, Depends(get_admin_actor)]
OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
NotificationDispatcherDep = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]
CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]
