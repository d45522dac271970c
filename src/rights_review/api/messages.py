"""Notification inbox endpoints scoped to the authenticated caller."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Body, Depends, Request

from rights_review.api.auth import with_authentication
from rights_review.domain.sessions import User  # noqa: TC001

if TYPE_CHECKING:
    from rights_review.services.notifications import NotificationService

router = APIRouter(prefix="/api/messages", tags=["messages"])


def _service(request: Request) -> NotificationService:
    return request.app.state.container.notification_service


@router.get("")
async def list_messages(
    request: Request, user: User = Depends(with_authentication)
) -> dict[str, object]:
    notifications = _service(request).list(user.email)
    return {"success": True, "messages": notifications, "count": len(notifications)}


@router.get("/{notification_id}")
async def get_message(
    notification_id: str, request: Request, user: User = Depends(with_authentication)
) -> dict[str, object]:
    return {
        "success": True,
        "message": _service(request).get(user.email, notification_id),
    }


@router.post("")
async def create_message(
    request: Request,
    body: dict[str, Any] = Body(...),
    user: User = Depends(with_authentication),
) -> dict[str, object]:
    """Create a notification in the caller's inbox."""
    return {"success": True, "message": _service(request).create(user.email, body)}


@router.post("/{notification_id}")
async def update_message(
    notification_id: str,
    request: Request,
    body: dict[str, Any] = Body(...),
    user: User = Depends(with_authentication),
) -> dict[str, object]:
    """Merge changes into one of the caller's notifications."""
    updated = _service(request).update(user.email, notification_id, body)
    return {"success": True, "message": updated}


@router.delete("/{notification_id}")
async def delete_message(
    notification_id: str, request: Request, user: User = Depends(with_authentication)
) -> dict[str, object]:
    _service(request).delete(user.email, notification_id)
    return {
        "success": True,
        "message": "Notification deleted successfully",
        "notificationId": notification_id,
    }
