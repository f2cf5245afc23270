from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from shelter_admin.api.deps import get_current_user, get_notification_service
from shelter_admin.schemas.notification import RosterResponse
from shelter_admin.schemas.user import UserRecord
from shelter_admin.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=RosterResponse)
async def list_notifications(
    service: NotificationService = Depends(get_notification_service),
    user: UserRecord = Depends(get_current_user),
):
    """The current user's roster, newest first."""
    roster = await service.fetch(user.id)
    return RosterResponse(
        items=list(roster.notifications),
        unread_count=roster.unread_count,
        source=roster.source.value,
    )


@router.get("/unread-count")
async def unread_count(
    service: NotificationService = Depends(get_notification_service),
    user: UserRecord = Depends(get_current_user),
):
    roster = await service.fetch(user.id)
    return {"count": roster.unread_count}


@router.patch("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    service: NotificationService = Depends(get_notification_service),
    user: UserRecord = Depends(get_current_user),
):
    roster = await service.fetch(user.id)
    if not await service.mark_read(roster, notification_id):
        raise HTTPException(404, "Notification not found")
    return {"ok": True}


@router.post("/mark-all-read")
async def mark_all_read(
    service: NotificationService = Depends(get_notification_service),
    user: UserRecord = Depends(get_current_user),
):
    roster = await service.fetch(user.id)
    count = await service.mark_all_read(roster)
    return {"marked": count}
