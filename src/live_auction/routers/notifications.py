"""The caller's notifications."""
from fastapi import APIRouter, Query, Response, status

from live_auction.deps import CurrentUser, Notifications
from live_auction.schemas import AffectedRows, NotificationOut

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
async def list_notifications(
    notifications: Notifications, identity: CurrentUser
) -> list[NotificationOut]:
    """Newest first, at most NOTIFICATIONS_LIMIT entries."""
    return await notifications.list_for(identity)


@router.put("/read-all", response_model=AffectedRows)
async def mark_all_read(notifications: Notifications, identity: CurrentUser) -> AffectedRows:
    return AffectedRows(affected=await notifications.mark_all_read(identity))


@router.put("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: int, notifications: Notifications, identity: CurrentUser
) -> NotificationOut:
    return await notifications.mark_read(identity, notification_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: int, notifications: Notifications, identity: CurrentUser
) -> Response:
    await notifications.delete(identity, notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", response_model=AffectedRows)
async def delete_notifications(
    notifications: Notifications,
    identity: CurrentUser,
    only_read: bool = Query(default=False, description="Delete only notifications already read"),
) -> AffectedRows:
    return AffectedRows(affected=await notifications.delete_all(identity, only_read=only_read))
