"""Persisted notifications: creation (at most once) and the owner's read/delete flows."""
from datetime import datetime

from sqlalchemy import delete, exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from live_auction.core.errors import ForbiddenError, NotFoundError
from live_auction.core.security import Identity
from live_auction.db.cas import cas_insert
from live_auction.db.models import Notification, NotificationCategory
from live_auction.db.sessions import SessionFactory, session_scope
from live_auction.schemas import NotificationOut


async def create_once(
    session: AsyncSession,
    *,
    auction_id: int,
    user_id: int | None,
    category: NotificationCategory,
    message: str,
    now: datetime,
) -> Notification | None:
    """Insert a notification unless one exists for (auction, user, category).

    Returns the new (detached) row, or None when it was already there.
    """
    recipient = (
        Notification.user_id.is_(None) if user_id is None else Notification.user_id == user_id
    )
    already_sent = (
        select(Notification.id)
        .where(
            Notification.auction_id == auction_id,
            recipient,
            Notification.category == category.value,
        )
        .correlate(None)
    )
    values = {
        "user_id": user_id,
        "auction_id": auction_id,
        "message": message,
        "category": category.value,
        "is_read": False,
        "created_at": now,
    }
    notification_id = await cas_insert(session, Notification, values, [~exists(already_sent)])
    if notification_id is None:
        return None
    return Notification(id=notification_id, **values)


class NotificationService:
    """A user's own notifications: list, mark read, delete."""

    def __init__(self, session_factory: SessionFactory, limit: int = 50) -> None:
        self._session_factory = session_factory
        self._limit = limit

    async def list_for(self, identity: Identity) -> list[NotificationOut]:
        """Newest first, capped at the configured limit."""
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(Notification)
                .where(Notification.user_id == identity.user_id)
                .order_by(Notification.created_at.desc(), Notification.id.desc())
                .limit(self._limit)
            )
            return [NotificationOut.model_validate(n) for n in result.scalars().all()]

    async def _owned(self, session: AsyncSession, identity: Identity, notification_id: int) -> Notification:
        notification = await session.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        if notification.user_id != identity.user_id:
            raise ForbiddenError("Notification belongs to another user")
        return notification

    async def mark_read(self, identity: Identity, notification_id: int) -> NotificationOut:
        async with session_scope(self._session_factory) as session:
            notification = await self._owned(session, identity, notification_id)
            notification.is_read = True
            await session.flush()
            return NotificationOut.model_validate(notification)

    async def mark_all_read(self, identity: Identity) -> int:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                update(Notification)
                .where(Notification.user_id == identity.user_id, Notification.is_read.is_(False))
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount

    async def delete(self, identity: Identity, notification_id: int) -> None:
        async with session_scope(self._session_factory) as session:
            notification = await self._owned(session, identity, notification_id)
            await session.delete(notification)

    async def delete_all(self, identity: Identity, *, only_read: bool = False) -> int:
        async with session_scope(self._session_factory) as session:
            stmt = delete(Notification).where(Notification.user_id == identity.user_id)
            if only_read:
                stmt = stmt.where(Notification.is_read.is_(True))
            result = await session.execute(stmt.execution_options(synchronize_session=False))
            return result.rowcount
