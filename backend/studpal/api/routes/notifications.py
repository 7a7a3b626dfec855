"""Notification routes."""

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter
from sqlalchemy import func, or_, select

from studpal.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from studpal.db.models import Notification
from studpal.schemas.notifications import NotificationRead

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=list[NotificationRead])
async def list_notifications(
    current_user: CurrentUser,
    db: DbSession,
    unread_only: bool = False,
    due_only: bool = False,
) -> list[NotificationRead]:
    """
    List notifications for the current user, newest first.

    Filters:
    - unread_only: hide notifications already marked read
    - due_only: hide reminders scheduled in the future
    """
    query = select(Notification).where(Notification.user_id == current_user.id)
    if unread_only:
        query = query.where(Notification.is_read.is_(False))
    if due_only:
        query = query.where(
            or_(
                Notification.scheduled_for.is_(None),
                Notification.scheduled_for <= datetime.now(timezone.utc),
            )
        )

    sort_key = func.coalesce(Notification.scheduled_for, Notification.created_at)
    query = query.order_by(sort_key.desc(), Notification.id.asc())

    result = await db.execute(query)
    return [NotificationRead.model_validate(n) for n in result.scalars()]


@router.patch("/{notification_id}/read", response_model=NotificationRead)
async def mark_notification_read(
    notification_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> NotificationRead:
    """Mark a notification as read."""
    notification = await get_user_resource_or_404(db, Notification, notification_id, current_user.id)
    notification.is_read = True
    await db.commit()
    return NotificationRead.model_validate(notification)
