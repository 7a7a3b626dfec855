"""Calendar queries and reminder scheduling."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import and_, case, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studpal.db.models import Event, Notification, NotificationKind, Priority, User
from studpal.errors import ValidationError
from studpal.schemas.events import EventCreate

logger = logging.getLogger(__name__)

PRIORITY_RANK = {Priority.HIGH.value: 3, Priority.MEDIUM.value: 2, Priority.LOW.value: 1}


def month_range(year: int, month: int) -> tuple[datetime, datetime]:
    """Return [first instant of the month, first instant of the next month) in UTC."""
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    if not 1 <= year <= 9998:
        raise ValidationError("year is out of range")
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


async def list_month_events(db: AsyncSession, user_id: UUID, year: int, month: int) -> list[Event]:
    """Events starting or ending inside the given month, earliest first."""
    start, end = month_range(year, month)
    query = (
        select(Event)
        .where(
            Event.user_id == user_id,
            or_(
                and_(Event.start_at >= start, Event.start_at < end),
                and_(Event.end_at >= start, Event.end_at < end),
            ),
        )
        .order_by(Event.start_at.asc(), Event.id.asc())
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_upcoming_events(
    db: AsyncSession,
    user_id: UUID,
    now: datetime,
    window_days: int = 7,
    limit: int = 5,
) -> list[Event]:
    """Events starting within the window, highest priority first, then soonest."""
    rank = case(PRIORITY_RANK, value=Event.priority, else_=0)
    query = (
        select(Event)
        .where(
            Event.user_id == user_id,
            Event.start_at >= now,
            Event.start_at <= now + timedelta(days=window_days),
        )
        .order_by(rank.desc(), Event.start_at.asc(), Event.id.asc())
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


def _reminder_for(event: Event, offset: int) -> Notification:
    scheduled_for = event.start_at - timedelta(minutes=offset)
    return Notification(
        user_id=event.user_id,
        kind=NotificationKind.EVENT_REMINDER.value,
        title=f"Reminder: {event.title}",
        content=f"{event.title} starts at {event.start_at:%Y-%m-%d %H:%M} UTC",
        event_id=event.id,
        reminder_offset_minutes=offset,
        scheduled_for=scheduled_for,
    )


async def _insert_reminder(
    session_factory: async_sessionmaker[AsyncSession], event: Event, offset: int
) -> None:
    async with session_factory() as session:
        session.add(_reminder_for(event, offset))
        await session.commit()


async def schedule_reminders(
    session_factory: async_sessionmaker[AsyncSession],
    event: Event,
    offsets: list[int],
) -> int:
    """
    Insert one reminder notification per offset, concurrently.

    Each insert runs in its own session and commits on its own; a failed
    insert is logged and does not undo the event or the other reminders.
    Returns how many reminders were stored.
    """
    if not offsets:
        return 0

    results = await asyncio.gather(
        *(_insert_reminder(session_factory, event, offset) for offset in offsets),
        return_exceptions=True,
    )

    stored = 0
    for offset, outcome in zip(offsets, results):
        if isinstance(outcome, BaseException):
            logger.error(
                "Failed to store %d-minute reminder for event %s",
                offset,
                event.id,
                exc_info=outcome,
            )
        else:
            stored += 1
    return stored


async def create_event(
    db: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    user: User,
    data: EventCreate,
) -> Event:
    """Store an event, then fan out its reminder notifications."""
    event = Event(user_id=user.id, **data.model_dump())
    db.add(event)
    await db.commit()

    stored = await schedule_reminders(session_factory, event, data.reminders)
    logger.info(
        "Created event %s for user %s with %d/%d reminders",
        event.id,
        user.id,
        stored,
        len(data.reminders),
    )
    return event
