"""Calendar event routes."""

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy import delete

from studpal.api.deps import CurrentUser, DbSession, SessionFactory, get_user_resource_or_404
from studpal.config import get_settings
from studpal.db.models import Event, Notification
from studpal.schemas.events import CalendarResponse, EventCreate, EventRead
from studpal.services import calendar

router = APIRouter(prefix="/events", tags=["events"])
settings = get_settings()


@router.get("/", response_model=CalendarResponse)
async def get_calendar(
    current_user: CurrentUser,
    db: DbSession,
    month: int | None = None,
    year: int | None = None,
) -> CalendarResponse:
    """
    Month view for the calendar.

    - month: 1-12, year: e.g. 2026. Both default to the current UTC month.
    - events: events starting or ending in that month
    - upcoming_events: next 7 days, priority desc then date asc, at most 5
    """
    now = datetime.now(timezone.utc)
    events = await calendar.list_month_events(
        db,
        current_user.id,
        year if year is not None else now.year,
        month if month is not None else now.month,
    )
    upcoming = await calendar.list_upcoming_events(
        db,
        current_user.id,
        now,
        window_days=settings.upcoming_window_days,
        limit=settings.upcoming_limit,
    )
    return CalendarResponse(
        events=[EventRead.model_validate(e) for e in events],
        upcoming_events=[EventRead.model_validate(e) for e in upcoming],
    )


@router.post("/", response_model=EventRead, status_code=status.HTTP_201_CREATED)
async def create_event(
    data: EventCreate,
    current_user: CurrentUser,
    db: DbSession,
    session_factory: SessionFactory,
) -> EventRead:
    """Create an event and one reminder notification per requested offset."""
    event = await calendar.create_event(db, session_factory, current_user, data)
    return EventRead.model_validate(event)


@router.get("/{event_id}", response_model=EventRead)
async def get_event(event_id: UUID, current_user: CurrentUser, db: DbSession) -> EventRead:
    """Get a specific event by ID."""
    event = await get_user_resource_or_404(db, Event, event_id, current_user.id)
    return EventRead.model_validate(event)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(event_id: UUID, current_user: CurrentUser, db: DbSession) -> None:
    """Delete an event together with its reminders."""
    event = await get_user_resource_or_404(db, Event, event_id, current_user.id)
    await db.execute(delete(Notification).where(Notification.event_id == event.id))
    await db.delete(event)
    await db.commit()
