"""Calendar event schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from studpal.schemas.base import BaseSchema, PriorityLiteral, as_utc
from studpal.schemas.materials import check_url

EventTypeLiteral = Literal["deadline", "exam", "meeting", "other"]

MAX_REMINDER_MINUTES = 60 * 24 * 28  # four weeks


class EventBase(BaseSchema):
    """Base event schema."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    start_at: datetime
    end_at: datetime | None = None
    type: EventTypeLiteral = "deadline"
    priority: PriorityLiteral = "medium"
    location: str | None = Field(None, max_length=255)
    is_online: bool = False
    meeting_url: str | None = Field(None, max_length=2048)

    @field_validator("start_at", "end_at")
    @classmethod
    def normalize_timezone(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @field_validator("meeting_url")
    @classmethod
    def validate_meeting_url(cls, value: str | None) -> str | None:
        return check_url(value) if value else None


class EventCreate(EventBase):
    """
    Schema for creating an event.

    reminders are minute offsets before start_at; each distinct offset
    becomes one scheduled notification.
    """

    reminders: list[int] = Field(default_factory=list, max_length=10)

    @field_validator("reminders")
    @classmethod
    def validate_reminders(cls, value: list[int]) -> list[int]:
        for offset in value:
            if offset < 0 or offset > MAX_REMINDER_MINUTES:
                raise ValueError(f"reminder offsets must be between 0 and {MAX_REMINDER_MINUTES} minutes")
        return sorted(set(value), reverse=True)

    @model_validator(mode="after")
    def validate_time_range(self) -> "EventCreate":
        """Ensure end_at >= start_at."""
        if self.end_at is not None and self.end_at < self.start_at:
            raise ValueError("end_at must not be before start_at")
        return self


class EventRead(EventBase):
    """Schema for reading event data."""

    id: UUID
    user_id: UUID
    reminders: list[int]
    created_at: datetime
    updated_at: datetime


class CalendarResponse(BaseSchema):
    """Month view plus the short list of upcoming events."""

    events: list[EventRead]
    upcoming_events: list[EventRead]
