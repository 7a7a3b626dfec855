"""Notification schemas."""

from datetime import datetime
from uuid import UUID

from studpal.schemas.base import BaseSchema


class NotificationRead(BaseSchema):
    id: UUID
    user_id: UUID
    kind: str
    title: str
    content: str
    event_id: UUID | None
    group_id: UUID | None
    reminder_offset_minutes: int | None
    scheduled_for: datetime | None
    is_read: bool
    created_at: datetime
