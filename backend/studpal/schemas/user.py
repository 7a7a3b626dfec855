"""User schemas."""

from datetime import datetime
from uuid import UUID

from studpal.schemas.base import BaseSchema


class UserRead(BaseSchema):
    """The signed-in account as the frontend sees it."""

    id: UUID
    email: str | None
    name: str
    created_at: datetime
    onboarded: bool = False
