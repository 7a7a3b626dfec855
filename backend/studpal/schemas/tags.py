"""Tag schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from studpal.schemas.base import BaseSchema

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class TagCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    color: str | None = Field(None, pattern=HEX_COLOR)


class TagUpdate(BaseSchema):
    name: str | None = Field(None, min_length=1, max_length=100)
    color: str | None = Field(None, pattern=HEX_COLOR)


class TagRead(BaseSchema):
    id: UUID
    user_id: UUID
    name: str
    color: str | None
    count: int
    created_at: datetime
