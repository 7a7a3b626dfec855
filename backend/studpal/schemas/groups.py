"""Study group schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field

from studpal.schemas.base import BaseSchema


class GroupCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    is_private: bool = False


class GroupRead(BaseSchema):
    id: UUID
    owner_id: UUID
    name: str
    description: str | None
    is_private: bool
    created_at: datetime
    member_count: int = 0
    is_member: bool = False


class MemberRead(BaseSchema):
    id: UUID
    group_id: UUID
    user_id: UUID
    role: Literal["owner", "member"]
    joined_at: datetime


class MessageCreate(BaseSchema):
    content: str = Field(..., min_length=1, max_length=4000)


class MessageRead(BaseSchema):
    id: UUID
    group_id: UUID
    user_id: UUID
    author_name: str
    content: str
    created_at: datetime


class SharedFileCreate(BaseSchema):
    """Register a file already uploaded via /files/upload-url."""

    file_id: str = Field(..., min_length=1, max_length=512)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_type: str = Field(..., min_length=1, max_length=255)
    file_size: int = Field(..., ge=1)


class SharedFileRead(BaseSchema):
    id: UUID
    group_id: UUID
    user_id: UUID
    file_id: str
    file_name: str
    file_type: str
    file_size: int
    created_at: datetime
