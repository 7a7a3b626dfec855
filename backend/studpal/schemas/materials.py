"""Material schemas.

A submission arrives loosely typed (MaterialSubmission) so the validation
layer can apply its rules in order and report them as 400s. Once validated
it becomes one variant of the MaterialDraft tagged union, which carries only
the fields that belong to its type.
"""

from datetime import datetime
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import Field, HttpUrl, TypeAdapter, field_validator

from studpal.schemas.base import BaseSchema, PriorityLiteral

MaterialTypeLiteral = Literal["note", "pdf", "link"]
MaterialSortLiteral = Literal["newest", "oldest", "priority"]

_http_url = TypeAdapter(HttpUrl)


def check_url(value: str) -> str:
    """Validate that value is an http(s) URL, returning it unchanged."""
    try:
        _http_url.validate_python(value)
    except ValueError:
        raise ValueError("must be a valid http(s) URL") from None
    return value


# =============================================================================
# REQUEST PAYLOADS
# =============================================================================


class MaterialSubmission(BaseSchema):
    """Raw create payload. Every field optional; rules live in the service layer."""

    title: str | None = None
    type: str | None = None
    content: str | None = None
    url: str | None = None
    file_id: str | None = None
    file_size: int | None = None
    tags: str | list[str] | None = None  # "a, b" or ["a", "b"]
    priority: str | None = None


class MaterialUpdate(BaseSchema):
    """Schema for updating a material. All fields optional; type is immutable."""

    title: str | None = None
    type: str | None = None
    content: str | None = None
    url: str | None = None
    file_id: str | None = None
    file_size: int | None = None
    tags: str | list[str] | None = None
    priority: str | None = None


# =============================================================================
# VALIDATED DRAFTS (tagged union over type)
# =============================================================================


class DraftBase(BaseSchema):
    title: str = Field(..., min_length=1, max_length=255)
    priority: PriorityLiteral
    tags: list[str] = Field(default_factory=list)


class NoteDraft(DraftBase):
    type: Literal["note"]
    content: str = Field(..., min_length=1)


class PdfDraft(DraftBase):
    type: Literal["pdf"]
    file_id: str = Field(..., min_length=1, max_length=512)
    file_size: int | None = Field(None, ge=0)


class LinkDraft(DraftBase):
    type: Literal["link"]
    url: str = Field(..., min_length=1, max_length=2048)

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        return check_url(value)


MaterialDraft = Annotated[Union[NoteDraft, PdfDraft, LinkDraft], Field(discriminator="type")]
material_draft_adapter: TypeAdapter[NoteDraft | PdfDraft | LinkDraft] = TypeAdapter(MaterialDraft)


# =============================================================================
# QUERY + RESPONSE
# =============================================================================


class MaterialFilters(BaseSchema):
    """Filter set for listing materials. Empty strings mean "not filtered"."""

    type: MaterialTypeLiteral | None = None
    tag: str | None = None
    priority: PriorityLiteral | None = None
    q: str | None = None
    sort: MaterialSortLiteral = "newest"

    @field_validator("type", "tag", "priority", "q", "sort", mode="before")
    @classmethod
    def blank_to_none(cls, value, info):
        if isinstance(value, str) and not value.strip():
            return "newest" if info.field_name == "sort" else None
        return value


class MaterialRead(BaseSchema):
    """Schema for reading material data."""

    id: UUID
    user_id: UUID
    title: str
    type: MaterialTypeLiteral
    content: str | None = None
    url: str | None = None
    file_id: str | None = None
    file_size: int | None = None
    tags: list[str]
    priority: PriorityLiteral
    created_at: datetime
    updated_at: datetime
