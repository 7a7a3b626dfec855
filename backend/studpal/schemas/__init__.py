"""Pydantic schemas for API request/response validation."""

from studpal.schemas.auth import GoogleAuthRequest, TokenResponse
from studpal.schemas.events import CalendarResponse, EventCreate, EventRead
from studpal.schemas.files import (
    FileDownloadURLResponse,
    FileUploadURLRequest,
    FileUploadURLResponse,
    StatsResponse,
    StorageUsageResponse,
)
from studpal.schemas.groups import (
    GroupCreate,
    GroupRead,
    MemberRead,
    MessageCreate,
    MessageRead,
    SharedFileCreate,
    SharedFileRead,
)
from studpal.schemas.materials import (
    MaterialDraft,
    MaterialFilters,
    MaterialRead,
    MaterialSubmission,
    MaterialUpdate,
)
from studpal.schemas.notifications import NotificationRead
from studpal.schemas.profile import OnboardingRequest, ProfileRead
from studpal.schemas.tags import TagCreate, TagRead, TagUpdate
from studpal.schemas.user import UserRead

__all__ = [
    # Auth
    "GoogleAuthRequest",
    "TokenResponse",
    "UserRead",
    # Profile
    "OnboardingRequest",
    "ProfileRead",
    # Materials
    "MaterialDraft",
    "MaterialFilters",
    "MaterialRead",
    "MaterialSubmission",
    "MaterialUpdate",
    # Tags
    "TagCreate",
    "TagRead",
    "TagUpdate",
    # Calendar
    "CalendarResponse",
    "EventCreate",
    "EventRead",
    "NotificationRead",
    # Files & dashboard
    "FileDownloadURLResponse",
    "FileUploadURLRequest",
    "FileUploadURLResponse",
    "StatsResponse",
    "StorageUsageResponse",
    # Groups
    "GroupCreate",
    "GroupRead",
    "MemberRead",
    "MessageCreate",
    "MessageRead",
    "SharedFileCreate",
    "SharedFileRead",
]
