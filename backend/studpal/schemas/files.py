"""Pydantic schemas for file storage operations."""

from pydantic import BaseModel, Field


# Request schemas
class FileUploadURLRequest(BaseModel):
    """Request for a presigned upload URL."""

    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field("application/pdf", min_length=1, max_length=255)


# Response schemas
class FileUploadURLResponse(BaseModel):
    """
    Presigned POST data.

    file_id is the storage key to send back as a material's file_id or a
    shared file's file_id once the upload has finished.
    """

    upload_url: str
    fields: dict
    file_id: str


class FileDownloadURLResponse(BaseModel):
    url: str
    expires_in: int


class StorageUsageResponse(BaseModel):
    """Bytes used by the user's PDF materials against their quota."""

    used: int
    total: int
    percentage: float


class StatsResponse(BaseModel):
    """Dashboard counters."""

    total_materials: int
    due_this_week: int  # high-priority materials added in the last 7 days
    shared_with_me: int  # files other members shared in the user's groups
    recent_activity: int  # materials added in the last 24 hours
