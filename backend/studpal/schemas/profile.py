"""Profile schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from studpal.schemas.base import BaseSchema

MajorLiteral = Literal["cs", "biology", "business", "engineering", "other"]
AcademicYearLiteral = Literal["freshman", "sophomore", "junior", "senior", "graduate"]


class OnboardingRequest(BaseSchema):
    """Study details collected on first sign-in."""

    major: MajorLiteral
    academic_year: AcademicYearLiteral


class ProfileRead(BaseSchema):
    user_id: UUID
    display_name: str
    email: str | None
    major: str  # may be the "undeclared" placeholder
    academic_year: str  # may be the "unspecified" placeholder
    onboarded: bool
    created_at: datetime
    updated_at: datetime
