"""Profile and onboarding routes."""

import logging

from fastapi import APIRouter, status

from studpal.api.deps import CurrentUser, DbSession
from studpal.config import get_settings
from studpal.errors import ConflictError
from studpal.schemas.profile import OnboardingRequest, ProfileRead
from studpal.services.profiles import ensure_profile
from studpal.services.tags import create_missing_tags

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("/", response_model=ProfileRead)
async def get_profile(current_user: CurrentUser, db: DbSession) -> ProfileRead:
    """Get the current user's profile, provisioning a placeholder if needed."""
    profile = await ensure_profile(db, current_user)
    await db.commit()
    return ProfileRead.model_validate(profile)


@router.post("/onboarding", response_model=ProfileRead, status_code=status.HTTP_201_CREATED)
async def complete_onboarding(
    data: OnboardingRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> ProfileRead:
    """
    Record major and academic year and seed the default tags.

    A placeholder profile (created by an earlier material upload) is
    completed in place; an already onboarded profile is a 409.
    """
    profile = await ensure_profile(db, current_user)
    if profile.onboarded:
        raise ConflictError("Profile already exists")

    profile.major = data.major
    profile.academic_year = data.academic_year
    profile.onboarded = True
    await create_missing_tags(db, current_user.id, settings.default_tags)
    await db.commit()

    logger.info("User %s completed onboarding", current_user.id)
    return ProfileRead.model_validate(profile)
