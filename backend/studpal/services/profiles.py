"""User profile provisioning."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from studpal.db.models import (
    PROFILE_PLACEHOLDER_MAJOR,
    PROFILE_PLACEHOLDER_YEAR,
    User,
    UserProfile,
)

logger = logging.getLogger(__name__)


async def ensure_profile(db: AsyncSession, user: User) -> UserProfile:
    """
    Return the user's profile, provisioning a placeholder one if missing.

    The placeholder copies name and email from the authenticated identity
    and leaves major/academic year unset until onboarding. The new row is
    added to the session; the caller commits.
    """
    profile = await db.get(UserProfile, user.id)
    if profile is not None:
        return profile

    profile = UserProfile(
        user_id=user.id,
        display_name=user.name,
        email=user.email,
        major=PROFILE_PLACEHOLDER_MAJOR,
        academic_year=PROFILE_PLACEHOLDER_YEAR,
        onboarded=False,
    )
    db.add(profile)
    logger.info("Provisioned placeholder profile for user %s", user.id)
    return profile
