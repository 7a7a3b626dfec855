"""Google sign-in: id_token verification and account upsert."""

import logging

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studpal.config import get_settings
from studpal.db.models import AuthIdentity, User, utcnow
from studpal.errors import AuthenticationError

logger = logging.getLogger(__name__)
settings = get_settings()

GOOGLE_PROVIDER = "google"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


def verify_google_token(token: str) -> dict:
    """
    Verify a Google id_token and return its claims.

    Checks signature, expiry, audience and issuer. An unverified email is
    dropped from the claims so it is never used for account linking.
    """
    try:
        claims = google_id_token.verify_oauth2_token(
            token,
            google_requests.Request(),
            settings.google_client_id,
        )
        if claims.get("iss") not in GOOGLE_ISSUERS:
            raise ValueError("Invalid issuer")
    except ValueError as e:
        logger.info("Rejected Google id_token: %s", e)
        raise AuthenticationError(f"Invalid Google id_token: {e}")

    if claims.get("email") and not claims.get("email_verified", False):
        claims = {**claims, "email": None}
    return claims


async def upsert_google_user(db: AsyncSession, claims: dict) -> User:
    """
    Find or create the user behind a verified Google identity.

    Known identities refresh their last login and email. New identities
    link to an existing account with the same email, or create one.
    The caller commits.
    """
    provider_user_id = claims["sub"]
    email = claims.get("email")
    name = claims.get("name") or email or "Unknown User"

    result = await db.execute(
        select(AuthIdentity)
        .options(selectinload(AuthIdentity.user))
        .where(
            AuthIdentity.provider == GOOGLE_PROVIDER,
            AuthIdentity.provider_user_id == provider_user_id,
        )
    )
    identity = result.scalar_one_or_none()

    if identity is not None:
        identity.last_login_at = utcnow()
        if email:
            identity.email = email
        return identity.user

    user = None
    if email:
        result = await db.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()

    if user is None:
        user = User(email=email.lower() if email else None, name=name)
        db.add(user)
        await db.flush()
        logger.info("Created user %s from Google sign-in", user.id)

    db.add(
        AuthIdentity(
            user_id=user.id,
            provider=GOOGLE_PROVIDER,
            provider_user_id=provider_user_id,
            email=email,
        )
    )
    return user
