"""
Authentication Routes

Endpoints:
- POST /auth/google - Exchange Google id_token for session
- POST /auth/logout - Clear session
- GET /auth/me - Current user with their study profile

Auth Flow:
1. Frontend performs the Google sign-in and receives an id_token
2. Frontend POSTs id_token to /auth/google
3. Backend verifies it, upserts user + auth_identity, provisions a profile
4. Backend returns JWT (in cookie and response body)
"""

from fastapi import APIRouter, Response, status

from studpal.api.deps import CurrentUser, DbSession, create_access_token
from studpal.config import get_settings
from studpal.schemas.auth import GoogleAuthRequest, TokenResponse
from studpal.schemas.user import UserRead
from studpal.services.auth import upsert_google_user, verify_google_token
from studpal.services.profiles import ensure_profile

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


def _cookie_options() -> dict:
    # Cross-domain deployments need samesite="none" + secure
    return {
        "httponly": True,
        "secure": settings.cookie_cross_domain or settings.environment != "development",
        "samesite": "none" if settings.cookie_cross_domain else "lax",
    }


@router.post("/google", response_model=TokenResponse)
async def google_login(request: GoogleAuthRequest, response: Response, db: DbSession) -> TokenResponse:
    """Exchange a Google id_token for a session JWT."""
    claims = verify_google_token(request.id_token)
    user = await upsert_google_user(db, claims)
    await ensure_profile(db, user)
    await db.commit()

    access_token = create_access_token(user.id)
    expires_in = settings.jwt_expire_minutes * 60
    response.set_cookie(key="access_token", value=access_token, max_age=expires_in, **_cookie_options())

    return TokenResponse(access_token=access_token, expires_in=expires_in)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    """
    Clear the authentication cookie.

    A JWT the client kept elsewhere stays valid until it expires.
    """
    response.delete_cookie(key="access_token", **_cookie_options())


@router.get("/me", response_model=UserRead)
async def get_me(current_user: CurrentUser, db: DbSession) -> UserRead:
    """Current user, including whether onboarding is still pending."""
    profile = await ensure_profile(db, current_user)
    await db.commit()
    return UserRead(
        id=current_user.id,
        email=current_user.email,
        name=current_user.name,
        created_at=current_user.created_at,
        onboarded=profile.onboarded,
    )
