from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import logging

from .firebase_auth import firebase_auth
from ..core.exceptions import FestivalAppError
from ..models.user import UserProfile
from ..services.profile_service import ProfileService, get_profile_service

security = HTTPBearer()
logger = logging.getLogger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> dict:
    """Decoded claims of the Firebase ID token sent as the bearer credential."""
    claims = await firebase_auth.verify_token(credentials.credentials)
    if not claims or not claims.get("uid"):
        logger.warning("[Auth] Rejected bearer token")
        raise _unauthorized("Invalid authentication credentials")
    return claims


async def get_current_profile(
    current_user: dict = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
) -> UserProfile:
    """
    The signed-in user's profile, loaded for this request and handed to the
    services explicitly. Created on first sign-in.
    """
    try:
        return await profiles.ensure_profile(
            current_user["uid"],
            email=current_user.get("email", ""),
            display_name=current_user.get("name", ""),
        )
    except FestivalAppError as e:
        raise e.to_http()


async def require_business_account(profile: UserProfile = Depends(get_current_profile)) -> UserProfile:
    if not profile.isBusinessAccount:
        logger.warning(f"[Auth] Business access denied for {profile.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Business account required",
        )
    return profile
