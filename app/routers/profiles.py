from fastapi import APIRouter, Depends, Query
import logging

from ..auth.dependencies import get_current_profile
from ..core.exceptions import FestivalAppError
from ..models.user import UserProfile, UserUpdate
from ..services.profile_service import ProfileService, get_profile_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me")
async def get_my_profile(profile: UserProfile = Depends(get_current_profile)):
    """Current user's profile, including unlocked festivals"""
    return {"success": True, "data": profile.model_dump(mode="json")}


@router.patch("/me")
async def update_my_profile(
    request: UserUpdate,
    profile: UserProfile = Depends(get_current_profile),
    profiles: ProfileService = Depends(get_profile_service),
):
    try:
        updated = await profiles.update_profile(profile.id, request.model_dump(exclude_unset=True))
        return {"success": True, "data": updated.model_dump(mode="json"), "message": "Profile updated"}
    except FestivalAppError as e:
        raise e.to_http()


@router.get("/search")
async def search_profiles(
    q: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    profile: UserProfile = Depends(get_current_profile),
    profiles: ProfileService = Depends(get_profile_service),
):
    try:
        matches = await profiles.search_users(q, limit=limit)
        return {"success": True, "data": [m.public_view() for m in matches], "count": len(matches)}
    except FestivalAppError as e:
        raise e.to_http()


@router.get("/{user_id}")
async def get_profile(
    user_id: str,
    profile: UserProfile = Depends(get_current_profile),
    profiles: ProfileService = Depends(get_profile_service),
):
    try:
        other = await profiles.get_profile(user_id)
        return {"success": True, "data": other.public_view()}
    except FestivalAppError as e:
        raise e.to_http()


@router.post("/{user_id}/follow")
async def follow_user(
    user_id: str,
    profile: UserProfile = Depends(get_current_profile),
    profiles: ProfileService = Depends(get_profile_service),
):
    try:
        await profiles.follow(profile.id, user_id)
        return {"success": True, "message": f"Now following {user_id}"}
    except FestivalAppError as e:
        raise e.to_http()


@router.delete("/{user_id}/follow")
async def unfollow_user(
    user_id: str,
    profile: UserProfile = Depends(get_current_profile),
    profiles: ProfileService = Depends(get_profile_service),
):
    try:
        await profiles.unfollow(profile.id, user_id)
        return {"success": True, "message": f"Unfollowed {user_id}"}
    except FestivalAppError as e:
        raise e.to_http()
