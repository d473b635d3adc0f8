"""
Discover Router - the open social feed
"""

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from typing import List

from ..auth.dependencies import get_current_profile
from ..core.config import settings
from ..core.exceptions import FestivalAppError
from ..models.social import CommentCreate
from ..models.user import UserProfile
from ..services.discover_service import DiscoverService, get_discover_service

router = APIRouter(prefix="/discover", tags=["discover"])


@router.get("/posts")
async def list_discover_posts(
    limit: int = Query(settings.DEFAULT_FEED_LIMIT, ge=1, le=500),
    profile: UserProfile = Depends(get_current_profile),
    discover: DiscoverService = Depends(get_discover_service),
):
    try:
        posts = await discover.list_posts(limit=limit)
        return {"success": True, "data": [p.public_view() for p in posts], "count": len(posts)}
    except FestivalAppError as e:
        raise e.to_http()


@router.post("/posts", status_code=201)
async def create_discover_post(
    text: str = Form(""),
    files: List[UploadFile] = File(default=[]),
    profile: UserProfile = Depends(get_current_profile),
    discover: DiscoverService = Depends(get_discover_service),
):
    try:
        post = await discover.create_post(profile, text, files)
        return {"success": True, "data": post.public_view(), "message": "Post created"}
    except FestivalAppError as e:
        raise e.to_http()


@router.delete("/posts/{post_id}")
async def delete_discover_post(
    post_id: str,
    profile: UserProfile = Depends(get_current_profile),
    discover: DiscoverService = Depends(get_discover_service),
):
    try:
        await discover.delete_post(post_id, profile.id)
        return {"success": True, "message": "Post deleted"}
    except FestivalAppError as e:
        raise e.to_http()


@router.post("/posts/{post_id}/like")
async def toggle_like(
    post_id: str,
    profile: UserProfile = Depends(get_current_profile),
    discover: DiscoverService = Depends(get_discover_service),
):
    try:
        liked = await discover.toggle_like(post_id, profile.id)
        return {"success": True, "data": {"liked": liked}}
    except FestivalAppError as e:
        raise e.to_http()


@router.post("/posts/{post_id}/comments", status_code=201)
async def add_comment(
    post_id: str,
    request: CommentCreate,
    profile: UserProfile = Depends(get_current_profile),
    discover: DiscoverService = Depends(get_discover_service),
):
    try:
        comment = await discover.add_comment(post_id, profile, request.text)
        return {"success": True, "data": comment.model_dump(mode="json")}
    except FestivalAppError as e:
        raise e.to_http()


@router.post("/posts/{post_id}/comments/{comment_id}/like")
async def toggle_comment_like(
    post_id: str,
    comment_id: str,
    profile: UserProfile = Depends(get_current_profile),
    discover: DiscoverService = Depends(get_discover_service),
):
    try:
        liked = await discover.toggle_comment_like(post_id, comment_id, profile.id)
        return {"success": True, "data": {"liked": liked}}
    except FestivalAppError as e:
        raise e.to_http()
