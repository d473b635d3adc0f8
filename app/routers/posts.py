from fastapi import APIRouter, Depends
import logging

from ..auth.dependencies import require_business_account
from ..core.exceptions import FestivalAppError
from ..models.user import UserProfile
from ..services.post_service import PostService, get_post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


@router.delete("/{post_id}/media/{media_index}")
async def delete_media(
    post_id: str,
    media_index: int,
    owner: UserProfile = Depends(require_business_account),
    posts: PostService = Depends(get_post_service),
):
    """Delete one media item; the post goes too when it was the last one"""
    try:
        post = await posts.delete_media(post_id, media_index, owner)
        return {
            "success": True,
            "data": post.public_view() if post else None,
            "message": "Content deleted successfully",
        }
    except FestivalAppError as e:
        raise e.to_http()
