"""
Chat Router - API endpoints for direct messages
Handles one-to-one rooms and messages, including shared festival media
"""

from fastapi import APIRouter, HTTPException, Depends, Query
import logging

from ..auth.dependencies import get_current_profile
from ..core.exceptions import FestivalAppError
from ..models.social import MessageCreate, RoomCreate
from ..models.user import UserProfile
from ..services.chat_service import ChatService, get_chat_service
from ..services.post_service import PostService, get_post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

# ===== Chat Room Endpoints =====

@router.post("/rooms")
async def create_or_get_room(
    request: RoomCreate,
    profile: UserProfile = Depends(get_current_profile),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Open the conversation with another user, creating it the first time"""
    try:
        room = await chat_service.get_or_create_direct_room(profile.id, request.participantId)
        return {
            "success": True,
            "data": room.model_dump(mode="json"),
            "message": "Chat room created or retrieved successfully"
        }
    except FestivalAppError as e:
        raise e.to_http()
    except Exception as e:
        logger.error(f"Error creating/getting room: {str(e)}")
        raise HTTPException(status_code=500, detail="Error opening conversation")

@router.get("/rooms")
async def get_user_rooms(
    limit: int = Query(50, ge=1, le=100),
    profile: UserProfile = Depends(get_current_profile),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Get all chat rooms for the current user"""
    try:
        rooms = await chat_service.list_rooms(profile.id, limit=limit)
        return {
            "success": True,
            "data": [room.model_dump(mode="json") for room in rooms],
            "count": len(rooms)
        }
    except FestivalAppError as e:
        raise e.to_http()

@router.get("/rooms/{room_id}")
async def get_room(
    room_id: str,
    profile: UserProfile = Depends(get_current_profile),
    chat_service: ChatService = Depends(get_chat_service),
):
    try:
        room = await chat_service.get_room(room_id, profile.id)
        return {"success": True, "data": room.model_dump(mode="json")}
    except FestivalAppError as e:
        raise e.to_http()

# ===== Message Endpoints =====

@router.get("/rooms/{room_id}/messages")
async def get_room_messages(
    room_id: str,
    limit: int = Query(100, ge=1, le=500),
    profile: UserProfile = Depends(get_current_profile),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Messages in a room, oldest first"""
    try:
        messages = await chat_service.list_messages(room_id, profile.id, limit=limit)
        return {
            "success": True,
            "data": [m.model_dump(mode="json") for m in messages],
            "count": len(messages)
        }
    except FestivalAppError as e:
        raise e.to_http()

@router.post("/rooms/{room_id}/messages", status_code=201)
async def send_message(
    room_id: str,
    request: MessageCreate,
    profile: UserProfile = Depends(get_current_profile),
    chat_service: ChatService = Depends(get_chat_service),
    posts: PostService = Depends(get_post_service),
):
    """Send a text message or share a festival media item you can see"""
    try:
        shared = request.sharedPost
        if shared is not None:
            post, media = await posts.get_visible_media(shared.postId, shared.mediaIndex, profile)
            shared = shared.model_copy(update={'festivalId': post.festivalId, 'categoryId': media.categoryId})

        message = await chat_service.send_message(room_id, profile.id, request.text, shared_post=shared)
        return {
            "success": True,
            "data": message.model_dump(mode="json"),
            "message": "Message sent successfully"
        }
    except FestivalAppError as e:
        raise e.to_http()
    except Exception as e:
        logger.error(f"Error sending message: {str(e)}")
        raise HTTPException(status_code=500, detail="Error sending message")
