"""
Chat Service - Business logic for direct messages
Handles one-to-one rooms and messages, including shared festival media
"""

from typing import Dict, List, Optional
from datetime import datetime
import logging

from ..core.exceptions import NotFoundError, PermissionDeniedError, PersistenceWriteError, ValidationError
from ..database.collections import COLLECTIONS
from ..database.database_service import DatabaseService, database_service
from ..models.social import ChatRoom, Message, SharedPost

logger = logging.getLogger(__name__)


class ChatService:
    """Service for managing direct chat rooms and messages"""

    def __init__(self, db: DatabaseService = None):
        self.db = db or database_service

    # ===== Chat Room Operations =====

    async def get_or_create_direct_room(self, user_id: str, other_user_id: str) -> ChatRoom:
        """Get the existing room between two users or create it"""
        if user_id == other_user_id:
            raise ValidationError("Cannot open a conversation with yourself")

        ok, _, _ = await self.db.get_document(COLLECTIONS['users'], other_user_id)
        if not ok:
            raise NotFoundError(f"User not found: {other_user_id}")

        success, docs, error = await self.db.query_documents(
            COLLECTIONS['chat_rooms'],
            filters=[("participants", "array_contains", user_id)],
        )
        if not success:
            raise PersistenceWriteError("Error loading conversations", cause=error)

        # Sort participants for consistent comparison
        wanted = sorted([user_id, other_user_id])
        for doc in docs:
            if sorted(doc.get('participants', [])) == wanted:
                return ChatRoom.from_document(doc)

        room_data = {
            'participants': wanted,
            'createdBy': user_id,
            'lastMessage': None,
            'lastMessageAt': None,
            'createdAt': datetime.now().isoformat(),
        }
        success, room_id, error = await self.db.create_document(COLLECTIONS['chat_rooms'], room_data)
        if not success:
            raise PersistenceWriteError("Error creating conversation", cause=error)

        logger.info(f"Created chat room {room_id}")
        return ChatRoom.from_document(room_data, doc_id=room_id)

    async def list_rooms(self, user_id: str, limit: int = 50) -> List[ChatRoom]:
        """Get all chat rooms for a user, latest activity first"""
        success, docs, error = await self.db.query_documents(
            COLLECTIONS['chat_rooms'],
            filters=[("participants", "array_contains", user_id)],
        )
        if not success:
            raise PersistenceWriteError("Error loading conversations", cause=error)

        rooms = [ChatRoom.from_document(doc) for doc in docs]
        rooms.sort(key=lambda room: str(room.lastMessageAt or room.createdAt or ""), reverse=True)
        return rooms[:limit]

    async def get_room(self, room_id: str, user_id: str) -> ChatRoom:
        success, data, error = await self.db.get_document(COLLECTIONS['chat_rooms'], room_id)
        if not success or not data:
            raise NotFoundError("Chat room not found")
        room = ChatRoom.from_document(data)
        if user_id not in room.participants:
            raise PermissionDeniedError("Not authorized to access this room")
        return room

    # ===== Chat Message Operations =====

    async def send_message(self, room_id: str, sender_id: str, text: str = "",
                           shared_post: Optional[SharedPost] = None) -> Message:
        """Send a text message, or share a festival media item into the room"""
        await self.get_room(room_id, sender_id)

        text = (text or "").strip()
        if not text and shared_post is None:
            raise ValidationError("Message cannot be empty")

        message_data: Dict = {
            'roomId': room_id,
            'senderId': sender_id,
            'text': text,
            'type': 'shared_post' if shared_post else 'text',
            'createdAt': datetime.now().isoformat(),
        }
        if shared_post:
            message_data.update(shared_post.model_dump(exclude_none=True))

        success, message_id, error = await self.db.create_document(COLLECTIONS['messages'], message_data)
        if not success:
            raise PersistenceWriteError("Error sending message", cause=error)

        # Update room's last message
        await self.db.update_document(COLLECTIONS['chat_rooms'], room_id, {
            'lastMessage': text or 'Shared a post',
            'lastMessageAt': message_data['createdAt'],
        })

        logger.info(f"Message sent to room {room_id} by {sender_id}")
        return Message.from_document(message_data, doc_id=message_id)

    async def list_messages(self, room_id: str, user_id: str, limit: int = 100) -> List[Message]:
        """Get messages for a chat room, oldest first"""
        await self.get_room(room_id, user_id)
        success, docs, error = await self.db.query_documents(
            COLLECTIONS['messages'],
            filters=[("roomId", "==", room_id)],
        )
        if not success:
            raise PersistenceWriteError("Error loading messages", cause=error)

        messages = sorted((Message.from_document(doc) for doc in docs), key=lambda m: str(m.createdAt or ""))
        return messages[-limit:]


# Singleton instance
_chat_service = None

def get_chat_service() -> ChatService:
    """Get or create ChatService singleton"""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service
