from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from .base import DocumentModel
from .post import PUBLIC_MEDIA_EXCLUDE, MediaFile, index_usable_media


class Comment(DocumentModel):
    id: str
    text: str
    userId: str
    userDisplayName: str = "Anonymous"
    userPhotoURL: Optional[str] = None
    createdAt: Any = None
    likes: List[str] = Field(default_factory=list)


class DiscoverPost(DocumentModel):
    id: str
    text: str = ""
    userId: str = ""
    userDisplayName: str = "Anonymous"
    userPhotoURL: Optional[str] = None
    mediaFiles: List[MediaFile] = Field(default_factory=list)
    likes: List[str] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)
    createdAt: Any = None

    @field_validator("mediaFiles", mode="before")
    @classmethod
    def _skip_unusable_media(cls, value: Any) -> Any:
        return index_usable_media(value)

    def public_view(self) -> dict:
        return self.model_dump(mode="json", exclude=PUBLIC_MEDIA_EXCLUDE)


class ChatRoom(DocumentModel):
    id: str
    participants: List[str] = Field(default_factory=list)
    createdBy: str = ""
    lastMessage: Optional[str] = None
    lastMessageAt: Any = None
    createdAt: Any = None


class Message(DocumentModel):
    id: str
    roomId: str
    senderId: str
    text: str = ""
    type: str = "text"
    postId: Optional[str] = None
    mediaIndex: Optional[int] = None
    festivalId: Optional[str] = None
    categoryId: Optional[str] = None
    createdAt: Any = None


# ── request payloads ─────────────────────────────────────────────────────────

class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class RoomCreate(BaseModel):
    participantId: str = Field(..., description="The other user in the conversation")


class SharedPost(BaseModel):
    postId: str
    mediaIndex: int = 0
    festivalId: Optional[str] = None
    categoryId: Optional[str] = None


class MessageCreate(BaseModel):
    text: str = ""
    sharedPost: Optional[SharedPost] = None
