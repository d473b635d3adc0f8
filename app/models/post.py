from enum import Enum
from typing import Any, List, Optional
import logging

from pydantic import BaseModel, Field, field_validator

from .base import DocumentModel

logger = logging.getLogger(__name__)


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class MediaTypeFilter(str, Enum):
    ALL = "all"
    IMAGE = "image"
    VIDEO = "video"


class MediaFile(DocumentModel):
    url: str
    type: MediaKind
    categoryId: Optional[str] = None
    storagePath: Optional[str] = None
    # position in the stored mediaFiles array; downloads and shares address media by it
    index: Optional[int] = None


def is_usable_media(entry: Any) -> bool:
    """Entries without a url or a known type cannot be rendered or downloaded."""
    return isinstance(entry, dict) and bool(entry.get("url")) and entry.get("type") in ("image", "video")


def index_usable_media(value: Any) -> List[Any]:
    """
    Keep the usable entries of a stored mediaFiles array, each tagged with its
    stored position so filtered views still point at the right item.
    """
    if not isinstance(value, list):
        return []
    usable = []
    for position, media in enumerate(value):
        if isinstance(media, MediaFile):
            usable.append(media if media.index is not None else media.model_copy(update={"index": position}))
        elif is_usable_media(media):
            usable.append({**media, "index": position})
        else:
            logger.warning(f"Skipping malformed media entry: {media!r}")
    return usable


PUBLIC_MEDIA_EXCLUDE = {"mediaFiles": {"__all__": {"storagePath"}}}


class Post(DocumentModel):
    id: str
    text: str = ""
    mediaFiles: List[MediaFile] = Field(default_factory=list)
    userId: str = ""
    createdAt: Any = None
    festivalId: str = ""

    @field_validator("mediaFiles", mode="before")
    @classmethod
    def _skip_unusable_media(cls, value: Any) -> Any:
        return index_usable_media(value)

    def media_at(self, index: int) -> Optional[MediaFile]:
        """The media item stored at ``index``, if it is usable."""
        for media in self.mediaFiles:
            if media.index == index:
                return media
        return None

    def public_view(self) -> dict:
        return self.model_dump(mode="json", exclude=PUBLIC_MEDIA_EXCLUDE)


class UploadResult(BaseModel):
    post: Optional[Post] = None
    uploaded: int = 0
    skipped: List[str] = Field(default_factory=list)


class DownloadCreate(BaseModel):
    postId: str
    mediaIndex: int = Field(0, ge=0)
