"""
Discover Service - the open social feed (posts, likes, comments) that sits
beside the festival galleries.
"""

from typing import List
from datetime import datetime
import logging
import uuid

from fastapi import UploadFile

from ..core.exceptions import NotFoundError, PermissionDeniedError, PersistenceWriteError, UploadError, ValidationError
from ..database.collections import COLLECTIONS
from ..database.database_service import DatabaseService, database_service
from ..models.social import Comment, DiscoverPost
from ..models.user import UserProfile
from .file_storage_service import FileStorageService, file_storage_service

logger = logging.getLogger(__name__)


class DiscoverService:
    def __init__(self, db: DatabaseService = None, storage: FileStorageService = None):
        self.db = db or database_service
        self.storage = storage or file_storage_service

    async def list_posts(self, limit: int = 50) -> List[DiscoverPost]:
        success, docs, error = await self.db.query_documents(
            COLLECTIONS['discover_posts'], order_by=[('createdAt', 'desc')], limit=limit
        )
        if not success:
            raise PersistenceWriteError("Error loading posts", cause=error)
        return [DiscoverPost.from_document(doc) for doc in docs]

    async def get_post(self, post_id: str) -> DiscoverPost:
        success, data, error = await self.db.get_document(COLLECTIONS['discover_posts'], post_id)
        if not success or not data:
            raise NotFoundError(f"Post not found: {post_id}")
        return DiscoverPost.from_document(data)

    async def create_post(self, profile: UserProfile, text: str, files: List[UploadFile]) -> DiscoverPost:
        text = (text or "").strip()
        if not text and not files:
            raise ValidationError("A post needs text or media")

        media_files = []
        for file in files:
            try:
                media = await self.storage.upload_media(file, profile.id)
            except UploadError as e:
                logger.warning(f"Skipping discover upload: {e.message}")
                continue
            media_files.append({'url': media['url'], 'type': media['type'], 'storagePath': media['storagePath']})

        post_data = {
            'text': text,
            'userId': profile.id,
            'userDisplayName': profile.displayName or 'Anonymous',
            'userPhotoURL': profile.photoURL,
            'createdAt': datetime.now().isoformat(),
            'likes': [],
            'comments': [],
            'mediaFiles': media_files,
        }
        success, post_id, error = await self.db.create_document(COLLECTIONS['discover_posts'], post_data)
        if not success:
            raise PersistenceWriteError("Error creating post", cause=error)
        return DiscoverPost.from_document(post_data, doc_id=post_id)

    async def toggle_like(self, post_id: str, user_id: str) -> bool:
        """Like or unlike; returns True when the post is now liked."""
        post = await self.get_post(post_id)
        liked = user_id not in post.likes
        if liked:
            success, error = await self.db.array_union(COLLECTIONS['discover_posts'], post_id, {'likes': [user_id]})
        else:
            success, error = await self.db.array_remove(COLLECTIONS['discover_posts'], post_id, {'likes': [user_id]})
        if not success:
            raise PersistenceWriteError("Error updating like", cause=error)
        return liked

    async def add_comment(self, post_id: str, profile: UserProfile, text: str) -> Comment:
        await self.get_post(post_id)
        comment = Comment(
            id=uuid.uuid4().hex[:9],
            text=text.strip(),
            userId=profile.id,
            userDisplayName=profile.displayName or 'Anonymous',
            userPhotoURL=profile.photoURL,
            createdAt=datetime.now().isoformat(),
        )
        success, error = await self.db.array_union(
            COLLECTIONS['discover_posts'], post_id, {'comments': [comment.model_dump(mode="json")]}
        )
        if not success:
            raise PersistenceWriteError("Error adding comment", cause=error)
        return comment

    async def toggle_comment_like(self, post_id: str, comment_id: str, user_id: str) -> bool:
        post = await self.get_post(post_id)
        comments = []
        liked = None
        for comment in post.comments:
            if comment.id == comment_id:
                liked = user_id not in comment.likes
                likes = comment.likes + [user_id] if liked else [u for u in comment.likes if u != user_id]
                comment = comment.model_copy(update={'likes': likes})
            comments.append(comment.model_dump(mode="json"))
        if liked is None:
            raise NotFoundError(f"Comment not found: {comment_id}")

        success, error = await self.db.update_document(COLLECTIONS['discover_posts'], post_id, {'comments': comments})
        if not success:
            raise PersistenceWriteError("Error updating comment", cause=error)
        return liked

    async def delete_post(self, post_id: str, user_id: str) -> None:
        post = await self.get_post(post_id)
        if post.userId != user_id:
            raise PermissionDeniedError("Only the author can delete this post")
        success, error = await self.db.delete_document(COLLECTIONS['discover_posts'], post_id)
        if not success:
            raise PersistenceWriteError("Error deleting post", cause=error)
        for media in post.mediaFiles:
            if not await self.storage.delete_media(media):
                logger.warning(f"Storage object for {media.url} was not deleted")


discover_service = DiscoverService()


def get_discover_service() -> DiscoverService:
    return discover_service
