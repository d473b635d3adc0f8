"""
Post Service - festival media posts: upload into a category, the filtered
festival feed, and per-media deletion.
"""

from typing import List, Optional
from datetime import datetime
import logging

from fastapi import UploadFile

from ..core.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    PersistenceWriteError,
    UploadError,
    ValidationError,
)
from ..database.collections import COLLECTIONS
from ..database.database_service import DatabaseService, database_service
from ..models.post import MediaFile, MediaTypeFilter, Post, UploadResult
from ..models.user import UserProfile
from .content_filter import filter_posts, sort_posts_newest_first
from .festival_service import FestivalService, festival_service
from .file_storage_service import FileStorageService, file_storage_service

logger = logging.getLogger(__name__)


class PostService:
    def __init__(self, db: DatabaseService = None, storage: FileStorageService = None,
                 festivals: FestivalService = None):
        self.db = db or database_service
        self.storage = storage or file_storage_service
        self.festivals = festivals or festival_service

    async def get_post(self, post_id: str) -> Post:
        success, data, error = await self.db.get_document(COLLECTIONS['posts'], post_id)
        if not success or not data:
            raise NotFoundError(f"Post not found: {post_id}")
        return Post.from_document(data)

    async def list_festival_posts(self, festival_id: str) -> List[Post]:
        """All posts of a festival, newest first."""
        success, docs, error = await self.db.query_documents(
            COLLECTIONS['posts'], filters=[('festivalId', '==', festival_id)]
        )
        if not success:
            raise PersistenceWriteError("Error loading posts", cause=error)
        return sort_posts_newest_first([Post.from_document(doc) for doc in docs])

    async def get_festival_feed(
        self,
        festival_id: str,
        profile: UserProfile,
        category: Optional[str] = "",
        media_type: MediaTypeFilter = MediaTypeFilter.ALL,
    ) -> List[Post]:
        """
        The festival's media the profile may see. The festival's own business
        account sees every category; everyone else sees their grant.
        """
        festival = await self.festivals.get_festival(festival_id)
        if profile.isBusinessAccount and festival.ownerId == profile.id:
            granted = festival.category_ids()
        else:
            granted = profile.granted_categories(festival_id)

        posts = await self.list_festival_posts(festival_id)
        return filter_posts(posts, granted, category, media_type)

    async def upload_media(self, festival_id: str, owner: UserProfile, category_id: str,
                           files: List[UploadFile], text: str = "") -> UploadResult:
        """
        Upload files into one category as a single post. A file that fails is
        skipped and reported; the others still go up. No post is written when
        nothing uploaded.
        """
        festival = await self.festivals.get_managed_festival(festival_id, owner)
        if not category_id or not festival.has_category(category_id):
            raise ValidationError("Please select a category for your upload")

        uploaded: List[MediaFile] = []
        skipped: List[str] = []
        for index, file in enumerate(files, start=1):
            try:
                media = await self.storage.upload_media(file, owner.id)
            except UploadError as e:
                logger.warning(f"Skipping upload {index}/{len(files)}: {e.message}")
                skipped.append(e.message)
                continue
            uploaded.append(MediaFile(categoryId=category_id, **media))

        if not uploaded:
            return UploadResult(uploaded=0, skipped=skipped)

        post_data = {
            'text': text,
            'mediaFiles': [m.model_dump(mode="json", exclude_none=True) for m in uploaded],
            'userId': owner.id,
            'createdAt': datetime.now().isoformat(),
            'festivalId': festival_id,
        }
        success, post_id, error = await self.db.create_document(COLLECTIONS['posts'], post_data)
        if not success:
            raise PersistenceWriteError("Error creating post", cause=error)

        logger.info(f"Post {post_id} created with {len(uploaded)} files in category {category_id}")
        return UploadResult(
            post=Post.from_document(post_data, doc_id=post_id),
            uploaded=len(uploaded),
            skipped=skipped,
        )

    async def delete_media(self, post_id: str, media_index: int, owner: UserProfile) -> Optional[Post]:
        """
        Remove the media item stored at ``media_index``. The stored array is
        rewritten from the document itself, so entries this service cannot
        render are kept as they are. Returns the updated post, or None when it
        was the last item and the post itself was deleted.
        """
        success, data, error = await self.db.get_document(COLLECTIONS['posts'], post_id)
        if not success or not data:
            raise NotFoundError(f"Post not found: {post_id}")
        post = Post.from_document(data)
        if post.userId != owner.id:
            await self.festivals.get_managed_festival(post.festivalId, owner)

        stored = data.get('mediaFiles') if isinstance(data.get('mediaFiles'), list) else []
        if media_index < 0 or media_index >= len(stored):
            raise NotFoundError(f"Media {media_index} not found on post {post_id}")
        target = post.media_at(media_index)
        remaining = stored[:media_index] + stored[media_index + 1:]

        if not remaining:
            success, error = await self.db.delete_document(COLLECTIONS['posts'], post_id)
            if not success:
                raise PersistenceWriteError("Error deleting post", cause=error)
            updated = None
        else:
            success, error = await self.db.update_document(COLLECTIONS['posts'], post_id, {'mediaFiles': remaining})
            if not success:
                raise PersistenceWriteError("Error deleting media", cause=error)
            updated = Post.from_document({**data, 'mediaFiles': remaining}, doc_id=post_id)

        # storage goes only after the document no longer points at it
        if target is not None and not await self.storage.delete_media(target):
            logger.warning(f"Storage object for {post_id}/{media_index} was not deleted")
        return updated

    async def get_visible_media(self, post_id: str, media_index: int, profile: UserProfile) -> tuple:
        """
        The post and the media item stored at ``media_index`` if the profile
        may see it. The index is the one carried on each item of the feed.
        """
        post = await self.get_post(post_id)
        media = post.media_at(media_index)
        if media is None:
            raise NotFoundError(f"Media {media_index} not found on post {post_id}")

        festival = await self.festivals.get_festival(post.festivalId)
        owns = profile.isBusinessAccount and festival.ownerId == profile.id
        if not owns and (not media.categoryId or media.categoryId not in profile.granted_categories(post.festivalId)):
            raise PermissionDeniedError("You do not have access to this media")
        return post, media


post_service = PostService()


def get_post_service() -> PostService:
    return post_service
