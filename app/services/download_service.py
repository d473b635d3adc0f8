"""
Download tracking and the business download dashboard numbers.
"""

from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime
import logging

from ..core.exceptions import PersistenceWriteError
from ..database.collections import COLLECTIONS
from ..database.database_service import DatabaseService, database_service
from ..models.post import Post
from ..models.user import UserProfile
from .festival_service import FestivalService, festival_service
from .post_service import PostService, post_service

logger = logging.getLogger(__name__)


def compute_download_metrics(festival_ids: Iterable[str], posts: List[Post],
                             downloads: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Aggregate download records into totals, an image/video split, per-festival
    totals and per-media counts keyed ``<postId>-<mediaIndex>``.

    Every media item of a known festival is listed, with zero downloads when it
    has none. Downloads pointing at an unknown festival or media are ignored.
    """
    valid_festivals = set(festival_ids)
    metrics: Dict[str, Any] = {
        'totalDownloads': 0,
        'imageDownloads': 0,
        'videoDownloads': 0,
        'downloadsByFestival': {},
        'downloadsByMedia': {},
    }

    for post in posts:
        if post.festivalId not in valid_festivals:
            continue
        metrics['downloadsByFestival'].setdefault(post.festivalId, {'total': 0, 'images': 0, 'videos': 0})
        for position, media in enumerate(post.mediaFiles):
            index = media.index if media.index is not None else position
            metrics['downloadsByMedia'][f"{post.id}-{index}"] = {
                'postId': post.id,
                'mediaType': media.type.value,
                'downloadCount': 0,
                'festivalId': post.festivalId,
                'categoryId': media.categoryId,
                'url': media.url,
                'downloadedAt': None,
            }

    for download in downloads:
        if download.get('festivalId') not in valid_festivals:
            continue
        media_metrics = metrics['downloadsByMedia'].get(f"{download.get('postId')}-{download.get('mediaIndex', 0)}")
        if media_metrics is None:
            continue

        media_metrics['downloadCount'] += 1
        media_metrics['downloadedAt'] = download.get('downloadedAt') or media_metrics['downloadedAt']

        festival_metrics = metrics['downloadsByFestival'][media_metrics['festivalId']]
        festival_metrics['total'] += 1
        metrics['totalDownloads'] += 1
        if media_metrics['mediaType'] == 'image':
            festival_metrics['images'] += 1
            metrics['imageDownloads'] += 1
        else:
            festival_metrics['videos'] += 1
            metrics['videoDownloads'] += 1

    return metrics


class DownloadService:
    def __init__(self, db: DatabaseService = None, posts: PostService = None,
                 festivals: FestivalService = None):
        self.db = db or database_service
        self.posts = posts or post_service
        self.festivals = festivals or festival_service

    async def record_download(self, profile: UserProfile, post_id: str, media_index: int) -> Dict[str, Any]:
        """Log a download of media the user may see and return the file to fetch."""
        post, media = await self.posts.get_visible_media(post_id, media_index, profile)

        record = {
            'postId': post.id,
            'mediaType': media.type.value,
            'mediaIndex': media_index,
            'festivalId': post.festivalId,
            'categoryId': media.categoryId,
            'userId': profile.id,
            'url': media.url,
            'downloadedAt': datetime.now().isoformat(),
        }
        success, download_id, error = await self.db.create_document(COLLECTIONS['downloads'], record)
        if not success:
            # The file is still served; only the counter misses this one
            logger.error(f"Error tracking download of {post_id}/{media_index}: {error}")

        extension = 'mp4' if media.type.value == 'video' else 'jpg'
        return {
            'url': media.url,
            'filename': f"media_{post.id}_{media_index}.{extension}",
            'tracked': success,
        }

    async def get_business_metrics(self, owner: UserProfile, festival_id: Optional[str] = None) -> Dict[str, Any]:
        festivals = await self.festivals.list_owned_festivals(owner.id)
        festival_ids = [f.id for f in festivals if not festival_id or f.id == festival_id]

        posts: List[Post] = []
        downloads: List[Dict[str, Any]] = []
        for fid in festival_ids:
            posts.extend(await self.posts.list_festival_posts(fid))
            success, docs, error = await self.db.query_documents(
                COLLECTIONS['downloads'], filters=[('festivalId', '==', fid)]
            )
            if not success:
                raise PersistenceWriteError("Error loading downloads", cause=error)
            downloads.extend(docs)

        return compute_download_metrics(festival_ids, posts, downloads)


download_service = DownloadService()


def get_download_service() -> DownloadService:
    return download_service
