"""
Content filter for festival media.

Narrows a festival's posts to the media a user may see given their granted
categories, an optional selected category and a media-type selector.
Pure functions: no I/O, inputs are never mutated.
"""

from datetime import datetime
from typing import Any, Iterable, List, Optional, Union

from ..models.post import MediaTypeFilter, Post


def is_media_visible(media, granted: set, selected_category: str, media_type: MediaTypeFilter) -> bool:
    # Media without a category are never shown, even under "all categories"
    if not media.categoryId:
        return False
    if media.categoryId not in granted:
        return False
    if selected_category and media.categoryId != selected_category:
        return False
    if media_type != MediaTypeFilter.ALL and media.type.value != media_type.value:
        return False
    return True


def filter_posts(
    posts: List[Post],
    granted_category_ids: Iterable[str],
    selected_category: Optional[str] = "",
    media_type: Union[MediaTypeFilter, str] = MediaTypeFilter.ALL,
) -> List[Post]:
    """
    Return the posts with only their visible media, dropping posts left with
    none. Post order and media order follow the input, and each kept item
    keeps its stored ``index`` so callers can address it later.
    """
    granted = set(granted_category_ids or [])
    media_type = MediaTypeFilter(media_type or MediaTypeFilter.ALL)
    selected_category = selected_category or ""

    visible_posts = []
    for post in posts:
        visible_media = [
            media for media in post.mediaFiles
            if is_media_visible(media, granted, selected_category, media_type)
        ]
        if visible_media:
            visible_posts.append(post.model_copy(update={"mediaFiles": visible_media}))
    return visible_posts


def _created_at_key(value: Any) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
        except ValueError:
            return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0


def sort_posts_newest_first(posts: List[Post]) -> List[Post]:
    """Order by createdAt descending; posts without a usable timestamp go last."""
    return sorted(posts, key=lambda post: _created_at_key(post.createdAt), reverse=True)
