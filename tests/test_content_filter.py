"""
Tests for the festival media filter
"""
import pytest

from app.models.post import MediaTypeFilter, Post
from app.services.content_filter import filter_posts, sort_posts_newest_first
from tests.conftest import media


def make_post(post_id, media_files, created_at=None):
    return Post.from_document({'mediaFiles': media_files, 'festivalId': 'F', 'createdAt': created_at}, doc_id=post_id)


@pytest.fixture
def posts():
    return [make_post('p1', [media('img-1', 'image', 'c1'), media('vid-1', 'video', 'c2')])]


class TestFilterPosts:

    def test_only_granted_categories_are_visible(self, posts):
        result = filter_posts(posts, ['c1'], "", MediaTypeFilter.ALL)

        assert [p.id for p in result] == ['p1']
        assert [m.url for m in result[0].mediaFiles] == ['img-1']

    def test_media_type_selector(self, posts):
        result = filter_posts(posts, ['c1', 'c2'], "", "video")

        assert [m.url for m in result[0].mediaFiles] == ['vid-1']

    def test_selected_category_narrows_the_grant(self, posts):
        result = filter_posts(posts, ['c1', 'c2'], "c2")

        assert [m.url for m in result[0].mediaFiles] == ['vid-1']

    def test_selected_category_outside_grant_shows_nothing(self, posts):
        assert filter_posts(posts, ['c1'], "c2") == []

    def test_posts_without_visible_media_are_dropped(self):
        posts = [
            make_post('p1', [media('a', 'image', 'c1')]),
            make_post('p2', [media('b', 'image', 'c9')]),
        ]

        assert [p.id for p in filter_posts(posts, ['c1'])] == ['p1']

    @pytest.mark.parametrize("category", ["", "c1"])
    @pytest.mark.parametrize("media_type", list(MediaTypeFilter))
    def test_uncategorized_media_is_never_shown(self, category, media_type):
        posts = [make_post('p1', [{'url': 'x', 'type': 'image'}, {'url': 'y', 'type': 'video', 'categoryId': ''}])]

        assert filter_posts(posts, ['c1', ''], category, media_type) == []

    def test_no_grant_means_nothing_visible(self, posts):
        assert filter_posts(posts, []) == []

    def test_filter_is_pure_and_order_preserving(self):
        posts = [
            make_post('p1', [media('a', 'image', 'c1'), media('b', 'video', 'c2'), media('c', 'image', 'c1')]),
            make_post('p2', [media('d', 'image', 'c1')]),
        ]
        snapshot = [p.model_dump() for p in posts]

        first = filter_posts(posts, ['c1'])
        second = filter_posts(posts, ['c1'])

        assert first == second
        assert [p.id for p in first] == ['p1', 'p2']
        assert [m.url for m in first[0].mediaFiles] == ['a', 'c']
        assert [p.model_dump() for p in posts] == snapshot


class TestMalformedDocuments:

    def test_media_without_url_or_type_is_skipped(self):
        post = make_post('p1', [
            {'type': 'image', 'categoryId': 'c1'},
            {'url': 'u', 'type': 'gif', 'categoryId': 'c1'},
            media('ok', 'video', 'c1'),
        ])

        assert [m.url for m in post.mediaFiles] == ['ok']


class TestSortPosts:

    def test_newest_first_with_missing_timestamps_last(self):
        posts = [
            make_post('old', [], '2024-06-01T10:00:00'),
            make_post('none', [], None),
            make_post('new', [], '2024-06-02T10:00:00Z'),
        ]

        assert [p.id for p in sort_posts_newest_first(posts)] == ['new', 'old', 'none']
