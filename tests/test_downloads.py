"""
Tests for download tracking and business metrics
"""
import pytest

from app.core.exceptions import PermissionDeniedError
from app.models.post import Post
from app.models.user import UserProfile
from app.services.download_service import compute_download_metrics
from tests.conftest import festival_doc, media, run

OWNER = UserProfile(id='biz-1', isBusinessAccount=True)


def make_post(post_id, festival_id, media_files):
    return Post.from_document({'festivalId': festival_id, 'mediaFiles': media_files}, doc_id=post_id)


class TestComputeDownloadMetrics:

    def test_counts_by_type_festival_and_media(self):
        posts = [make_post('p1', 'F', [media('a', 'image', 'c1'), media('b', 'video', 'c2')])]
        downloads = [
            {'postId': 'p1', 'mediaIndex': 0, 'festivalId': 'F', 'downloadedAt': '2024-06-01T10:00:00'},
            {'postId': 'p1', 'mediaIndex': 0, 'festivalId': 'F', 'downloadedAt': '2024-06-02T10:00:00'},
            {'postId': 'p1', 'mediaIndex': 1, 'festivalId': 'F'},
        ]

        metrics = compute_download_metrics(['F'], posts, downloads)

        assert metrics['totalDownloads'] == 3
        assert metrics['imageDownloads'] == 2
        assert metrics['videoDownloads'] == 1
        assert metrics['downloadsByFestival']['F'] == {'total': 3, 'images': 2, 'videos': 1}
        assert metrics['downloadsByMedia']['p1-0']['downloadCount'] == 2
        assert metrics['downloadsByMedia']['p1-0']['downloadedAt'] == '2024-06-02T10:00:00'
        assert metrics['downloadsByMedia']['p1-1']['mediaType'] == 'video'

    def test_media_without_downloads_is_listed_with_zero(self):
        posts = [make_post('p1', 'F', [media('a', 'image', 'c1')])]

        metrics = compute_download_metrics(['F'], posts, [])

        assert metrics['downloadsByMedia']['p1-0']['downloadCount'] == 0
        assert metrics['totalDownloads'] == 0

    def test_unknown_festivals_and_media_are_ignored(self):
        posts = [
            make_post('p1', 'F', [media('a', 'image', 'c1')]),
            make_post('p2', 'OTHER', [media('b', 'image', 'c1')]),
        ]
        downloads = [
            {'postId': 'p2', 'mediaIndex': 0, 'festivalId': 'OTHER'},
            {'postId': 'gone', 'mediaIndex': 0, 'festivalId': 'F'},
        ]

        metrics = compute_download_metrics(['F'], posts, downloads)

        assert metrics['totalDownloads'] == 0
        assert 'p2-0' not in metrics['downloadsByMedia']


class TestDownloadService:

    @pytest.fixture
    def seeded(self, db):
        db.seed('festivals', 'F', festival_doc())
        db.seed('posts', 'p1', {'festivalId': 'F', 'mediaFiles': [
            media('https://cdn/a.jpg', 'image', 'c1'), media('https://cdn/b.mp4', 'video', 'c2'),
        ]})

    def test_record_download_of_granted_media(self, services, db, seeded):
        fan = UserProfile(id='user-1', accessibleCategories={'F': ['c2']})

        result = run(services.downloads.record_download(fan, 'p1', 1))

        assert result == {'url': 'https://cdn/b.mp4', 'filename': 'media_p1_1.mp4', 'tracked': True}
        (record,) = db.store['downloads'].values()
        assert record['userId'] == 'user-1'
        assert record['festivalId'] == 'F'
        assert record['mediaType'] == 'video'

    def test_download_outside_grant_is_refused(self, services, db, seeded):
        fan = UserProfile(id='user-1', accessibleCategories={'F': ['c2']})

        with pytest.raises(PermissionDeniedError):
            run(services.downloads.record_download(fan, 'p1', 0))
        assert 'downloads' not in db.store

    def test_tracking_failure_still_returns_file(self, services, db, seeded):
        fan = UserProfile(id='user-1', accessibleCategories={'F': ['c1']})
        db.fail_writes = True

        result = run(services.downloads.record_download(fan, 'p1', 0))

        assert result['url'] == 'https://cdn/a.jpg'
        assert result['tracked'] is False

    def test_business_metrics_cover_owned_festivals(self, services, db, seeded):
        db.seed('festivals', 'G', festival_doc(ownerId='biz-2'))
        db.seed('downloads', 'd1', {'postId': 'p1', 'mediaIndex': 0, 'festivalId': 'F'})
        db.seed('downloads', 'd2', {'postId': 'x', 'mediaIndex': 0, 'festivalId': 'G'})

        metrics = run(services.downloads.get_business_metrics(OWNER))

        assert metrics['totalDownloads'] == 1
        assert list(metrics['downloadsByFestival']) == ['F']

    def test_download_routes(self, client, db, seeded, seed_users):
        db.raw('users', 'user-1')['accessibleCategories'] = {'F': ['c1']}

        download = client.post("/downloads", json={"postId": "p1", "mediaIndex": 0})
        assert download.status_code == 200
        assert download.json()["data"]["filename"] == "media_p1_0.jpg"

        metrics = client.get("/downloads/metrics", headers={"X-Test-User": "biz-1"})
        assert metrics.status_code == 200
        assert metrics.json()["data"]["imageDownloads"] == 1

        assert client.get("/downloads/metrics").status_code == 403

    def test_download_the_only_item_of_a_filtered_feed(self, client, db, seed_users):
        db.seed('festivals', 'F', festival_doc())
        db.seed('posts', 'p1', {'festivalId': 'F', 'mediaFiles': [
            media('img', 'image', 'c1'), media('vid', 'video', 'c2'),
        ]})
        db.raw('users', 'user-1')['accessibleCategories'] = {'F': ['c2']}

        (post,) = client.get("/festivals/F/posts").json()["data"]
        (shown,) = post["mediaFiles"]

        download = client.post("/downloads", json={"postId": "p1", "mediaIndex": shown["index"]})

        assert download.status_code == 200
        assert download.json()["data"]["url"] == "vid"
        (record,) = db.store['downloads'].values()
        assert record['mediaIndex'] == 1
        assert record['categoryId'] == 'c2'

    def test_metrics_key_media_by_stored_index(self, services, db):
        db.seed('festivals', 'F', festival_doc())
        db.seed('posts', 'p1', {'festivalId': 'F', 'mediaFiles': [
            {'url': '', 'type': 'image'}, media('vid', 'video', 'c2'),
        ]})
        db.seed('downloads', 'd1', {'postId': 'p1', 'mediaIndex': 1, 'festivalId': 'F'})

        metrics = run(services.downloads.get_business_metrics(OWNER))

        assert list(metrics['downloadsByMedia']) == ['p1-1']
        assert metrics['videoDownloads'] == 1
