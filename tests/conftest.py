"""
Test configuration and fixtures

Services run against an in-memory stand-in for DatabaseService and a fake
storage bucket, so no Firebase project is needed.
"""
import asyncio
import copy
import io
from datetime import datetime
from types import SimpleNamespace

import pytest
from fastapi import Request, UploadFile
from fastapi.testclient import TestClient
from google.cloud.exceptions import NotFound
from starlette.datastructures import Headers

from app.auth.dependencies import get_current_user
from app.main import app
from app.services.access_resolver import AccessService, get_access_service
from app.services.chat_service import ChatService, get_chat_service
from app.services.discover_service import DiscoverService, get_discover_service
from app.services.download_service import DownloadService, get_download_service
from app.services.festival_service import FestivalService, get_festival_service
from app.services.file_storage_service import FileStorageService
from app.services.post_service import PostService, get_post_service
from app.services.profile_service import ProfileService, get_profile_service


def run(coro):
    return asyncio.run(coro)


def _path(key):
    if isinstance(key, tuple):
        return list(key)
    return key.split('.')


def _get_nested(data, key):
    node = data
    for part in _path(key):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def _set_nested(data, key, value):
    parts = _path(key)
    node = data
    for part in parts[:-1]:
        node = node.setdefault(part, {})
    node[parts[-1]] = value


class FakeDatabaseService:
    """Same tuple-returning API as DatabaseService, backed by dicts."""

    def __init__(self):
        self.store = {}
        self.fail_writes = False
        self._counter = 0

    def _collection(self, collection):
        return self.store.setdefault(collection, {})

    def seed(self, collection, document_id, data):
        self._collection(collection)[document_id] = copy.deepcopy(data)

    def raw(self, collection, document_id):
        return self._collection(collection).get(document_id)

    def _as_result(self, collection, document_id):
        data = copy.deepcopy(self._collection(collection)[document_id])
        data['id'] = document_id
        data['_doc_id'] = document_id
        return data

    async def get_document(self, collection, document_id):
        if document_id not in self._collection(collection):
            return False, None, f"Document {document_id} not found in {collection}"
        return True, self._as_result(collection, document_id), None

    async def query_documents(self, collection, filters=None, order_by=None, limit=None):
        results = []
        for document_id, data in self._collection(collection).items():
            matched = True
            for field, op, value in filters or []:
                current = _get_nested(data, field)
                if op == '==':
                    matched = current == value
                elif op == 'array_contains':
                    matched = isinstance(current, list) and value in current
                elif op == 'in':
                    matched = current in value
                else:
                    raise AssertionError(f"Unsupported operator {op}")
                if not matched:
                    break
            if matched:
                results.append(self._as_result(collection, document_id))

        if isinstance(order_by, str):
            order_by = [(order_by, 'asc')]
        for field, direction in reversed(order_by or []):
            results.sort(key=lambda doc: str(_get_nested(doc, field) or ""), reverse=direction == 'desc')

        if limit:
            results = results[:limit]
        return True, results, None

    async def create_document(self, collection, data, document_id=None):
        if self.fail_writes:
            return False, None, "write failed"
        if not document_id:
            self._counter += 1
            document_id = f"{collection}-{self._counter}"
        payload = copy.deepcopy(data)
        payload.setdefault('createdAt', datetime.now().isoformat())
        self._collection(collection)[document_id] = payload
        return True, document_id, None

    async def update_document(self, collection, document_id, data):
        if self.fail_writes:
            return False, "write failed"
        document = self._collection(collection).get(document_id)
        if document is None:
            return False, f"Document {document_id} not found in {collection}"
        for key, value in data.items():
            _set_nested(document, key, copy.deepcopy(value))
        return True, None

    async def delete_document(self, collection, document_id):
        if self.fail_writes:
            return False, "write failed"
        self._collection(collection).pop(document_id, None)
        return True, None

    async def array_union(self, collection, document_id, values):
        if self.fail_writes:
            return False, "write failed"
        document = self._collection(collection).get(document_id)
        if document is None:
            return False, f"Document {document_id} not found in {collection}"
        for key, items in values.items():
            current = list(_get_nested(document, key) or [])
            for item in items:
                if item not in current:
                    current.append(copy.deepcopy(item))
            _set_nested(document, key, current)
        return True, None

    async def array_remove(self, collection, document_id, values):
        if self.fail_writes:
            return False, "write failed"
        document = self._collection(collection).get(document_id)
        if document is None:
            return False, f"Document {document_id} not found in {collection}"
        for key, items in values.items():
            current = [v for v in (_get_nested(document, key) or []) if v not in items]
            _set_nested(document, key, current)
        return True, None

    async def batch_write(self, operations):
        if self.fail_writes:
            return False, "write failed"
        for operation in operations:
            collection = self._collection(operation['collection'])
            if operation['op'] == 'delete':
                collection.pop(operation['document_id'], None)
            elif operation['op'] == 'set':
                collection[operation['document_id']] = copy.deepcopy(operation['data'])
            else:
                for key, value in operation['data'].items():
                    _set_nested(collection[operation['document_id']], key, copy.deepcopy(value))
        return True, None


class FakeBlob:
    def __init__(self, bucket, path):
        self.bucket = bucket
        self.name = path
        self.metadata = None

    def upload_from_string(self, content, content_type=None):
        self.bucket.objects[self.name] = {'content': content, 'content_type': content_type, 'metadata': self.metadata}

    def delete(self):
        if self.name not in self.bucket.objects:
            raise NotFound(f"No such object: {self.name}")
        del self.bucket.objects[self.name]
        self.bucket.deleted.append(self.name)


class FakeBucket:
    name = "festival-media-test.appspot.com"

    def __init__(self):
        self.objects = {}
        self.deleted = []

    def blob(self, path):
        return FakeBlob(self, path)


def make_upload(filename="photo.jpg", content=b"\xff\xd8\xff data", content_type="image/jpeg"):
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def festival_doc(**overrides):
    data = {
        'name': 'Summer Fest',
        'ownerId': 'biz-1',
        'categories': [
            {'id': 'c1', 'name': 'Main Stage', 'mediaType': 'both'},
            {'id': 'c2', 'name': 'Backstage', 'mediaType': 'image'},
        ],
        'categoryAccessCodes': [],
        'qrCodes': [],
        'accessCode': '',
    }
    data.update(overrides)
    return data


def media(url, kind, category_id):
    return {'url': url, 'type': kind, 'categoryId': category_id}


@pytest.fixture
def db():
    return FakeDatabaseService()


@pytest.fixture
def bucket():
    return FakeBucket()


@pytest.fixture
def services(db, bucket):
    storage = FileStorageService(bucket=bucket)
    festivals = FestivalService(db=db, storage=storage)
    posts = PostService(db=db, storage=storage, festivals=festivals)
    return SimpleNamespace(
        db=db,
        bucket=bucket,
        storage=storage,
        festivals=festivals,
        posts=posts,
        access=AccessService(db=db),
        profiles=ProfileService(db=db),
        downloads=DownloadService(db=db, posts=posts, festivals=festivals),
        discover=DiscoverService(db=db, storage=storage),
        chat=ChatService(db=db),
    )


@pytest.fixture
def seed_users(db):
    db.seed('users', 'user-1', {'email': 'fan@example.com', 'displayName': 'Fan', 'username': 'fan'})
    db.seed('users', 'user-2', {'email': 'friend@example.com', 'displayName': 'Friend', 'username': 'friend'})
    db.seed('users', 'biz-1', {'email': 'org@example.com', 'displayName': 'Organizer', 'isBusinessAccount': True})


@pytest.fixture
def client(services):
    """Test client; pick the signed-in user with the X-Test-User header (default user-1)."""
    def override_get_current_user(request: Request):
        uid = request.headers.get("X-Test-User", "user-1")
        return {"uid": uid, "email": f"{uid}@example.com", "name": uid}

    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_access_service] = lambda: services.access
    app.dependency_overrides[get_profile_service] = lambda: services.profiles
    app.dependency_overrides[get_festival_service] = lambda: services.festivals
    app.dependency_overrides[get_post_service] = lambda: services.posts
    app.dependency_overrides[get_download_service] = lambda: services.downloads
    app.dependency_overrides[get_discover_service] = lambda: services.discover
    app.dependency_overrides[get_chat_service] = lambda: services.chat
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
