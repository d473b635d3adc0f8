"""
Festival Service - business-side management of festivals, their
categories, access codes and QR codes.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
import io
import logging
import secrets
import uuid

import qrcode
from fastapi import UploadFile

from ..core.exceptions import (
    DuplicateCodeError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceWriteError,
    ValidationError,
)
from ..database.collections import COLLECTIONS
from ..database.database_service import DatabaseService, database_service
from ..models.festival import Category, CategoryAccessCode, CategoryMediaType, Festival, QRCode
from ..models.post import MediaFile, Post, is_usable_media
from ..models.user import UserProfile
from .access_resolver import normalize_code
from .file_storage_service import FileStorageService, file_storage_service

logger = logging.getLogger(__name__)


def render_qr_png(payload: str) -> bytes:
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(payload)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    return buffer.getvalue()


class FestivalService:
    def __init__(self, db: DatabaseService = None, storage: FileStorageService = None):
        self.db = db or database_service
        self.storage = storage or file_storage_service

    # ===== Reads =====

    async def list_festivals(self) -> List[Festival]:
        success, docs, error = await self.db.query_documents(COLLECTIONS['festivals'])
        if not success:
            raise PersistenceWriteError("Error loading festivals", cause=error)
        return [Festival.from_document(doc) for doc in docs]

    async def list_owned_festivals(self, owner_id: str) -> List[Festival]:
        success, docs, error = await self.db.query_documents(
            COLLECTIONS['festivals'], filters=[('ownerId', '==', owner_id)]
        )
        if not success:
            raise PersistenceWriteError("Error loading festivals", cause=error)
        return [Festival.from_document(doc) for doc in docs]

    async def list_accessible_festivals(self, profile: UserProfile) -> List[Festival]:
        """Festivals the user holds a grant for, each showing only the granted categories."""
        festivals = await self.list_festivals()
        return [
            festival.restricted_to(profile.granted_categories(festival.id))
            for festival in festivals
            if festival.id in profile.accessibleCategories
        ]

    async def get_festival(self, festival_id: str) -> Festival:
        success, data, error = await self.db.get_document(COLLECTIONS['festivals'], festival_id)
        if not success or not data:
            raise NotFoundError(f"Festival not found: {festival_id}")
        return Festival.from_document(data)

    async def get_managed_festival(self, festival_id: str, owner: UserProfile) -> Festival:
        """Load a festival the given business account is allowed to change."""
        festival = await self.get_festival(festival_id)
        if not owner.isBusinessAccount:
            raise PermissionDeniedError("Business account required")
        # Festivals created before ownership was recorded stay editable by any business account
        if festival.ownerId and festival.ownerId != owner.id:
            raise PermissionDeniedError("You do not manage this festival")
        return festival

    async def _save(self, festival_id: str, changes: Dict[str, Any]) -> None:
        success, error = await self.db.update_document(COLLECTIONS['festivals'], festival_id, changes)
        if not success:
            raise PersistenceWriteError("Error updating festival", cause=error)

    # ===== Code uniqueness =====

    async def _assert_code_available(self, code: str, ignore_master_of: Optional[str] = None) -> str:
        normalized = normalize_code(code)
        if not normalized:
            raise ValidationError("Code cannot be empty")

        for festival in await self.list_festivals():
            codes = {normalize_code(entry.code) for entry in festival.categoryAccessCodes}
            codes.update(normalize_code(qr.code) for qr in festival.qrCodes)
            if festival.accessCode and festival.id != ignore_master_of:
                codes.add(normalize_code(festival.accessCode))
            if normalized in codes:
                raise DuplicateCodeError(f"Code '{normalized}' is already in use")
        return normalized

    # ===== Festivals =====

    async def create_festival(self, owner: UserProfile, data: Dict[str, Any]) -> Festival:
        if not owner.isBusinessAccount:
            raise PermissionDeniedError("Business account required")

        payload = {k: v for k, v in data.items() if v is not None}
        if payload.get('accessCode'):
            payload['accessCode'] = await self._assert_code_available(payload['accessCode'])

        festival_data = {
            **payload,
            'ownerId': owner.id,
            'categories': [],
            'categoryAccessCodes': [],
            'qrCodes': [],
            'stats': {},
            'createdAt': datetime.now().isoformat(),
        }
        success, festival_id, error = await self.db.create_document(COLLECTIONS['festivals'], festival_data)
        if not success:
            raise PersistenceWriteError("Error creating festival", cause=error)

        logger.info(f"Festival {festival_id} created by {owner.id}")
        return Festival.from_document(festival_data, doc_id=festival_id)

    async def update_festival(self, festival_id: str, owner: UserProfile, changes: Dict[str, Any]) -> Festival:
        festival = await self.get_managed_festival(festival_id, owner)
        changes = {k: v for k, v in changes.items() if v is not None}
        if changes:
            await self._save(festival_id, changes)
        return festival.model_copy(update=changes)

    async def upload_festival_image(self, festival_id: str, owner: UserProfile, file: UploadFile) -> Festival:
        festival = await self.get_managed_festival(festival_id, owner)
        media = await self.storage.upload_media(file, owner.id)
        if media['type'] != 'image':
            await self.storage.delete_file(media['storagePath'])
            raise ValidationError("Festival image must be an image file")
        await self._save(festival_id, {'imageUrl': media['url']})
        return festival.model_copy(update={'imageUrl': media['url']})

    async def set_master_code(self, festival_id: str, owner: UserProfile, code: str) -> Festival:
        festival = await self.get_managed_festival(festival_id, owner)
        normalized = await self._assert_code_available(code, ignore_master_of=festival_id)
        await self._save(festival_id, {'accessCode': normalized})
        return festival.model_copy(update={'accessCode': normalized})

    async def delete_festival(self, festival_id: str, owner: UserProfile) -> int:
        """Delete a festival with all of its posts. Returns the number of posts removed."""
        await self.get_managed_festival(festival_id, owner)
        posts = [Post.from_document(doc) for doc in await self._festival_post_docs(festival_id)]

        operations = [
            {'op': 'delete', 'collection': COLLECTIONS['posts'], 'document_id': post.id}
            for post in posts
        ]
        operations.append({'op': 'delete', 'collection': COLLECTIONS['festivals'], 'document_id': festival_id})
        success, error = await self.db.batch_write(operations)
        if not success:
            raise PersistenceWriteError("Error deleting festival", cause=error)

        await self._delete_stored_media([media for post in posts for media in post.mediaFiles])
        logger.info(f"Festival {festival_id} deleted with {len(posts)} posts")
        return len(posts)

    # ===== Categories =====

    async def create_category(self, festival_id: str, owner: UserProfile, name: str,
                              media_type: CategoryMediaType = CategoryMediaType.BOTH) -> Category:
        await self.get_managed_festival(festival_id, owner)
        category = Category(id=str(uuid.uuid4()), name=name.strip(), mediaType=media_type)

        success, error = await self.db.array_union(
            COLLECTIONS['festivals'], festival_id, {'categories': [category.model_dump(mode="json")]}
        )
        if not success:
            raise PersistenceWriteError("Error creating category", cause=error)
        return category

    async def _festival_post_docs(self, festival_id: str) -> List[Dict[str, Any]]:
        success, docs, error = await self.db.query_documents(
            COLLECTIONS['posts'], filters=[('festivalId', '==', festival_id)]
        )
        if not success:
            raise PersistenceWriteError("Error loading posts", cause=error)
        return docs

    async def _delete_stored_media(self, media_files: List[MediaFile]) -> None:
        # runs after the documents are committed; a leftover object is only logged
        for media in media_files:
            if not await self.storage.delete_media(media):
                logger.warning(f"Storage object for {media.url} was not deleted")

    async def delete_category(self, festival_id: str, owner: UserProfile, category_id: str) -> Dict[str, int]:
        """
        Remove a category and everything filed under it: its media objects,
        posts that only held its media, and its id on access codes and QR codes.
        Post media arrays are rewritten from the stored documents, so entries
        of other categories are kept untouched.
        """
        festival = await self.get_managed_festival(festival_id, owner)
        if not festival.has_category(category_id):
            raise NotFoundError(f"Category not found: {category_id}")

        operations = []
        orphaned: List[MediaFile] = []
        deleted_posts = updated_posts = 0
        for doc in await self._festival_post_docs(festival_id):
            stored = doc.get('mediaFiles') if isinstance(doc.get('mediaFiles'), list) else []
            in_category = [m for m in stored if isinstance(m, dict) and m.get('categoryId') == category_id]
            if not in_category:
                continue

            orphaned.extend(MediaFile.from_document(m) for m in in_category if is_usable_media(m))
            remaining = [m for m in stored if not (isinstance(m, dict) and m.get('categoryId') == category_id)]
            if remaining:
                operations.append({
                    'op': 'update', 'collection': COLLECTIONS['posts'], 'document_id': doc['id'],
                    'data': {'mediaFiles': remaining},
                })
                updated_posts += 1
            else:
                operations.append({'op': 'delete', 'collection': COLLECTIONS['posts'], 'document_id': doc['id']})
                deleted_posts += 1

        access_codes = [
            entry.model_copy(update={'categoryIds': [c for c in entry.categoryIds if c != category_id]})
            for entry in festival.categoryAccessCodes
        ]
        qr_codes = [
            qr.model_copy(update={'linkedCategories': [c for c in qr.linkedCategories if c != category_id]})
            for qr in festival.qrCodes
        ]
        operations.append({
            'op': 'update', 'collection': COLLECTIONS['festivals'], 'document_id': festival_id,
            'data': {
                'categories': [c.model_dump(mode="json") for c in festival.categories if c.id != category_id],
                'categoryAccessCodes': [e.model_dump(mode="json") for e in access_codes],
                'qrCodes': [q.model_dump(mode="json") for q in qr_codes],
            },
        })

        success, error = await self.db.batch_write(operations)
        if not success:
            raise PersistenceWriteError("Error deleting category", cause=error)

        await self._delete_stored_media(orphaned)
        logger.info(
            f"Category {category_id} deleted from festival {festival_id}: "
            f"{deleted_posts} posts deleted, {updated_posts} posts updated"
        )
        return {'deleted_posts': deleted_posts, 'updated_posts': updated_posts}

    def _check_categories(self, festival: Festival, category_ids: List[str]) -> List[str]:
        category_ids = list(dict.fromkeys(category_ids))
        unknown = [c for c in category_ids if not festival.has_category(c)]
        if unknown:
            raise ValidationError(f"Unknown categories for this festival: {unknown}")
        return category_ids

    # ===== Access codes =====

    async def create_access_code(self, festival_id: str, owner: UserProfile, code: str,
                                 category_ids: List[str], name: str = "") -> CategoryAccessCode:
        festival = await self.get_managed_festival(festival_id, owner)
        entry = CategoryAccessCode(
            code=await self._assert_code_available(code),
            name=name,
            categoryIds=self._check_categories(festival, category_ids),
            createdAt=datetime.now().isoformat(),
        )
        await self._save(festival_id, {
            'categoryAccessCodes': [e.model_dump(mode="json") for e in festival.categoryAccessCodes]
            + [entry.model_dump(mode="json")]
        })
        logger.info(f"Access code created on festival {festival_id} for {len(entry.categoryIds)} categories")
        return entry

    async def delete_access_code(self, festival_id: str, owner: UserProfile, code: str) -> None:
        festival = await self.get_managed_festival(festival_id, owner)
        normalized = normalize_code(code)
        remaining = [e for e in festival.categoryAccessCodes if normalize_code(e.code) != normalized]
        if len(remaining) == len(festival.categoryAccessCodes):
            raise NotFoundError(f"Access code not found: {code}")
        await self._save(festival_id, {'categoryAccessCodes': [e.model_dump(mode="json") for e in remaining]})

    # ===== QR codes =====

    async def create_qr_code(self, festival_id: str, owner: UserProfile, linked_categories: List[str],
                             name: str = "") -> QRCode:
        """Create a QR credential; its PNG is rendered and stored under the festival."""
        festival = await self.get_managed_festival(festival_id, owner)
        linked = self._check_categories(festival, linked_categories)

        qr_id = str(uuid.uuid4())
        payload = await self._assert_code_available(f"{festival_id}-{secrets.token_hex(8)}")
        image_url = await self.storage.upload_bytes(
            f"festivals/{festival_id}/qr/{qr_id}.png",
            render_qr_png(payload),
            "image/png",
            metadata={'festival_id': festival_id, 'qr_id': qr_id},
        )

        qr = QRCode(
            id=qr_id,
            code=payload,
            name=name,
            imageUrl=image_url,
            linkedCategories=linked,
            createdAt=datetime.now().isoformat(),
        )
        await self._save(festival_id, {
            'qrCodes': [q.model_dump(mode="json") for q in festival.qrCodes] + [qr.model_dump(mode="json")]
        })
        logger.info(f"QR code {qr_id} created on festival {festival_id}")
        return qr

    async def delete_qr_code(self, festival_id: str, owner: UserProfile, qr_id: str) -> None:
        festival = await self.get_managed_festival(festival_id, owner)
        target = next((q for q in festival.qrCodes if q.id == qr_id), None)
        if target is None:
            raise NotFoundError(f"QR code not found: {qr_id}")

        await self.storage.delete_file(f"festivals/{festival_id}/qr/{qr_id}.png")
        await self._save(festival_id, {
            'qrCodes': [q.model_dump(mode="json") for q in festival.qrCodes if q.id != qr_id]
        })


festival_service = FestivalService()


def get_festival_service() -> FestivalService:
    return festival_service
