import uuid
import urllib.parse
from typing import Any, Dict, Optional
from datetime import datetime
import mimetypes
import logging

from fastapi import UploadFile
from google.cloud.exceptions import NotFound

from ..core.config import settings
from ..core.exceptions import UploadError
from ..core.firebase_init import get_storage_bucket

logger = logging.getLogger(__name__)


class FileStorageService:
    """
    Uploads festival media, festival cover images and QR images to Firebase
    Storage and hands back token-based download URLs.
    """

    def __init__(self, bucket=None):
        self._bucket = bucket

    @property
    def bucket(self):
        if self._bucket is None:
            self._bucket = get_storage_bucket()
        return self._bucket

    def _content_type(self, file: UploadFile) -> str:
        content_type = file.content_type
        if not content_type or content_type in ("application/octet-stream", "binary/octet-stream"):
            content_type = mimetypes.guess_type(file.filename or "")[0] or ""
        return content_type.lower()

    def _media_kind(self, file: UploadFile) -> str:
        """Validate one media file and return 'image' or 'video'."""
        content_type = self._content_type(file)
        if content_type.startswith("video/"):
            kind, limit = "video", settings.max_video_size
        elif content_type.startswith("image/"):
            kind, limit = "image", settings.max_image_size
        else:
            raise UploadError(file.filename or "file", f"Invalid file type: {content_type or 'unknown'}")

        file.file.seek(0, 2)
        file_size = file.file.tell()
        file.file.seek(0)
        if file_size > limit:
            raise UploadError(
                file.filename or "file",
                f"File too large. Maximum size for {kind}s is {limit // (1024 * 1024)}MB"
            )
        return kind

    def _download_url(self, file_path: str, token: str) -> str:
        encoded_path = urllib.parse.quote(file_path, safe='')
        return f"https://firebasestorage.googleapis.com/v0/b/{self.bucket.name}/o/{encoded_path}?alt=media&token={token}"

    async def upload_bytes(self, file_path: str, content: bytes, content_type: str,
                           metadata: Optional[Dict[str, str]] = None) -> str:
        """Upload raw bytes and return the download URL."""
        if not self.bucket:
            raise UploadError(file_path, "File storage not available")

        download_token = str(uuid.uuid4())
        blob = self.bucket.blob(file_path)
        blob.metadata = {
            **(metadata or {}),
            'upload_timestamp': datetime.now().isoformat(),
            'firebaseStorageDownloadTokens': download_token,
        }
        try:
            blob.upload_from_string(content, content_type=content_type)
        except Exception as e:
            logger.error(f"❌ Upload of {file_path} failed: {e}")
            raise UploadError(file_path, f"Upload failed: {e}")

        logger.info(f"✅ File uploaded successfully: {file_path}")
        return self._download_url(file_path, download_token)

    async def upload_media(self, file: UploadFile, user_id: str) -> Dict[str, Any]:
        """
        Upload one festival media file to ``media/<uid>/<timestamp>_<name>``.
        Raises UploadError for an invalid type, an oversized file or a failed transfer.
        """
        kind = self._media_kind(file)
        filename = (file.filename or "upload").replace("/", "_")
        file_path = f"media/{user_id}/{int(datetime.now().timestamp() * 1000)}_{filename}"

        content = await file.read()
        url = await self.upload_bytes(
            file_path,
            content,
            self._content_type(file),
            metadata={'uploaded_by': user_id, 'original_filename': filename},
        )
        return {"url": url, "type": kind, "storagePath": file_path}

    @staticmethod
    def path_from_url(url: str) -> Optional[str]:
        """Recover the object path from a Firebase download URL (``.../o/<path>?...``)."""
        try:
            encoded = urllib.parse.urlparse(url).path.split('/o/', 1)[1]
        except (IndexError, AttributeError):
            return None
        return urllib.parse.unquote(encoded) or None

    async def delete_file(self, file_path: Optional[str]) -> bool:
        """Delete an object; a missing object counts as deleted."""
        if not file_path or not self.bucket:
            return False
        try:
            self.bucket.blob(file_path).delete()
            logger.info(f"🗑️ Deleted storage object {file_path}")
            return True
        except NotFound:
            return True
        except Exception as e:
            logger.error(f"❌ Failed to delete storage object {file_path}: {e}")
            return False

    async def delete_media(self, media) -> bool:
        return await self.delete_file(media.storagePath or self.path_from_url(media.url))


file_storage_service = FileStorageService()
