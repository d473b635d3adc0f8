"""
Firebase Admin bootstrap: the app itself and the Storage bucket that holds
festival media, cover images and QR images. Both are resolved lazily and
report their state for /health instead of failing startup.
"""

import firebase_admin
from firebase_admin import credentials, storage
from pathlib import Path
from typing import Any, Dict, Optional
import logging

from .config import settings

logger = logging.getLogger(__name__)

_bucket = None
_bucket_error: Optional[str] = None


def initialize_firebase() -> bool:
    """Start the Admin SDK once from the service-account file; False if that is impossible."""
    if firebase_admin._apps:
        return True

    key_file = Path(settings.FIREBASE_SERVICE_ACCOUNT_PATH)
    if not key_file.is_file():
        logger.warning(f"⚠️ No service account at {key_file}; Firebase features are off")
        return False

    try:
        firebase_admin.initialize_app(
            credentials.Certificate(str(key_file)),
            {
                'projectId': settings.FIREBASE_PROJECT_ID,
                'storageBucket': settings.FIREBASE_STORAGE_BUCKET,
            },
        )
    except (ValueError, OSError) as e:
        logger.error(f"❌ Firebase initialization failed: {e}")
        return False

    logger.info(f"✅ Firebase app ready for project {settings.FIREBASE_PROJECT_ID}")
    return True


def is_firebase_available() -> bool:
    return bool(firebase_admin._apps)


def get_storage_bucket():
    """The configured bucket, or None while Firebase is unavailable."""
    global _bucket, _bucket_error

    if _bucket is not None:
        return _bucket
    if not initialize_firebase():
        _bucket_error = "Firebase not initialized"
        return None

    try:
        _bucket = storage.bucket(settings.FIREBASE_STORAGE_BUCKET)
    except ValueError as e:
        _bucket_error = str(e)
        logger.error(f"❌ Storage bucket {settings.FIREBASE_STORAGE_BUCKET} unavailable: {e}")
        return None

    _bucket_error = None
    logger.info(f"📦 Storage bucket gs://{_bucket.name}")
    return _bucket


def is_storage_available() -> bool:
    return get_storage_bucket() is not None


def get_firebase_status() -> Dict[str, Any]:
    bucket = get_storage_bucket()
    return {
        "available": is_firebase_available(),
        "project_id": settings.FIREBASE_PROJECT_ID,
        "storage": {
            "available": bucket is not None,
            "bucket_path": f"gs://{bucket.name}" if bucket is not None else None,
            "error": _bucket_error,
        },
    }
