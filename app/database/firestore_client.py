from firebase_admin import firestore
import logging

from ..core.firebase_init import initialize_firebase

logger = logging.getLogger(__name__)

_client = None

def get_firestore_client():
    """Return the shared Firestore client, initializing Firebase on first use."""
    global _client

    if _client is None:
        if not initialize_firebase():
            raise Exception("Firebase initialization failed - Firestore not available")
        _client = firestore.client()
        logger.info("✅ Firestore client ready")

    return _client
