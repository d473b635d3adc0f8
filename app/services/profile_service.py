from typing import Any, Dict, List, Optional
import logging

from ..core.exceptions import NotFoundError, PersistenceWriteError, ValidationError
from ..database.collections import COLLECTIONS
from ..database.database_service import DatabaseService, database_service
from ..models.user import UserProfile

# Module logger
logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, db: DatabaseService = None):
        self.db = db or database_service

    async def get_profile(self, user_id: str) -> UserProfile:
        success, data, error = await self.db.get_document(COLLECTIONS['users'], user_id)
        if not success or not data:
            raise NotFoundError(f"Profile not found: {user_id}")
        return UserProfile.from_document(data)

    async def ensure_profile(self, user_id: str, email: str = "", display_name: str = "") -> UserProfile:
        """Return the user's profile, creating an empty one on first sign-in."""
        success, data, _ = await self.db.get_document(COLLECTIONS['users'], user_id)
        if success and data:
            return UserProfile.from_document(data)

        profile = UserProfile(id=user_id, email=email or "", displayName=display_name or "")
        ok, _, error = await self.db.create_document(
            COLLECTIONS['users'], profile.to_document(), document_id=user_id
        )
        if not ok:
            raise PersistenceWriteError("Error creating profile", cause=error)
        logger.info(f"Created profile for {user_id}")
        return profile

    async def update_profile(self, user_id: str, changes: Dict[str, Any]) -> UserProfile:
        # Grant and follow fields only change through their own operations
        allowed = {k: v for k, v in changes.items() if k in ('displayName', 'username', 'photoURL') and v is not None}
        if not allowed:
            return await self.get_profile(user_id)

        if 'username' in allowed:
            allowed['username'] = allowed['username'].strip().lower()
            ok, docs, _ = await self.db.query_documents(
                COLLECTIONS['users'], filters=[('username', '==', allowed['username'])], limit=1
            )
            if ok and docs and docs[0]['id'] != user_id:
                raise ValidationError("Username already taken")

        success, error = await self.db.update_document(COLLECTIONS['users'], user_id, allowed)
        if not success:
            raise PersistenceWriteError("Error updating profile", cause=error)
        return await self.get_profile(user_id)

    async def follow(self, user_id: str, target_id: str) -> None:
        if user_id == target_id:
            raise ValidationError("You cannot follow yourself")
        await self.get_profile(target_id)

        ok, error = await self.db.array_union(COLLECTIONS['users'], target_id, {'followers': [user_id]})
        if ok:
            ok, error = await self.db.array_union(COLLECTIONS['users'], user_id, {'following': [target_id]})
        if not ok:
            raise PersistenceWriteError("Error updating follow", cause=error)
        logger.info(f"{user_id} now follows {target_id}")

    async def unfollow(self, user_id: str, target_id: str) -> None:
        ok, error = await self.db.array_remove(COLLECTIONS['users'], target_id, {'followers': [user_id]})
        if ok:
            ok, error = await self.db.array_remove(COLLECTIONS['users'], user_id, {'following': [target_id]})
        if not ok:
            raise PersistenceWriteError("Error updating follow", cause=error)
        logger.info(f"{user_id} unfollowed {target_id}")

    async def search_users(self, term: str, limit: int = 20) -> List[UserProfile]:
        """Case-insensitive prefix match on display name or username."""
        term = (term or "").strip().lower()
        if not term:
            return []
        success, docs, error = await self.db.query_documents(COLLECTIONS['users'])
        if not success:
            raise PersistenceWriteError("Error searching users", cause=error)

        matches = []
        for doc in docs:
            profile = UserProfile.from_document(doc)
            if profile.displayName.lower().startswith(term) or profile.username.lower().startswith(term):
                matches.append(profile)
            if len(matches) >= limit:
                break
        return matches


profile_service = ProfileService()


def get_profile_service() -> ProfileService:
    return profile_service
