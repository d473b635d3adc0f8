"""
Access Resolver - turns a typed access code or a decoded QR payload into a
festival/category grant for the current user and persists it.

Resolution order: every festival's QR codes first, then master codes and
category access codes. Codes compare after trimming and lower-casing.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from ..core.exceptions import InvalidCodeError, NotFoundError, PersistenceWriteError
from ..database.collections import COLLECTIONS
from ..database.database_service import DatabaseService, database_service
from ..models.festival import Festival
from ..models.user import UserProfile

logger = logging.getLogger(__name__)


class MatchSource(str, Enum):
    QR = "qr"
    MASTER = "master"
    CATEGORY = "category"


@dataclass(frozen=True)
class AccessMatch:
    festival_id: str
    category_ids: Tuple[str, ...]
    source: MatchSource


@dataclass
class AccessGrant:
    festival_id: str
    granted_category_ids: List[str]
    accessible_categories: List[str]
    source: MatchSource
    accessible_festivals: List[str] = field(default_factory=list)


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().lower()


def _dedupe(ids: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(ids))


def resolve_access_code(submitted_code: str, festivals: List[Festival]) -> AccessMatch:
    """
    Find the festival and category ids a code unlocks.

    Pure: reads only the given festivals. The first match in iteration
    order wins; a code present on several festivals is logged.
    Raises InvalidCodeError when nothing matches.
    """
    code = normalize_code(submitted_code)
    if not code:
        raise InvalidCodeError()

    qr_matches = [
        (festival, qr)
        for festival in festivals
        for qr in festival.qrCodes
        if normalize_code(qr.code) == code
    ]
    if qr_matches:
        festival, qr = qr_matches[0]
        _warn_on_collision(code, [f.id for f, _ in qr_matches])
        return AccessMatch(festival.id, _dedupe(qr.linkedCategories), MatchSource.QR)

    code_matches: List[AccessMatch] = []
    for festival in festivals:
        if festival.accessCode and normalize_code(festival.accessCode) == code:
            # snapshot of the categories that exist right now
            code_matches.append(AccessMatch(festival.id, _dedupe(festival.category_ids()), MatchSource.MASTER))
            continue
        for entry in festival.categoryAccessCodes:
            if normalize_code(entry.code) == code:
                code_matches.append(AccessMatch(festival.id, _dedupe(entry.categoryIds), MatchSource.CATEGORY))
                break

    if not code_matches:
        logger.info("Rejected access code: no festival matched")
        raise InvalidCodeError()

    _warn_on_collision(code, [m.festival_id for m in code_matches])
    return code_matches[0]


def _warn_on_collision(code: str, festival_ids: List[str]) -> None:
    distinct = list(dict.fromkeys(festival_ids))
    if len(distinct) > 1:
        logger.warning(
            f"Access code '{code}' exists on {len(distinct)} festivals {distinct}; "
            f"granting the first ({distinct[0]})"
        )


def merge_grant(profile: UserProfile, match: AccessMatch) -> Tuple[List[str], Dict[str, List[str]]]:
    """
    Union a match into a profile's grant fields without touching the profile.
    Returns the new (accessibleFestivals, accessibleCategories).
    """
    festivals = list(profile.accessibleFestivals)
    if match.festival_id not in festivals:
        festivals.append(match.festival_id)

    categories = {fid: list(ids) for fid, ids in profile.accessibleCategories.items()}
    categories[match.festival_id] = list(_dedupe(categories.get(match.festival_id, []) + list(match.category_ids)))
    return festivals, categories


class AccessService:
    def __init__(self, db: DatabaseService = None):
        self.db = db or database_service

    async def load_festivals(self) -> List[Festival]:
        success, docs, error = await self.db.query_documents(COLLECTIONS['festivals'])
        if not success:
            raise PersistenceWriteError("Error loading festivals", cause=error)
        return [Festival.from_document(doc) for doc in docs]

    async def get_profile(self, user_id: str) -> UserProfile:
        success, data, error = await self.db.get_document(COLLECTIONS['users'], user_id)
        if not success or not data:
            raise NotFoundError(f"User profile {user_id} not found")
        return UserProfile.from_document(data)

    async def get_user_grants(self, user_id: str) -> Dict[str, Any]:
        """The festivals and per-festival category ids a user has unlocked."""
        profile = await self.get_profile(user_id)
        return {
            "accessibleFestivals": list(profile.accessibleFestivals),
            "accessibleCategories": {fid: list(ids) for fid, ids in profile.accessibleCategories.items()},
        }

    async def redeem_code(self, user_id: str, submitted_code: str,
                          festivals: Optional[List[Festival]] = None) -> AccessGrant:
        """
        Resolve a code and persist the grant with server-side set unions on
        ``accessibleFestivals`` and ``accessibleCategories.<festivalId>``, so
        concurrent redemptions for the same user never drop each other.
        """
        if festivals is None:
            festivals = await self.load_festivals()

        match = resolve_access_code(submitted_code, festivals)
        profile = await self.get_profile(user_id)

        success, error = await self.db.array_union(
            COLLECTIONS['users'],
            user_id,
            {
                "accessibleFestivals": [match.festival_id],
                ("accessibleCategories", match.festival_id): list(match.category_ids),
            },
        )
        if not success:
            logger.error(f"Failed to persist grant for user {user_id} on festival {match.festival_id}: {error}")
            raise PersistenceWriteError(cause=error)

        accessible_festivals, accessible_categories = merge_grant(profile, match)
        logger.info(
            f"Granted {len(match.category_ids)} categories of festival {match.festival_id} "
            f"to user {user_id} via {match.source.value} code"
        )
        return AccessGrant(
            festival_id=match.festival_id,
            granted_category_ids=list(match.category_ids),
            accessible_categories=accessible_categories[match.festival_id],
            source=match.source,
            accessible_festivals=accessible_festivals,
        )


access_service = AccessService()


def get_access_service() -> AccessService:
    return access_service
