from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .base import DocumentModel


class UserProfile(DocumentModel):
    id: str
    email: str = ""
    displayName: str = ""
    photoURL: Optional[str] = None
    username: str = ""
    followers: List[str] = Field(default_factory=list)
    following: List[str] = Field(default_factory=list)
    accessibleFestivals: List[str] = Field(default_factory=list)
    accessibleCategories: Dict[str, List[str]] = Field(default_factory=dict)
    isBusinessAccount: bool = False

    @field_validator("accessibleCategories", mode="before")
    @classmethod
    def _drop_empty_grants(cls, value):
        if not isinstance(value, dict):
            return {}
        return {festival_id: list(ids) for festival_id, ids in value.items() if isinstance(ids, list)}

    def granted_categories(self, festival_id: str) -> List[str]:
        """Category ids unlocked for a festival; nothing when the festival has no map entry."""
        return list(self.accessibleCategories.get(festival_id, []))

    def public_view(self) -> Dict:
        return self.model_dump(
            include={"id", "displayName", "photoURL", "username", "followers", "following", "isBusinessAccount"}
        )


class UserUpdate(BaseModel):
    displayName: Optional[str] = Field(default=None, min_length=1, max_length=60)
    username: Optional[str] = Field(default=None, min_length=2, max_length=30)
    photoURL: Optional[str] = None
