from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .base import DocumentModel


class CategoryMediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    BOTH = "both"


class Category(DocumentModel):
    id: str
    name: str = ""
    mediaType: CategoryMediaType = CategoryMediaType.BOTH


class CategoryAccessCode(DocumentModel):
    code: str
    name: str = ""
    categoryIds: List[str] = Field(default_factory=list)
    createdAt: Any = None


class QRCode(DocumentModel):
    id: str = ""
    code: str
    name: str = ""
    imageUrl: Optional[str] = None
    linkedCategories: List[str] = Field(default_factory=list)
    createdAt: Any = None


class Festival(DocumentModel):
    id: str
    name: str = ""
    description: str = ""
    imageUrl: str = ""
    date: str = ""
    time: str = ""
    startTime: str = ""
    endTime: str = ""
    categories: List[Category] = Field(default_factory=list)
    categoryAccessCodes: List[CategoryAccessCode] = Field(default_factory=list)
    qrCodes: List[QRCode] = Field(default_factory=list)
    accessCode: str = ""
    stats: Dict[str, Any] = Field(default_factory=dict)
    ownerId: str = ""

    @field_validator("categoryAccessCodes", "qrCodes", mode="before")
    @classmethod
    def _skip_codeless_entries(cls, value: Any) -> Any:
        # An entry without a code can never match
        if isinstance(value, list):
            return [v for v in value if isinstance(v, dict) and v.get("code")]
        return value

    @field_validator("categories", mode="before")
    @classmethod
    def _skip_categories_without_id(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [v for v in value if isinstance(v, dict) and v.get("id")]
        return value

    def category_ids(self) -> List[str]:
        return [category.id for category in self.categories]

    def has_category(self, category_id: str) -> bool:
        return any(category.id == category_id for category in self.categories)

    def restricted_to(self, category_ids: List[str]) -> "Festival":
        """Copy that only exposes the given categories and no codes."""
        allowed = set(category_ids)
        return self.model_copy(update={
            "categories": [c for c in self.categories if c.id in allowed],
            "categoryAccessCodes": [],
            "qrCodes": [],
            "accessCode": "",
        })


# ── request payloads ─────────────────────────────────────────────────────────

class FestivalCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    imageUrl: str = ""
    date: str = ""
    time: str = ""
    startTime: str = ""
    endTime: str = ""
    accessCode: Optional[str] = None


class FestivalUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    imageUrl: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    mediaType: CategoryMediaType = CategoryMediaType.BOTH


class AccessCodeCreate(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = ""
    categoryIds: List[str] = Field(..., min_length=1)


class QRCodeCreate(BaseModel):
    name: str = ""
    linkedCategories: List[str] = Field(..., min_length=1)


class MasterCodeUpdate(BaseModel):
    accessCode: str = Field(..., min_length=1)
