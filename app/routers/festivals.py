"""
Festivals Router - festival listing and business-side management of
categories, access codes, QR codes and media uploads
"""

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from typing import List, Optional
import logging

from ..auth.dependencies import get_current_profile, require_business_account
from ..core.exceptions import FestivalAppError
from ..models.festival import (
    AccessCodeCreate,
    CategoryCreate,
    Festival,
    FestivalCreate,
    FestivalUpdate,
    MasterCodeUpdate,
    QRCodeCreate,
)
from ..models.post import PUBLIC_MEDIA_EXCLUDE, MediaTypeFilter
from ..models.user import UserProfile
from ..services.festival_service import FestivalService, get_festival_service
from ..services.post_service import PostService, get_post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/festivals", tags=["festivals"])


def _festival_view(festival: Festival, profile: UserProfile) -> dict:
    """Codes are only shown to the business account that manages the festival."""
    if profile.isBusinessAccount and festival.ownerId in ("", profile.id):
        return festival.model_dump(mode="json")
    return festival.restricted_to(festival.category_ids()).model_dump(mode="json")


# ===== Festivals =====

@router.get("")
async def list_festivals(
    profile: UserProfile = Depends(get_current_profile),
    festivals: FestivalService = Depends(get_festival_service),
):
    """All festivals; codes are hidden unless you manage the festival"""
    try:
        items = await festivals.list_festivals()
        return {"success": True, "data": [_festival_view(f, profile) for f in items], "count": len(items)}
    except FestivalAppError as e:
        raise e.to_http()


@router.get("/accessible")
async def list_accessible_festivals(
    profile: UserProfile = Depends(get_current_profile),
    festivals: FestivalService = Depends(get_festival_service),
):
    """Festivals you unlocked, each with only the categories you can view"""
    try:
        items = await festivals.list_accessible_festivals(profile)
        return {"success": True, "data": [f.model_dump(mode="json") for f in items], "count": len(items)}
    except FestivalAppError as e:
        raise e.to_http()


@router.get("/mine")
async def list_my_festivals(
    owner: UserProfile = Depends(require_business_account),
    festivals: FestivalService = Depends(get_festival_service),
):
    try:
        items = await festivals.list_owned_festivals(owner.id)
        return {"success": True, "data": [f.model_dump(mode="json") for f in items], "count": len(items)}
    except FestivalAppError as e:
        raise e.to_http()


@router.get("/{festival_id}")
async def get_festival(
    festival_id: str,
    profile: UserProfile = Depends(get_current_profile),
    festivals: FestivalService = Depends(get_festival_service),
):
    try:
        festival = await festivals.get_festival(festival_id)
        return {"success": True, "data": _festival_view(festival, profile)}
    except FestivalAppError as e:
        raise e.to_http()


@router.post("", status_code=201)
async def create_festival(
    request: FestivalCreate,
    owner: UserProfile = Depends(require_business_account),
    festivals: FestivalService = Depends(get_festival_service),
):
    try:
        festival = await festivals.create_festival(owner, request.model_dump())
        return {"success": True, "data": festival.model_dump(mode="json"), "message": "Festival created"}
    except FestivalAppError as e:
        raise e.to_http()


@router.patch("/{festival_id}")
async def update_festival(
    festival_id: str,
    request: FestivalUpdate,
    owner: UserProfile = Depends(require_business_account),
    festivals: FestivalService = Depends(get_festival_service),
):
    try:
        festival = await festivals.update_festival(festival_id, owner, request.model_dump(exclude_unset=True))
        return {"success": True, "data": festival.model_dump(mode="json"), "message": "Festival updated"}
    except FestivalAppError as e:
        raise e.to_http()


@router.post("/{festival_id}/image")
async def upload_festival_image(
    festival_id: str,
    file: UploadFile = File(...),
    owner: UserProfile = Depends(require_business_account),
    festivals: FestivalService = Depends(get_festival_service),
):
    try:
        festival = await festivals.upload_festival_image(festival_id, owner, file)
        return {"success": True, "data": {"imageUrl": festival.imageUrl}}
    except FestivalAppError as e:
        raise e.to_http()


@router.delete("/{festival_id}")
async def delete_festival(
    festival_id: str,
    owner: UserProfile = Depends(require_business_account),
    festivals: FestivalService = Depends(get_festival_service),
):
    try:
        deleted_posts = await festivals.delete_festival(festival_id, owner)
        return {"success": True, "data": {"deletedPosts": deleted_posts}, "message": "Festival deleted"}
    except FestivalAppError as e:
        raise e.to_http()


@router.put("/{festival_id}/master-code")
async def set_master_code(
    festival_id: str,
    request: MasterCodeUpdate,
    owner: UserProfile = Depends(require_business_account),
    festivals: FestivalService = Depends(get_festival_service),
):
    try:
        festival = await festivals.set_master_code(festival_id, owner, request.accessCode)
        return {"success": True, "data": {"accessCode": festival.accessCode}}
    except FestivalAppError as e:
        raise e.to_http()


# ===== Categories =====

@router.post("/{festival_id}/categories", status_code=201)
async def create_category(
    festival_id: str,
    request: CategoryCreate,
    owner: UserProfile = Depends(require_business_account),
    festivals: FestivalService = Depends(get_festival_service),
):
    try:
        category = await festivals.create_category(festival_id, owner, request.name, request.mediaType)
        return {"success": True, "data": category.model_dump(mode="json"), "message": "Category created"}
    except FestivalAppError as e:
        raise e.to_http()


@router.delete("/{festival_id}/categories/{category_id}")
async def delete_category(
    festival_id: str,
    category_id: str,
    owner: UserProfile = Depends(require_business_account),
    festivals: FestivalService = Depends(get_festival_service),
):
    """Delete a category together with all media filed under it"""
    try:
        result = await festivals.delete_category(festival_id, owner, category_id)
        return {
            "success": True,
            "data": {"deletedPosts": result['deleted_posts'], "updatedPosts": result['updated_posts']},
            "message": "Category and associated content deleted successfully",
        }
    except FestivalAppError as e:
        raise e.to_http()


# ===== Access codes =====

@router.post("/{festival_id}/access-codes", status_code=201)
async def create_access_code(
    festival_id: str,
    request: AccessCodeCreate,
    owner: UserProfile = Depends(require_business_account),
    festivals: FestivalService = Depends(get_festival_service),
):
    try:
        entry = await festivals.create_access_code(
            festival_id, owner, request.code, request.categoryIds, name=request.name
        )
        return {"success": True, "data": entry.model_dump(mode="json"), "message": "Access code created"}
    except FestivalAppError as e:
        raise e.to_http()


@router.delete("/{festival_id}/access-codes/{code}")
async def delete_access_code(
    festival_id: str,
    code: str,
    owner: UserProfile = Depends(require_business_account),
    festivals: FestivalService = Depends(get_festival_service),
):
    try:
        await festivals.delete_access_code(festival_id, owner, code)
        return {"success": True, "message": "Access code deleted"}
    except FestivalAppError as e:
        raise e.to_http()


# ===== QR codes =====

@router.post("/{festival_id}/qr-codes", status_code=201)
async def create_qr_code(
    festival_id: str,
    request: QRCodeCreate,
    owner: UserProfile = Depends(require_business_account),
    festivals: FestivalService = Depends(get_festival_service),
):
    try:
        qr = await festivals.create_qr_code(festival_id, owner, request.linkedCategories, name=request.name)
        return {"success": True, "data": qr.model_dump(mode="json"), "message": "QR code created"}
    except FestivalAppError as e:
        raise e.to_http()


@router.delete("/{festival_id}/qr-codes/{qr_id}")
async def delete_qr_code(
    festival_id: str,
    qr_id: str,
    owner: UserProfile = Depends(require_business_account),
    festivals: FestivalService = Depends(get_festival_service),
):
    try:
        await festivals.delete_qr_code(festival_id, owner, qr_id)
        return {"success": True, "message": "QR code deleted"}
    except FestivalAppError as e:
        raise e.to_http()


# ===== Media posts =====

@router.get("/{festival_id}/posts")
async def get_festival_posts(
    festival_id: str,
    category: Optional[str] = Query("", description="Category id; empty for every granted category"),
    media_type: MediaTypeFilter = Query(MediaTypeFilter.ALL),
    profile: UserProfile = Depends(get_current_profile),
    posts: PostService = Depends(get_post_service),
):
    """Festival media you are allowed to see, newest first"""
    try:
        items = await posts.get_festival_feed(festival_id, profile, category, media_type)
        return {"success": True, "data": [p.public_view() for p in items], "count": len(items)}
    except FestivalAppError as e:
        raise e.to_http()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error loading festival posts: {str(e)}")
        raise HTTPException(status_code=500, detail="Error loading posts")


@router.post("/{festival_id}/posts", status_code=201)
async def upload_festival_media(
    festival_id: str,
    category_id: str = Form(...),
    text: str = Form(""),
    files: List[UploadFile] = File(...),
    owner: UserProfile = Depends(require_business_account),
    posts: PostService = Depends(get_post_service),
):
    """Upload media into a category; files that fail are skipped and listed"""
    try:
        result = await posts.upload_media(festival_id, owner, category_id, files, text=text)
        return {
            "success": result.uploaded > 0,
            "data": result.model_dump(mode="json", exclude={"post": PUBLIC_MEDIA_EXCLUDE}),
            "message": f"Successfully uploaded {result.uploaded} files",
        }
    except FestivalAppError as e:
        raise e.to_http()
