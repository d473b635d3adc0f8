from fastapi import APIRouter, Depends, Query
from typing import Optional

from ..auth.dependencies import get_current_profile, require_business_account
from ..core.exceptions import FestivalAppError
from ..models.post import DownloadCreate
from ..models.user import UserProfile
from ..services.download_service import DownloadService, get_download_service

router = APIRouter(prefix="/downloads", tags=["downloads"])


@router.post("")
async def record_download(
    request: DownloadCreate,
    profile: UserProfile = Depends(get_current_profile),
    downloads: DownloadService = Depends(get_download_service),
):
    try:
        data = await downloads.record_download(profile, request.postId, request.mediaIndex)
        return {"success": True, "data": data}
    except FestivalAppError as e:
        raise e.to_http()


@router.get("/metrics")
async def get_download_metrics(
    festival_id: Optional[str] = Query(None),
    owner: UserProfile = Depends(require_business_account),
    downloads: DownloadService = Depends(get_download_service),
):
    """Download counts across the festivals you manage"""
    try:
        metrics = await downloads.get_business_metrics(owner, festival_id)
        return {"success": True, "data": metrics}
    except FestivalAppError as e:
        raise e.to_http()
