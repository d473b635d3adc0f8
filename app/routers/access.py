"""
Access Router - redeem access codes and scanned QR payloads
"""

from fastapi import APIRouter, Depends, HTTPException
from typing import Optional
from pydantic import BaseModel, Field
import logging

from ..auth.dependencies import get_current_profile
from ..core.exceptions import FestivalAppError, PersistenceWriteError
from ..models.user import UserProfile
from ..services.access_resolver import AccessService, get_access_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/access", tags=["access"])


class RedeemRequest(BaseModel):
    code: str = Field(..., description="Typed access code or text decoded from a QR image")
    source: Optional[str] = Field(default="typed", description="typed or qr; informational only")


@router.post("/redeem")
async def redeem_code(
    request: RedeemRequest,
    profile: UserProfile = Depends(get_current_profile),
    access: AccessService = Depends(get_access_service),
):
    """Unlock the festival and categories a code grants"""
    try:
        grant = await access.redeem_code(profile.id, request.code)
        return {
            "success": True,
            "data": {
                "festivalId": grant.festival_id,
                "grantedCategoryIds": grant.granted_category_ids,
                "accessibleCategories": grant.accessible_categories,
                "accessibleFestivals": grant.accessible_festivals,
                "source": grant.source.value,
            },
            "message": "Access granted",
        }
    except PersistenceWriteError as e:
        logger.error(f"Error processing access for {profile.id}: {e.cause}")
        raise e.to_http()
    except FestivalAppError as e:
        raise e.to_http()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error redeeming code: {str(e)}")
        raise HTTPException(status_code=500, detail="Error processing access")


@router.get("/me")
async def get_my_grants(
    profile: UserProfile = Depends(get_current_profile),
    access: AccessService = Depends(get_access_service),
):
    """Festivals and category ids the current user has unlocked"""
    try:
        grants = await access.get_user_grants(profile.id)
        return {"success": True, "data": grants}
    except FestivalAppError as e:
        raise e.to_http()
