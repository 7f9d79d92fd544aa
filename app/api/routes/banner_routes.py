"""
Banner Routes

GET /banner - Public URLs of the main page banners
"""

from fastapi import APIRouter

from app.db.mysql import execute_raw_sql
from app.schemas.schemas import BannerImageListResponse
from app.services.storage_service import get_storage

router = APIRouter(prefix="/banner", tags=["Banner"])


@router.get("", response_model=BannerImageListResponse)
async def list_banner_images():
    storage = get_storage()
    banners = execute_raw_sql("SELECT id FROM banner")
    return BannerImageListResponse(
        banner_image_list=[storage.get_public_url(f"banner/{b['id']}") for b in banners]
    )
