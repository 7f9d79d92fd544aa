"""
Category Routes

GET /category/job - Job categories (positions)
GET /category/region - Regions keyed by area code
GET /category/platform - Project platforms
GET /category/technology - Technologies
"""

from fastapi import APIRouter

from app.db.mysql import execute_raw_sql
from app.schemas.schemas import (
    JobCategoryListResponse, PlatformListResponse, Region, RegionListResponse,
    TechnologyListResponse,
)

router = APIRouter(prefix="/category", tags=["Category"])

# Area code -> region name as it appears in stored addresses
REGION_MAP = {
    "02": "서울",
    "031": "경기",
    "032": "인천",
    "033": "강원",
    "041": "충남",
    "042": "대전",
    "043": "충북",
    "044": "세종",
    "051": "부산",
    "052": "울산",
    "053": "대구",
    "054": "경북",
    "055": "경남",
    "061": "전남",
    "062": "광주",
    "063": "전북",
    "064": "제주",
}


@router.get("/job", response_model=JobCategoryListResponse)
async def list_job_categories():
    return JobCategoryListResponse(job_category_list=execute_raw_sql("SELECT id, name FROM job_category"))


@router.get("/region", response_model=RegionListResponse)
async def list_regions():
    return RegionListResponse(region_list=[Region(id=code, name=name) for code, name in REGION_MAP.items()])


@router.get("/platform", response_model=PlatformListResponse)
async def list_platforms():
    return PlatformListResponse(platform_list=execute_raw_sql("SELECT id, name FROM plattform"))


@router.get("/technology", response_model=TechnologyListResponse)
async def list_technologies():
    return TechnologyListResponse(technology_list=execute_raw_sql("SELECT id, name FROM technology"))
