"""
Management Routes (admin console)

POST /management/banner - Upload banner images (at most 5 in total)
GET /management/banner - Banner list
DELETE /management/banner/{id} - Delete a banner
GET /management/student - Search students by uniId / name
PATCH /management/student - Correct a student's uniId / name
GET /management/admin/list - Admin accounts (the supervisor is hidden)
DELETE /management/admin/{id} - Remove an admin (supervisor only)
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import text

from app.core.auth import get_current_admin, get_current_email
from app.core.config import get_settings
from app.core.errors import IMAGE_UPLOAD_FAILED, NOT_FOUND, StorageError, bad_request
from app.db.mysql import execute_raw_sql, fetch_one, get_db_session
from app.schemas.schemas import (
    AdminInfo, AdminListResponse, BannerInfo, BannerListResponse, StudentInfo,
    StudentListResponse, StudentUpdate,
)
from app.services.storage_service import get_storage
from app.utils.helpers import generate_unique_id
from app.utils.image_upload import is_upload, read_image

router = APIRouter(prefix="/management", tags=["Management"])
logger = logging.getLogger(__name__)

MAX_BANNERS = 5
BANNER_FIELDS = [f"bannerImage{i}" for i in range(MAX_BANNERS)]


def get_banner_list() -> List[BannerInfo]:
    storage = get_storage()
    return [
        BannerInfo(file_name=b["name"], image=storage.get_public_url(f"banner/{b['id']}"), key=b["id"])
        for b in execute_raw_sql("SELECT id, name FROM banner")
    ]


def get_admin_list() -> List[AdminInfo]:
    rows = execute_raw_sql(
        "SELECT id, nickname FROM user WHERE is_admin = 1 AND id <> :supervisor_id",
        {"supervisor_id": get_settings().supervisor_id}
    )
    return [AdminInfo(**r) for r in rows]


@router.post("/banner", response_model=BannerListResponse)
async def upload_banners(request: Request, email: str = Depends(get_current_admin)):
    """Multipart parts bannerImage0..bannerImage4; stored as banner/<uniqueId>_<filename>."""
    form = await request.form()
    files = [form.get(field) for field in BANNER_FIELDS if is_upload(form.get(field))]
    if not files:
        raise bad_request()

    existing = fetch_one("SELECT COUNT(*) AS count FROM banner")
    if (existing["count"] if existing else 0) + len(files) > MAX_BANNERS:
        raise bad_request(f"There can be at most {MAX_BANNERS} banners.")

    storage = get_storage()
    for file in files:
        content = await read_image(file)
        key = f"{generate_unique_id()}_{file.filename}"
        try:
            storage.upload_file(content, f"banner/{key}", file.content_type)
        except StorageError as e:
            logger.error("Banner upload failed: %s", e)
            raise HTTPException(status_code=500, detail=IMAGE_UPLOAD_FAILED)

        with get_db_session() as db:
            db.execute(text("INSERT INTO banner (id, name) VALUES (:id, :name)"), {"id": key, "name": file.filename})

    logger.info("Uploaded %d banner(s)", len(files), extra={"admin": email})
    return BannerListResponse(banner_list=get_banner_list())


@router.get("/banner", response_model=BannerListResponse)
async def list_banners(email: str = Depends(get_current_admin)):
    return BannerListResponse(banner_list=get_banner_list())


@router.delete("/banner/{id}", response_model=BannerListResponse)
async def delete_banner(id: str, email: str = Depends(get_current_admin)):
    get_storage().delete_object(f"banner/{id}")
    with get_db_session() as db:
        db.execute(text("DELETE FROM banner WHERE id = :id"), {"id": id})
    return BannerListResponse(banner_list=get_banner_list())


@router.get("/student", response_model=StudentListResponse)
async def search_students(
    uni_id: Optional[str] = Query(None, alias="uniId"),
    name: Optional[str] = Query(None),
    email: str = Depends(get_current_admin),
):
    """Users with a student number matching either filter."""
    conditions, params = [], {}
    if uni_id:
        conditions.append("uni_id = :uni_id")
        params["uni_id"] = uni_id
    if name:
        conditions.append("name = :name")
        params["name"] = name
    if not conditions:
        raise bad_request()

    rows = execute_raw_sql(
        f"SELECT id, uni_id, name FROM user WHERE ({' OR '.join(conditions)}) AND uni_id IS NOT NULL",
        params
    )
    return StudentListResponse(student_list=[StudentInfo(**r) for r in rows])


@router.patch("/student", response_model=StudentListResponse)
async def update_student(request: StudentUpdate, email: str = Depends(get_current_admin)):
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE user SET uni_id = :uni_id, name = :name WHERE id = :id"),
            {"uni_id": request.uni_id, "name": request.name, "id": request.id}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail=NOT_FOUND)

    rows = execute_raw_sql("SELECT id, uni_id, name FROM user WHERE id = :id", {"id": request.id})
    return StudentListResponse(student_list=[StudentInfo(**r) for r in rows])


@router.get("/admin/list", response_model=AdminListResponse)
async def list_admins(email: str = Depends(get_current_admin)):
    return AdminListResponse(admin_list=get_admin_list())


@router.delete("/admin/{id}", response_model=AdminListResponse)
async def delete_admin(id: str, email: str = Depends(get_current_email)):
    """Only the supervisor account may remove admins, and never itself."""
    supervisor_id = get_settings().supervisor_id
    if not supervisor_id or email != supervisor_id:
        raise HTTPException(status_code=403, detail="You do not have permission to delete.")
    if id == supervisor_id:
        raise bad_request()

    with get_db_session() as db:
        db.execute(text("DELETE FROM user WHERE id = :id AND is_admin = 1"), {"id": id})

    logger.info("Admin removed", extra={"admin_id": id})
    return AdminListResponse(admin_list=get_admin_list())
