"""
Profile Routes

POST /profile - Create an (empty) profile for the signed-in user
PUT /profile - Update profile fields and picture (multipart)
PATCH /profile/open - Open or close the profile to other users
GET /profile?id= - View a profile
"""

import json
import logging
from typing import List, Optional, Sequence

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import bindparam, text

from app.core.auth import get_current_email, get_optional_email
from app.core.errors import IMAGE_UPLOAD_FAILED, NOT_FOUND, StorageError, bad_request
from app.db.mysql import execute_raw_sql, fetch_one, get_db_session
from app.schemas.schemas import (
    Category, ProfileCreate, ProfileCreatedResponse, ProfileInfo, ProfileOpenRequest,
    ProfileOpenResponse, ProfileResponse,
)
from app.services.storage_service import get_storage
from app.utils.helpers import parse_json_field
from app.utils.image_upload import PROFILE_IMAGE_SIZE, is_upload, read_image, resize_image

router = APIRouter(prefix="/profile", tags=["Profile"])
logger = logging.getLogger(__name__)

MAX_RAW_SCORE = 13
MAX_INTRODUCTION_SCORE = 4
JSON_LIST_FIELDS = ("positions", "technologies", "awards", "links")


def calculate_profile_score(
    introduction: Optional[str] = None,
    technologies: Optional[Sequence] = None,
    positions: Optional[Sequence] = None,
    awards: Optional[Sequence] = None,
    links: Optional[Sequence] = None,
) -> int:
    """
    Profile completeness, 0-100.

    Raw points (max 13): introduction up to 4 (doubling per 100 chars past
    the first hundred), technologies up to 4, a position 1, awards and
    links up to 2 each.
    """
    introduction_score = 0
    if introduction:
        introduction_score = 2 ** (len(introduction) // 100 - 1)
        introduction_score = min(introduction_score, MAX_INTRODUCTION_SCORE)
        if introduction_score < 1:
            introduction_score = 0

    technology_score = 0
    if technologies:
        technology_score = 1
        if len(technologies) >= 2:
            technology_score += 1
        if len(technologies) >= 5:
            technology_score += 2

    position_score = 1 if positions else 0
    awards_score = 0 if not awards else (2 if len(awards) >= 2 else 1)
    links_score = 0 if not links else (2 if len(links) >= 2 else 1)

    raw_score = introduction_score + technology_score + position_score + awards_score + links_score
    return round(raw_score / MAX_RAW_SCORE * 100)


def get_categories(table: str, ids: List[int]) -> List[Category]:
    if not ids:
        return []
    rows = execute_raw_sql(
        text(f"SELECT id, name FROM {table} WHERE id IN :ids").bindparams(bindparam("ids", expanding=True)),
        {"ids": ids}
    )
    return [Category(**r) for r in rows]


def get_profile_info(user_id: str, requester: Optional[str] = None) -> Optional[ProfileInfo]:
    """
    Profile as seen by `requester` (defaults to the owner).
    None when the user does not exist.
    """
    requester = user_id if requester is None else requester
    is_me = user_id == requester

    profile = fetch_one("""
        SELECT up.is_open_information, u.nickname, up.user_id, up.image, up.positions,
               up.technologies, up.introduction, up.awards, up.links
        FROM user_profile up
        JOIN user u ON u.id = up.user_id
        WHERE up.user_id = :id
    """, {"id": user_id})

    if not profile:
        user = fetch_one("SELECT id, nickname, is_admin FROM user WHERE id = :id", {"id": user_id})
        if not user:
            return None
        if user["is_admin"]:
            return ProfileInfo(has_not_profile=True, id=user["id"], nickname=user["nickname"], is_admin=True)
        return ProfileInfo(has_not_profile=True, is_me=True if is_me else None)

    is_open = bool(profile["is_open_information"])
    info = ProfileInfo(is_open=is_open, is_me=is_me, nickname=profile["nickname"], id=profile["user_id"])
    if not is_me and not is_open:
        return info

    awards = parse_json_field(profile["awards"])
    links = parse_json_field(profile["links"])
    if awards:
        info.awards = awards
    if links:
        info.links = links
    if profile["introduction"]:
        info.introduction = profile["introduction"]

    position_ids = parse_json_field(profile["positions"])
    if position_ids:
        info.positions = get_categories("job_category", position_ids)

    technology_ids = parse_json_field(profile["technologies"])
    if technology_ids:
        info.technologies = get_categories("technology", technology_ids)

    if profile["image"]:
        info.image = get_storage().get_object_url(profile["image"])

    info.profile_score = calculate_profile_score(
        introduction=info.introduction,
        technologies=info.technologies,
        positions=info.positions,
        awards=info.awards,
        links=info.links,
    )
    return info


def profile_exists(email: str) -> bool:
    return fetch_one("SELECT user_id FROM user_profile WHERE user_id = :id", {"id": email}) is not None


@router.post("", response_model=ProfileCreatedResponse)
async def create_profile(request: ProfileCreate, email: str = Depends(get_current_email)):
    """Record the student number and name, and open an empty profile."""
    if profile_exists(email):
        raise HTTPException(status_code=400, detail="A profile has already been created.")

    with get_db_session() as db:
        db.execute(
            text("UPDATE user SET uni_id = :uni_id, name = :name WHERE id = :id"),
            {"uni_id": request.uni_id, "name": request.name, "id": email}
        )
        db.execute(text("INSERT INTO user_profile (user_id) VALUES (:id)"), {"id": email})

    return ProfileCreatedResponse()


@router.put("", response_model=ProfileResponse, response_model_exclude_none=True)
async def update_profile(request: Request, email: str = Depends(get_current_email)):
    """
    Multipart form: positions, technologies, awards, links (JSON strings),
    introduction, image.

    `image` may be a new file, the current key as plain text (kept as is),
    or absent (the picture is removed). Empty fields are stored as NULL.
    """
    form = await request.form()

    current = fetch_one("SELECT image FROM user_profile WHERE user_id = :id", {"id": email})
    if not current:
        raise HTTPException(status_code=404, detail=NOT_FOUND)

    updates = {}
    for field in JSON_LIST_FIELDS:
        value = form.get(field) or None
        if value is not None:
            try:
                if not isinstance(json.loads(value), list):
                    raise bad_request()
            except (TypeError, ValueError):
                raise bad_request()
        updates[field] = value
    updates["introduction"] = form.get("introduction") or None

    if updates["awards"]:
        awards = json.loads(updates["awards"])
        if not all(isinstance(award, dict) for award in awards):
            raise bad_request()
        awards = sorted(awards, key=lambda award: str(award.get("awardedAt", "")))
        updates["awards"] = json.dumps(awards, ensure_ascii=False)

    image = form.get("image")
    if not isinstance(image, str):
        storage = get_storage()
        if current["image"]:
            storage.delete_object(current["image"])
        updates["image"] = None

        if is_upload(image):
            content = await read_image(image)
            resized = resize_image(content, PROFILE_IMAGE_SIZE)
            try:
                updates["image"] = storage.upload_file(
                    resized, f"profile/{email}/{image.filename}", image.content_type
                )
            except StorageError as e:
                logger.error("Profile image upload failed: %s", e)
                raise HTTPException(status_code=500, detail=IMAGE_UPLOAD_FAILED)

    assignments = ", ".join(f"{column} = :{column}" for column in updates)
    with get_db_session() as db:
        db.execute(
            text(f"UPDATE user_profile SET {assignments} WHERE user_id = :user_id"),
            dict(updates, user_id=email)
        )

    return ProfileResponse(profile_info=get_profile_info(email))


@router.patch("/open", response_model=ProfileOpenResponse)
async def set_profile_open(request: ProfileOpenRequest, email: str = Depends(get_current_email)):
    with get_db_session() as db:
        db.execute(
            text("UPDATE user_profile SET is_open_information = :is_open WHERE user_id = :id"),
            {"is_open": request.will_open_information, "id": email}
        )
    return ProfileOpenResponse(is_open=request.will_open_information)


@router.get("", response_model=ProfileResponse, response_model_exclude_none=True)
async def get_profile(
    id: str = Query(..., min_length=1),
    email: Optional[str] = Depends(get_optional_email),
):
    """Closed profiles show other users only the nickname and id."""
    profile_info = get_profile_info(id, email or "")
    if profile_info is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return ProfileResponse(profile_info=profile_info)
