"""
Employment (Job Posting) Routes

GET /employment?id= - Job posting detail (counts a view)
GET /employment/list - Open job postings, filtered by position / region
GET /employment/applicant/list?id= - Applicant count (author also sees who)
POST /employment - Create job posting (multipart, image required)
POST /employment/applicant - Apply to a job posting (students only)
PATCH /employment/{id} - Update job posting (author or admin)
DELETE /employment/{id} - Soft delete job posting (author or admin)
DELETE /employment/applicant/{id} - Withdraw own application
"""

import json
import logging
import uuid
from datetime import date, datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy import bindparam, text

from app.api.routes.category_routes import REGION_MAP
from app.core.auth import can_edit, get_current_email, get_optional_email
from app.core.errors import IMAGE_UPLOAD_FAILED, NOT_FOUND, StorageError, bad_request
from app.core.views import count_view
from app.db.mysql import execute_raw_sql, fetch_one, get_db_session
from app.schemas.schemas import (
    Applicant, ApplicantInformation, AppliedResponse, ApplyRequest, DeletedResponse,
    EmploymentDetail, JobPostingListResponse, JobPostingSummary, PostedResponse,
    UpdatedResponse,
)
from app.services.mail_service import get_mail_service
from app.services.storage_service import get_storage
from app.utils.helpers import generate_unique_id, is_json_object, is_valid_email, parse_json_field, region_of
from app.utils.image_upload import POSTING_IMAGE_SIZE, content_type_for, read_image, resize_image

router = APIRouter(prefix="/employment", tags=["Employment"])
logger = logging.getLogger(__name__)


def parse_deadline(deadline) -> Optional[date]:
    """Deadlines are stored as YYYYMMDD strings (or DATE columns)."""
    if isinstance(deadline, datetime):
        return deadline.date()
    if isinstance(deadline, date):
        return deadline
    try:
        return datetime.strptime(str(deadline), "%Y%m%d").date()
    except (TypeError, ValueError):
        return None


def format_deadline(deadline) -> str:
    parsed = parse_deadline(deadline)
    return parsed.strftime("%Y.%m.%d") if parsed else str(deadline or "")


def is_open_deadline(deadline: str, today: Optional[date] = None) -> bool:
    """New postings must stay open at least until tomorrow."""
    parsed = parse_deadline(deadline)
    today = today or date.today()
    return parsed is not None and parsed >= today + timedelta(days=1)


async def upload_posting_image(image: UploadFile) -> str:
    content = await read_image(image)
    resized = resize_image(content, POSTING_IMAGE_SIZE, "JPEG")
    try:
        return get_storage().upload_file(resized, f"employment/{uuid.uuid4()}.jpg", content_type_for("JPEG"))
    except StorageError as e:
        logger.error("Posting image upload failed: %s", e)
        raise HTTPException(status_code=500, detail=IMAGE_UPLOAD_FAILED)


def get_posting_owner(posting_id: str) -> dict:
    posting = fetch_one(
        "SELECT user_id, image, applicant FROM job_posting WHERE id = :id AND is_deleted = 0",
        {"id": posting_id}
    )
    if not posting:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return posting


@router.get(
    "",
    response_model=EmploymentDetail,
    response_model_exclude_none=True,
    dependencies=[Depends(count_view("job_posting"))],
)
async def get_employment(
    id: str = Query(..., min_length=1),
    email: Optional[str] = Depends(get_optional_email),
):
    """Job posting detail. Signed-in requesters also learn whether they applied / may edit."""
    r = fetch_one("""
        SELECT jp.id, jp.user_id, jp.company_name, jp.title, jp.content, jp.deadline, jp.image,
               jp.field AS position_id, jc.name AS position_name, jp.applicant, jp.address_information
        FROM job_posting jp
        JOIN job_category jc ON jc.id = jp.field
        WHERE jp.id = :id AND jp.is_deleted = 0
    """, {"id": id})

    if not r:
        raise HTTPException(status_code=404, detail=NOT_FOUND)

    applicants = parse_json_field(r["applicant"], [])
    image_url = get_storage().get_object_url(r["image"])

    return EmploymentDetail(
        has_authority=True if email and can_edit(email, r["user_id"]) else None,
        is_applied=True if email and email in applicants else None,
        id=r["id"], user_id=r["user_id"], image=image_url or r["image"],
        company_name=r["company_name"], address_information=r["address_information"],
        title=r["title"], content=r["content"],
        position_id=r["position_id"], position_name=r["position_name"],
        region=region_of(r["address_information"]),
        deadline=format_deadline(r["deadline"]),
    )


@router.get("/list", response_model=JobPostingListResponse, response_model_exclude_none=True)
async def list_employments(
    position: Optional[List[int]] = Query(None, description="Job category ids"),
    region: Optional[List[str]] = Query(None, description="Region area codes"),
):
    """Postings whose deadline has not passed, in random order."""
    sql = """
        SELECT jp.id, jp.company_name, jp.image, jp.address_information,
               jc.name AS position, jp.view_count
        FROM job_posting jp
        JOIN job_category jc ON jp.field = jc.id
        WHERE jp.deadline >= :today AND jp.is_deleted = 0
    """
    params = {"today": date.today().strftime("%Y%m%d")}

    if region:
        region_names = [REGION_MAP[code] for code in region if code in REGION_MAP]
        if not region_names:
            return JobPostingListResponse(job_posting_list=[])
        clauses = []
        for i, name in enumerate(region_names):
            clauses.append(f"jp.address_information LIKE :region{i}")
            params[f"region{i}"] = f'%"address"%"{name}%'
        sql += " AND (" + " OR ".join(clauses) + ")"

    if position:
        sql += " AND jp.field IN :positions"
        params["positions"] = position

    sql += " ORDER BY RAND()"
    statement = text(sql)
    if position:
        statement = statement.bindparams(bindparam("positions", expanding=True))

    storage = get_storage()
    postings = []
    for r in execute_raw_sql(statement, params):
        postings.append(JobPostingSummary(
            image=storage.get_object_url(r["image"]),
            id=r["id"], company_name=r["company_name"], position=r["position"],
            view_count=r["view_count"] or 0, region=region_of(r["address_information"]),
        ))

    return JobPostingListResponse(job_posting_list=postings)


@router.get("/applicant/list", response_model=ApplicantInformation, response_model_exclude_none=True)
async def list_applicants(id: str = Query(..., min_length=1), email: str = Depends(get_current_email)):
    """Anyone signed in sees the count; only the author sees the applicants."""
    posting = fetch_one("SELECT user_id, applicant FROM job_posting WHERE id = :id", {"id": id})
    if not posting:
        raise HTTPException(status_code=404, detail=NOT_FOUND)

    applicant_ids = parse_json_field(posting["applicant"], [])
    info = ApplicantInformation(applicant_count=len(applicant_ids))

    if posting["user_id"] == email:
        profiles = []
        if applicant_ids:
            profiles = execute_raw_sql(
                text("SELECT user_id AS id, image FROM user_profile WHERE user_id IN :ids")
                .bindparams(bindparam("ids", expanding=True)),
                {"ids": applicant_ids}
            )
        storage = get_storage()
        info.applicant_list = [
            Applicant(id=p["id"], profile_image=storage.get_object_url(p["image"]) if p["image"] else None)
            for p in profiles
        ]

    return info


@router.post("", response_model=PostedResponse, status_code=201)
async def create_employment(
    company_name: str = Form(..., alias="companyName", min_length=1),
    title: str = Form(..., min_length=1),
    content: str = Form(..., min_length=1),
    address: str = Form(..., description='JSON object, e.g. {"address": "서울 강남구 ..."}'),
    deadline: str = Form(..., description="YYYYMMDD, at least tomorrow"),
    position_id: int = Form(..., alias="positionId"),
    image: UploadFile = File(...),
    email: str = Depends(get_current_email),
):
    """Create a job posting. The image is resized to 1080x790 JPEG."""
    if not is_json_object(address) or not is_open_deadline(deadline):
        raise bad_request()

    image_key = await upload_posting_image(image)
    posting_id = generate_unique_id()

    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO job_posting (id, user_id, company_name, title, content, deadline,
                    image, address_information, field)
                VALUES (:id, :user_id, :company_name, :title, :content, :deadline,
                    :image, :address, :field)
            """),
            {
                "id": posting_id, "user_id": email, "company_name": company_name,
                "title": title, "content": content, "deadline": deadline,
                "image": image_key, "address": address, "field": position_id,
            }
        )

    logger.info("Job posting created", extra={"posting_id": posting_id, "user_id": email})
    return PostedResponse()


@router.post("/applicant", response_model=AppliedResponse, status_code=201)
async def apply_to_employment(request: ApplyRequest, email: str = Depends(get_current_email)):
    """
    Apply to a job posting. Students only, and not to your own posting.
    Applying twice is a no-op. The author is notified by mail when their id is an email.
    """
    user = fetch_one("SELECT id, name, is_student FROM user WHERE id = :id", {"id": email})

    with get_db_session() as db:
        posting = db.execute(
            text("SELECT user_id, applicant FROM job_posting WHERE id = :id AND is_deleted = 0 FOR UPDATE"),
            {"id": request.id}
        ).fetchone()

        if not posting:
            raise HTTPException(status_code=404, detail=NOT_FOUND)

        author_id, raw_applicants = posting[0], posting[1]
        if not user or not user["is_student"] or author_id == email:
            raise HTTPException(status_code=403, detail="You cannot apply to this posting.")

        applicants = parse_json_field(raw_applicants, [])
        if email in applicants:
            return AppliedResponse()

        applicants.append(email)
        db.execute(
            text("UPDATE job_posting SET applicant = :applicant WHERE id = :id"),
            {"applicant": json.dumps(applicants), "id": request.id}
        )

        if is_valid_email(author_id):
            get_mail_service().send_mail(
                to_email=author_id,
                title="Boogie On & On job posting application",
                content=f"{user['name']}({email}) has applied to your company.",
            )

    logger.info("Application submitted", extra={"posting_id": request.id, "user_id": email})
    return AppliedResponse()


@router.patch("/{id}", response_model=UpdatedResponse)
async def update_employment(
    id: str,
    company_name: str = Form(..., alias="companyName", min_length=1),
    title: str = Form(..., min_length=1),
    content: str = Form(..., min_length=1),
    address: str = Form(...),
    deadline: str = Form(...),
    position_id: int = Form(..., alias="positionId"),
    image: Optional[UploadFile] = File(None),
    email: str = Depends(get_current_email),
):
    """Update a job posting. A new image replaces (and deletes) the old one."""
    posting = get_posting_owner(id)
    if not can_edit(email, posting["user_id"]):
        raise HTTPException(status_code=403, detail="You do not have permission to edit.")

    if not is_json_object(address) or parse_deadline(deadline) is None:
        raise bad_request()

    updates = {
        "title": title, "content": content, "company_name": company_name,
        "address_information": address, "deadline": deadline, "field": position_id,
    }

    replaced_image = None
    if image is not None and image.filename:
        updates["image"] = await upload_posting_image(image)
        replaced_image = posting["image"]

    params = dict(updates, id=id)
    assignments = ", ".join(f"{column} = :{column}" for column in updates)
    with get_db_session() as db:
        db.execute(text(f"UPDATE job_posting SET {assignments} WHERE id = :id"), params)

    # The old object goes only once the row points at the new one
    if replaced_image:
        get_storage().delete_object(replaced_image)

    return UpdatedResponse()


@router.delete("/applicant/{id}", response_model=DeletedResponse)
async def withdraw_application(id: str, email: str = Depends(get_current_email)):
    """Withdraw the requester's application. An empty list is stored as NULL."""
    with get_db_session() as db:
        posting = db.execute(
            text("SELECT applicant FROM job_posting WHERE id = :id FOR UPDATE"),
            {"id": id}
        ).fetchone()
        if not posting:
            raise HTTPException(status_code=404, detail=NOT_FOUND)

        remaining = [a for a in parse_json_field(posting[0], []) if a != email]
        db.execute(
            text("UPDATE job_posting SET applicant = :applicant WHERE id = :id"),
            {"applicant": json.dumps(remaining) if remaining else None, "id": id}
        )

    return DeletedResponse()


@router.delete("/{id}", response_model=DeletedResponse)
async def delete_employment(id: str, email: str = Depends(get_current_email)):
    """Soft delete; the row stays for applicants' history."""
    posting = get_posting_owner(id)
    if not can_edit(email, posting["user_id"]):
        raise HTTPException(status_code=403, detail="You do not have permission to edit.")

    with get_db_session() as db:
        db.execute(text("UPDATE job_posting SET is_deleted = 1 WHERE id = :id"), {"id": id})

    return DeletedResponse()
