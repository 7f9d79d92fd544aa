"""
Senior Project Routes

POST /senior-project - Register a capstone project (admin, multipart)
PATCH /senior-project - Update a project and add members (admin, multipart)
DELETE /senior-project/{id} - Delete a project, its members and files (admin)
DELETE /senior-project/member/{uniId} - Delete a single member (admin)
GET /senior-project/list - Projects of a year, filtered
GET /senior-project/recommend?id= - Up to 5 projects on the same platforms
GET /senior-project/detail/members?id= - Team members
GET /senior-project/detail/design?id= - Project design file URL
GET /senior-project/detail/announced?id= - Presentation links
GET /senior-project/detail/group?id= - Group name and year (counts a view)
GET /senior-project/detail?id= - Everything, for the admin editor

The `senier_project` / `plattform` table names are kept as deployed.
"""

import json
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import ValidationError
from sqlalchemy import bindparam, text

from app.core.auth import get_current_admin
from app.core.errors import IMAGE_UPLOAD_FAILED, NOT_FOUND, StorageError, bad_request
from app.core.views import count_view
from app.db.mysql import execute_raw_sql, fetch_one, get_db_session
from app.schemas.schemas import (
    Category, DeletedResponse, PostedResponse, ProjectDesignResponse, ProjectGroupResponse,
    ProjectLinkResponse, SeniorProjectDetail, SeniorProjectDetailResponse,
    SeniorProjectListResponse, SeniorProjectMemberListResponse, SeniorProjectRecommendResponse,
    SeniorProjectSummary, TeamMemberInfo, TeamMemberInput,
)
from app.services.storage_service import get_storage
from app.utils.helpers import generate_unique_id, parse_json_field
from app.utils.image_upload import POSTING_IMAGE_SIZE, content_type_for, is_upload, read_image, resize_image

router = APIRouter(prefix="/senior-project", tags=["Senior Project"])
logger = logging.getLogger(__name__)

MAX_TEAM_MEMBERS = 8
RECOMMEND_LIMIT = 5
REQUIRED_FIELDS = ("groupName", "classId", "year", "teamMember", "link", "platform", "technology")
NON_EMPTY_LISTS = {"platform": "platform", "technology": "technology", "link": "link"}


# ============================================================
# FORM PARSING / VALIDATION
# ============================================================

def parse_project_form(form) -> dict:
    """
    Validate the text parts of a project form.

    Raises 400 when a field is missing or malformed, when there is no team
    member, or when platform / technology / link is empty.
    """
    if any(not form.get(field) or not isinstance(form.get(field), str) for field in REQUIRED_FIELDS):
        raise bad_request()

    try:
        raw_members = json.loads(form["teamMember"])
        links = json.loads(form["link"])
        platforms = json.loads(form["platform"])
        technologies = json.loads(form["technology"])
        class_id = int(form["classId"])
    except (TypeError, ValueError):
        raise bad_request()

    if not isinstance(raw_members, list) or not raw_members:
        raise bad_request("At least one team member is required.")
    if len(raw_members) > MAX_TEAM_MEMBERS:
        raise bad_request(f"A team may have at most {MAX_TEAM_MEMBERS} members.")

    try:
        members = [TeamMemberInput.model_validate(member) for member in raw_members]
    except ValidationError:
        raise bad_request()

    project = {
        "group_name": form["groupName"],
        "class_id": class_id,
        "year": form["year"],
        "team_member": members,
        "link": links,
        "platform": platforms,
        "technology": technologies,
    }

    for key, label in NON_EMPTY_LISTS.items():
        if not isinstance(project[key], list) or not project[key]:
            raise bad_request(f"Please add at least one {label}.")

    try:
        project["platform"] = sorted(int(i) for i in platforms)
        project["technology"] = sorted(int(i) for i in technologies)
    except (TypeError, ValueError):
        raise bad_request()

    return project


def check_group_name(year: str, class_id: int, group_name: str, project_id: Optional[str] = None):
    """Group names are unique within a (year, class)."""
    existing = fetch_one("""
        SELECT id FROM senier_project
        WHERE year = :year AND class_id = :class_id AND group_name = :group_name
    """, {"year": year, "class_id": class_id, "group_name": group_name})

    if existing and existing["id"] != project_id:
        raise bad_request(f"{group_name} is already a registered group name.")


def check_duplicate_members(members: List[TeamMemberInput]):
    registered = execute_raw_sql(
        text("SELECT name FROM team_member WHERE uni_id IN :uni_ids").bindparams(
            bindparam("uni_ids", expanding=True)
        ),
        {"uni_ids": [m.uni_id for m in members]}
    )
    if registered:
        names = ", ".join(r["name"] for r in registered)
        raise bad_request(f"{names} already registered.")


async def upload_project_files(form, project: dict) -> Optional[str]:
    """
    Upload `projectDesign` as is and `profileImage<n>` resized to 1080x790 PNG,
    all under <year>/<groupName>/. profileImage<n> belongs to the n-th member
    and is stored as <uniId>_<filename>.png.

    Returns the project design key when one was uploaded.
    """
    storage = get_storage()
    path = f"{project['year']}/{project['group_name']}"
    members = project["team_member"]
    design_key = None

    try:
        design = form.get("projectDesign")
        if is_upload(design):
            content = await design.read()
            design_key = storage.upload_file(content, f"{path}/{design.filename}", design.content_type)

        for index, member in enumerate(members, start=1):
            image = form.get(f"profileImage{index}")
            if not is_upload(image):
                continue
            resized = resize_image(await read_image(image), POSTING_IMAGE_SIZE, "PNG")
            key = f"{path}/{member.uni_id}_{image.filename}.png"
            member.image = storage.upload_file(resized, key, content_type_for("PNG"))
    except StorageError as e:
        logger.error("Senior project upload failed: %s", e)
        raise HTTPException(status_code=500, detail=IMAGE_UPLOAD_FAILED)

    return design_key


def insert_team_members(db, project_id: str, members: List[TeamMemberInput]):
    for member in members:
        db.execute(
            text("""
                INSERT INTO team_member (id, uni_id, name, introduction, profile_image)
                VALUES (:id, :uni_id, :name, :introduction, :profile_image)
            """),
            {
                "id": project_id, "uni_id": member.uni_id, "name": member.name,
                "introduction": member.introduction, "profile_image": member.image,
            }
        )


# ============================================================
# READ HELPERS
# ============================================================

def get_project(project_id: str, columns: str = "*") -> dict:
    project = fetch_one(f"SELECT {columns} FROM senier_project WHERE id = :id", {"id": project_id})
    if not project:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return project


def name_lookup(table: str) -> Dict[int, str]:
    return {r["id"]: r["name"] for r in execute_raw_sql(f"SELECT id, name FROM {table}")}


def format_project_summaries(projects: List[dict]) -> List[SeniorProjectSummary]:
    """Attach member names and platform / technology names to project rows."""
    if not projects:
        return []

    members = defaultdict(list)
    rows = execute_raw_sql(
        text("SELECT id, name FROM team_member WHERE id IN :ids").bindparams(bindparam("ids", expanding=True)),
        {"ids": [p["id"] for p in projects]}
    )
    for r in rows:
        members[r["id"]].append(r["name"])

    platform_names = name_lookup("plattform")
    technology_names = name_lookup("technology")

    summaries = []
    for p in projects:
        platform_ids = parse_json_field(p["plattform"], [])
        technology_ids = parse_json_field(p["technology"], [])
        summaries.append(SeniorProjectSummary(
            id=p["id"],
            year=p.get("year"),
            group_name=p["group_name"],
            view_count=p.get("view_count") or 0,
            team_member=", ".join(members[p["id"]]),
            platform=", ".join(platform_names[i] for i in platform_ids if i in platform_names),
            technology=[technology_names[i] for i in technology_ids if i in technology_names],
        ))
    return summaries


def get_team_members(project_id: str) -> List[TeamMemberInfo]:
    """Members with public image URLs and, when they joined, their user id."""
    storage = get_storage()
    members = []
    rows = execute_raw_sql(
        "SELECT uni_id, name, introduction, profile_image FROM team_member WHERE id = :id",
        {"id": project_id}
    )
    for r in rows:
        user = fetch_one(
            "SELECT id FROM user WHERE uni_id = :uni_id AND name = :name",
            {"uni_id": r["uni_id"], "name": r["name"]}
        )
        members.append(TeamMemberInfo(
            name=r["name"],
            introduction=r["introduction"],
            image=storage.get_public_url(r["profile_image"]) if r["profile_image"] else None,
            id=user["id"] if user else None,
            uni_id=r["uni_id"],
        ))
    return members


# ============================================================
# WRITE ROUTES (ADMIN)
# ============================================================

@router.post("", response_model=PostedResponse, status_code=201)
async def create_senior_project(request: Request, email: str = Depends(get_current_admin)):
    form = await request.form()
    project = parse_project_form(form)

    check_group_name(project["year"], project["class_id"], project["group_name"])
    check_duplicate_members(project["team_member"])

    design_key = await upload_project_files(form, project)
    project_id = generate_unique_id()

    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO senier_project (id, year, link, group_name, class_id, project_design,
                    plattform, technology)
                VALUES (:id, :year, :link, :group_name, :class_id, :project_design,
                    :platform, :technology)
            """),
            {
                "id": project_id, "year": project["year"], "link": json.dumps(project["link"]),
                "group_name": project["group_name"], "class_id": project["class_id"],
                "project_design": design_key, "platform": json.dumps(project["platform"]),
                "technology": json.dumps(project["technology"]),
            }
        )
        insert_team_members(db, project_id, project["team_member"])

    logger.info("Senior project registered", extra={"project_id": project_id, "admin": email})
    return PostedResponse()


@router.patch("", response_model=PostedResponse, status_code=201)
async def update_senior_project(request: Request, email: str = Depends(get_current_admin)):
    """
    Members already on the project (by uniId) keep their row and take a
    newly uploaded photo; everyone else is added. Replaced files are
    deleted once the update has been committed.
    """
    form = await request.form()
    project_id = form.get("id")
    if not project_id or not isinstance(project_id, str):
        raise bad_request()

    current = get_project(project_id, "id, project_design")
    project = parse_project_form(form)
    check_group_name(project["year"], project["class_id"], project["group_name"], project_id)

    current_images = {
        r["uni_id"]: r["profile_image"]
        for r in execute_raw_sql(
            "SELECT uni_id, profile_image FROM team_member WHERE id = :id", {"id": project_id}
        )
    }
    new_members = [m for m in project["team_member"] if m.uni_id not in current_images]
    if new_members:
        check_duplicate_members(new_members)

    design_key = await upload_project_files(form, project)

    replaced = []
    if design_key and current["project_design"] != design_key:
        replaced.append(current["project_design"])

    with get_db_session() as db:
        db.execute(
            text("""
                UPDATE senier_project
                SET class_id = :class_id, group_name = :group_name, year = :year, link = :link,
                    plattform = :platform, technology = :technology, project_design = :project_design
                WHERE id = :id
            """),
            {
                "id": project_id, "class_id": project["class_id"], "group_name": project["group_name"],
                "year": project["year"], "link": json.dumps(project["link"]),
                "platform": json.dumps(project["platform"]), "technology": json.dumps(project["technology"]),
                "project_design": design_key or current["project_design"],
            }
        )
        insert_team_members(db, project_id, new_members)

        for member in project["team_member"]:
            if member.uni_id not in current_images or not member.image:
                continue
            db.execute(
                text("UPDATE team_member SET profile_image = :profile_image WHERE id = :id AND uni_id = :uni_id"),
                {"profile_image": member.image, "id": project_id, "uni_id": member.uni_id}
            )
            if current_images[member.uni_id] != member.image:
                replaced.append(current_images[member.uni_id])

    storage = get_storage()
    for key in replaced:
        storage.delete_object(key)

    return PostedResponse()


@router.delete("/member/{uni_id}", response_model=DeletedResponse)
async def delete_team_member(uni_id: str, email: str = Depends(get_current_admin)):
    member = fetch_one("SELECT profile_image FROM team_member WHERE uni_id = :uni_id", {"uni_id": uni_id})
    if not member:
        raise HTTPException(status_code=404, detail=NOT_FOUND)

    get_storage().delete_object(member["profile_image"])
    with get_db_session() as db:
        db.execute(text("DELETE FROM team_member WHERE uni_id = :uni_id"), {"uni_id": uni_id})

    return DeletedResponse()


@router.delete("/{id}", response_model=DeletedResponse)
async def delete_senior_project(id: str, email: str = Depends(get_current_admin)):
    project = get_project(id, "id, project_design")
    images = execute_raw_sql("SELECT profile_image FROM team_member WHERE id = :id", {"id": id})

    storage = get_storage()
    for image in images:
        storage.delete_object(image["profile_image"])
    storage.delete_object(project["project_design"])

    with get_db_session() as db:
        db.execute(text("DELETE FROM team_member WHERE id = :id"), {"id": id})
        db.execute(text("DELETE FROM senier_project WHERE id = :id"), {"id": id})

    logger.info("Senior project deleted", extra={"project_id": id, "admin": email})
    return DeletedResponse()


# ============================================================
# READ ROUTES
# ============================================================

@router.get("/list", response_model=SeniorProjectListResponse, response_model_exclude_none=True)
async def list_senior_projects(
    year: Optional[str] = Query(None),
    name: Optional[str] = Query(None, description="Team member name"),
    platform: Optional[List[int]] = Query(None),
    technology: Optional[List[int]] = Query(None),
    class_id: Optional[int] = Query(None, alias="classId"),
):
    """Projects of one year in random order; platform / technology match as supersets."""
    if not year:
        raise bad_request("Please enter the year.")

    sql = "SELECT id, group_name, plattform, technology, view_count FROM senier_project WHERE year = :year"
    params = {"year": year}

    if class_id is not None:
        sql += " AND class_id = :class_id"
        params["class_id"] = class_id
    if platform:
        sql += " AND JSON_CONTAINS(plattform, :platform)"
        params["platform"] = json.dumps(sorted(platform))
    if technology:
        sql += " AND JSON_CONTAINS(technology, :technology)"
        params["technology"] = json.dumps(sorted(technology))
    if name:
        sql += " AND id IN (SELECT id FROM team_member WHERE name = :name)"
        params["name"] = name

    sql += " ORDER BY RAND()"
    return SeniorProjectListResponse(senior_project_list=format_project_summaries(execute_raw_sql(sql, params)))


@router.get("/recommend", response_model=SeniorProjectRecommendResponse)
async def recommend_senior_projects(id: str = Query(..., min_length=1)):
    project = get_project(id, "id, plattform")
    rows = execute_raw_sql(f"""
        SELECT id, year, group_name, plattform, technology, view_count
        FROM senier_project
        WHERE JSON_CONTAINS(plattform, :platform) AND id <> :id
        ORDER BY RAND()
        LIMIT {RECOMMEND_LIMIT}
    """, {"platform": project["plattform"] or "[]", "id": id})

    return SeniorProjectRecommendResponse(senior_project_recommend_list=format_project_summaries(rows))


@router.get("/detail/members", response_model=SeniorProjectMemberListResponse, response_model_exclude_none=True)
async def get_project_members(id: str = Query(..., min_length=1)):
    get_project(id, "id")
    return SeniorProjectMemberListResponse(senior_project_member_list=get_team_members(id))


@router.get("/detail/design", response_model=ProjectDesignResponse)
async def get_project_design(id: str = Query(..., min_length=1)):
    project = get_project(id, "project_design")
    return ProjectDesignResponse(project_design=get_storage().get_object_url(project["project_design"]))


@router.get("/detail/announced", response_model=ProjectLinkResponse)
async def get_project_links(id: str = Query(..., min_length=1)):
    project = get_project(id, "link")
    return ProjectLinkResponse(link=parse_json_field(project["link"], []))


@router.get(
    "/detail/group",
    response_model=ProjectGroupResponse,
    dependencies=[Depends(count_view("senier_project"))],
)
async def get_project_group(id: str = Query(..., min_length=1)):
    project = get_project(id, "group_name, year")
    return ProjectGroupResponse(group_name=project["group_name"], year=project["year"])


@router.get("/detail", response_model=SeniorProjectDetailResponse, response_model_exclude_none=True)
async def get_project_detail(id: str = Query(..., min_length=1), email: str = Depends(get_current_admin)):
    project = get_project(id, "id, year, link, group_name, class_id, project_design, plattform, technology")

    platform_ids = parse_json_field(project["plattform"], [])
    technology_ids = parse_json_field(project["technology"], [])
    platforms = [Category(id=i, name=n) for i, n in name_lookup("plattform").items() if i in platform_ids]
    technologies = [Category(id=i, name=n) for i, n in name_lookup("technology").items() if i in technology_ids]
    class_info = fetch_one("SELECT * FROM class WHERE id = :id", {"id": project["class_id"]})

    return SeniorProjectDetailResponse(senior_project_detail_info=SeniorProjectDetail(
        id=project["id"],
        year=project["year"],
        link=parse_json_field(project["link"], []),
        group_name=project["group_name"],
        project_design=project["project_design"],
        platform=platforms,
        technology=technologies,
        class_info=class_info,
        team_member=get_team_members(id),
    ))
