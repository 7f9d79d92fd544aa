"""
Community (Board) Routes

POST /community - Write a post
POST /community/comment - Comment on a post
PATCH /community - Edit a post (author or admin)
PATCH /community/like/{id} - Toggle the requester's like
DELETE /community/{id} - Soft delete a post (author or admin)
DELETE /community/comment/{id} - Soft delete a comment (author or admin)
GET /community?id= - Post detail (counts a view)
GET /community/list - Paged posts of a category, newest first
GET /community/best-pick - Top 3 posts since yesterday
GET /community/comments?id= - Comments of a post
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import text

from app.core.auth import can_edit, get_current_email, get_optional_email
from app.core.errors import NOT_FOUND, bad_request
from app.core.views import count_view
from app.db.mysql import execute_raw_sql, fetch_one, get_db_session
from app.schemas.schemas import (
    BestPickResponse, BoardContent, BoardContentResponse, BoardCreate, BoardListResponse,
    BoardUpdate, Comment, CommentCreate, CommentDeleteResponse, CommentListResponse,
    DeletedResponse, LikeResponse, PostedResponse, UpdatedResponse,
)
from app.services.storage_service import get_storage
from app.utils.helpers import from_now, generate_unique_id

router = APIRouter(prefix="/community", tags=["Community"])
logger = logging.getLogger(__name__)

PAGE_LIMIT = 20
BEST_PICK_COUNT = 3

# Post columns plus live like/comment counts; :email marks the requester's like
BOARD_CONTENT_SELECT = """
    SELECT bc.id, bc.category_id, bc.user_id, u.nickname AS user_nickname,
           bc.title, bc.content, bc.uploaded_at, up.image AS profile_image,
           (SELECT COUNT(*) FROM board_like bl
             WHERE bl.board_content_id = bc.id AND bl.is_deleted = 0) AS like_count,
           (SELECT COUNT(*) FROM board_comment cm
             WHERE cm.board_content_id = bc.id AND cm.is_deleted = 0) AS comment_count,
           EXISTS(SELECT 1 FROM board_like ml
             WHERE ml.board_content_id = bc.id AND ml.user_id = :email AND ml.is_deleted = 0) AS is_liked
    FROM board_content bc
    LEFT JOIN user u ON u.id = bc.user_id
    LEFT JOIN user_profile up ON up.user_id = bc.user_id
"""


def format_comments(rows: List[dict], email: Optional[str], now: Optional[datetime] = None) -> List[Comment]:
    storage = get_storage()
    comments = []
    for r in rows:
        comments.append(Comment(
            id=r["id"],
            user_id=r["user_id"],
            user_nickname=r["user_nickname"],
            content=r["content"],
            from_now_while_ago_posted=from_now(r["uploaded_at"], now),
            is_me=True if email and email == r["user_id"] else None,
            profile_image_url=storage.get_public_url(r["profile_image"]) if r["profile_image"] else None,
        ))
    return comments


def get_comments(board_content_id: str, email: Optional[str]) -> List[Comment]:
    rows = execute_raw_sql("""
        SELECT cm.id, cm.user_id, u.nickname AS user_nickname, cm.content,
               cm.uploaded_at, up.image AS profile_image
        FROM board_comment cm
        LEFT JOIN user u ON u.id = cm.user_id
        LEFT JOIN user_profile up ON up.user_id = cm.user_id
        WHERE cm.board_content_id = :id AND cm.is_deleted = 0
        ORDER BY cm.uploaded_at DESC
    """, {"id": board_content_id})
    return format_comments(rows, email)


def format_board_content(row: dict, email: Optional[str], now: Optional[datetime] = None) -> BoardContent:
    image = row.get("profile_image")
    return BoardContent(
        like_count=row.get("like_count") or 0,
        comment_count=row.get("comment_count") or 0,
        from_now_while_ago_posted=from_now(row["uploaded_at"], now),
        id=row["id"],
        category_id=row.get("category_id"),
        user_id=row.get("user_id"),
        user_nickname=row.get("user_nickname"),
        title=row["title"],
        content=row.get("content"),
        is_me=True if email and email == row.get("user_id") else None,
        is_liked=True if row.get("is_liked") else None,
        profile_image_url=get_storage().get_public_url(image) if image else None,
    )


def best_board_contents(contents: List[BoardContent], count: int = BEST_PICK_COUNT) -> List[BoardContent]:
    """Rank by comments (weighted double) plus likes; ties keep their order."""
    ranked = sorted(contents, key=lambda c: c.comment_count * 2 + c.like_count, reverse=True)
    return ranked[:count]


def get_board_owner(board_content_id: str) -> dict:
    row = fetch_one(
        "SELECT user_id FROM board_content WHERE id = :id AND is_deleted = 0",
        {"id": board_content_id}
    )
    if not row:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return row


@router.post("", response_model=PostedResponse, status_code=201)
async def create_board_content(request: BoardCreate, email: str = Depends(get_current_email)):
    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO board_content (id, user_id, category_id, title, content, uploaded_at)
                VALUES (:id, :user_id, :category_id, :title, :content, :uploaded_at)
            """),
            {
                "id": generate_unique_id(), "user_id": email, "category_id": request.category_id,
                "title": request.title, "content": request.content, "uploaded_at": datetime.now(),
            }
        )
    return PostedResponse()


@router.post("/comment", response_model=CommentListResponse, status_code=201, response_model_exclude_none=True)
async def create_comment(request: CommentCreate, email: str = Depends(get_current_email)):
    """Add a comment and return the post's fresh comment list."""
    get_board_owner(request.id)

    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO board_comment (board_content_id, user_id, content, uploaded_at)
                VALUES (:board_content_id, :user_id, :content, :uploaded_at)
            """),
            {
                "board_content_id": request.id, "user_id": email,
                "content": request.content, "uploaded_at": datetime.now(),
            }
        )

    return CommentListResponse(comments=get_comments(request.id, email))


@router.patch("", response_model=UpdatedResponse)
async def update_board_content(request: BoardUpdate, email: str = Depends(get_current_email)):
    post = get_board_owner(request.id)
    if not can_edit(email, post["user_id"]):
        raise HTTPException(status_code=403, detail="You do not have permission to edit.")

    with get_db_session() as db:
        db.execute(
            text("UPDATE board_content SET title = :title, content = :content WHERE id = :id"),
            {"title": request.title, "content": request.content, "id": request.id}
        )
    return UpdatedResponse()


@router.patch("/like/{id}", response_model=LikeResponse)
async def toggle_like(id: str, email: str = Depends(get_current_email)):
    """First press likes; later presses flip the stored like on and off."""
    get_board_owner(id)

    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO board_like (board_content_id, user_id, updated_at, is_deleted)
                VALUES (:id, :email, :now, 0)
                ON DUPLICATE KEY UPDATE is_deleted = NOT is_deleted, updated_at = VALUES(updated_at)
            """),
            {"id": id, "email": email, "now": datetime.now()}
        )
        is_deleted = db.execute(
            text("SELECT is_deleted FROM board_like WHERE board_content_id = :id AND user_id = :email"),
            {"id": id, "email": email}
        ).scalar()
        like_count = db.execute(
            text("SELECT COUNT(*) FROM board_like WHERE board_content_id = :id AND is_deleted = 0"),
            {"id": id}
        ).scalar()

    return LikeResponse(is_liked=not is_deleted, like_count=like_count or 0)


@router.delete("/comment/{id}", response_model=CommentDeleteResponse, status_code=201,
               response_model_exclude_none=True)
async def delete_comment(id: int, email: str = Depends(get_current_email)):
    """Soft delete a comment; returns what is left on the post."""
    comment = fetch_one(
        "SELECT user_id, board_content_id FROM board_comment WHERE id = :id AND is_deleted = 0",
        {"id": id}
    )
    if not comment:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    if not can_edit(email, comment["user_id"]):
        raise HTTPException(status_code=403, detail="You do not have permission to delete.")

    with get_db_session() as db:
        db.execute(text("UPDATE board_comment SET is_deleted = 1 WHERE id = :id"), {"id": id})

    comments = get_comments(comment["board_content_id"], email)
    return CommentDeleteResponse(comments=comments, comment_count=len(comments))


@router.delete("/{id}", response_model=DeletedResponse)
async def delete_board_content(id: str, email: str = Depends(get_current_email)):
    post = get_board_owner(id)
    if not can_edit(email, post["user_id"]):
        raise HTTPException(status_code=403, detail="You do not have permission to delete.")

    with get_db_session() as db:
        db.execute(text("UPDATE board_content SET is_deleted = 1 WHERE id = :id"), {"id": id})
    return DeletedResponse()


@router.get(
    "",
    response_model=BoardContentResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(count_view("board_content"))],
)
async def get_board_content(
    id: str = Query(..., min_length=1),
    email: Optional[str] = Depends(get_optional_email),
):
    row = fetch_one(
        BOARD_CONTENT_SELECT + " WHERE bc.id = :id AND bc.is_deleted = 0",
        {"id": id, "email": email or ""}
    )
    if not row:
        raise HTTPException(status_code=404, detail=NOT_FOUND)

    return BoardContentResponse(content=format_board_content(row, email))


@router.get("/list", response_model=BoardListResponse, response_model_exclude_none=True)
async def list_board_contents(
    category_id: int = Query(..., alias="categoryId"),
    page: int = Query(...),
    email: Optional[str] = Depends(get_optional_email),
):
    """`page` in the response is the next page number, or -1 on the last page."""
    if page < 1:
        raise bad_request()

    # One extra row tells us whether a next page exists
    rows = execute_raw_sql(
        BOARD_CONTENT_SELECT + """
        WHERE bc.category_id = :category_id AND bc.is_deleted = 0
        ORDER BY bc.uploaded_at DESC
        LIMIT :limit OFFSET :offset
        """,
        {
            "email": email or "", "category_id": category_id,
            "limit": PAGE_LIMIT + 1, "offset": (page - 1) * PAGE_LIMIT,
        }
    )

    next_page = page + 1 if len(rows) > PAGE_LIMIT else -1
    return BoardListResponse(
        content_list=[format_board_content(r, email) for r in rows[:PAGE_LIMIT]],
        page=next_page,
    )


@router.get("/best-pick", response_model=BestPickResponse, response_model_exclude_none=True)
async def best_pick(category_id: int = Query(..., alias="categoryId")):
    yesterday = (datetime.now() - timedelta(days=1)).date()
    rows = execute_raw_sql(
        BOARD_CONTENT_SELECT + """
        WHERE bc.category_id = :category_id AND bc.is_deleted = 0 AND bc.uploaded_at >= :since
        ORDER BY bc.uploaded_at
        """,
        {"email": "", "category_id": category_id, "since": yesterday}
    )

    contents = []
    for r in rows:
        content = format_board_content(r, None)
        # Best picks carry only title, nickname and counts
        content.content = None
        content.user_id = None
        content.category_id = None
        contents.append(content)

    return BestPickResponse(content=best_board_contents(contents))


@router.get("/comments", response_model=CommentListResponse, response_model_exclude_none=True)
async def list_comments(
    id: str = Query(..., min_length=1),
    email: Optional[str] = Depends(get_optional_email),
):
    return CommentListResponse(comments=get_comments(id, email))
