"""
Authentication Routes

POST /auth/code/email - Email a verification code
POST /auth/email - Confirm a verification code
POST /auth/login - Login and get access/refresh tokens
POST /auth/join - Register a new user (students are checked against the roster)
POST /auth/admin - Create another admin account (admin only)
"""

import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text

from app.core.auth import (
    create_access_token, create_refresh_token, get_current_admin,
    hash_password, is_legacy_hash, verify_password,
)
from app.db.mysql import execute_raw_sql, fetch_one, get_db_session
from app.schemas.schemas import (
    AdminCreateRequest, AuthResponse, EmailCodeRequest, EmailVerifyRequest,
    JoinRequest, JoinResponse, LoginData, LoginRequest, LoginResponse,
)
from app.services.mail_service import get_mail_service
from app.utils.helpers import generate_auth_code, is_blank, is_valid_birthday, is_valid_email

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)

AUTH_CODE_LENGTH = 8
AUTH_CODE_TTL = timedelta(minutes=5)


def is_code_fresh(issued_at: datetime, now: datetime) -> bool:
    """A verification code is good for five minutes after it was issued."""
    if isinstance(issued_at, str):
        issued_at = datetime.fromisoformat(issued_at)
    return now - issued_at < AUTH_CODE_TTL


@router.post("/code/email", response_model=AuthResponse, status_code=201)
async def send_email_code(request: EmailCodeRequest):
    """
    Email an 8 character verification code.

    Earlier unconfirmed codes for the same address are discarded.
    """
    if not is_valid_email(request.id):
        raise HTTPException(status_code=403, detail="The id is not a valid email address.")

    auth_code = generate_auth_code(AUTH_CODE_LENGTH)

    with get_db_session() as db:
        db.execute(
            text("DELETE FROM auth WHERE email = :email AND is_auth = 0"),
            {"email": request.id}
        )
        db.execute(
            text("INSERT INTO auth (email, auth_code, date) VALUES (:email, :code, :date)"),
            {"email": request.id, "code": auth_code, "date": datetime.now()}
        )
        # Sent inside the transaction so a failed mail leaves no dangling code
        get_mail_service().send_mail(
            to_email=request.id,
            title="Email verification",
            content=f"<p>Your email verification code is {auth_code}.</p>",
        )

    return AuthResponse()


@router.post("/email", response_model=AuthResponse)
async def verify_email_code(request: EmailVerifyRequest):
    """Confirm a verification code sent by /auth/code/email."""
    now = datetime.now()

    with get_db_session() as db:
        row = db.execute(
            text("""
                SELECT date FROM auth
                WHERE email = :email AND auth_code = :code AND is_auth = 0
                ORDER BY date DESC LIMIT 1
            """),
            {"email": request.id, "code": request.code}
        ).fetchone()

        if not row:
            raise HTTPException(status_code=409, detail="The verification code is incorrect.")

        if not is_code_fresh(row[0], now):
            raise HTTPException(status_code=409, detail="The verification request has expired.")

        db.execute(
            text("UPDATE auth SET is_auth = 1, date = :date WHERE email = :email AND auth_code = :code"),
            {"email": request.id, "code": request.code, "date": now}
        )

    return AuthResponse()


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest):
    """
    Login and receive a refresh token (24h) and an access token (5m).

    Include the access token in requests: Authorization: Bearer <token>
    """
    user = fetch_one(
        "SELECT id, nickname, is_admin, password FROM user WHERE id = :id",
        {"id": request.id}
    )

    if not user or not verify_password(request.password, user["password"]):
        raise HTTPException(status_code=400, detail="The id or password is incorrect.")

    if is_legacy_hash(user["password"]):
        with get_db_session() as db:
            db.execute(
                text("UPDATE user SET password = :password WHERE id = :id"),
                {"password": hash_password(request.password), "id": request.id}
            )
        logger.info("Upgraded legacy password hash", extra={"user_id": request.id})

    return LoginResponse(data=LoginData(
        refresh_token=create_refresh_token(request.id),
        access_token=create_access_token(request.id),
        email=request.id,
        nickname=user["nickname"],
        is_admin=bool(user["is_admin"]),
    ))


@router.post("/join", response_model=JoinResponse, status_code=201)
async def join(request: JoinRequest):
    """
    Register a new account.

    Students must also send uniId, name and birthday (YYYYMMDD); these have to
    match an entry in the student roster, and only one account per student.
    """
    if request.password != request.verify_password:
        raise HTTPException(status_code=400, detail="The passwords do not match.")

    if request.is_student:
        if is_blank(request.uni_id) or is_blank(request.name) or is_blank(request.birthday):
            raise HTTPException(status_code=400, detail="Bad request.")
        if not is_valid_birthday(request.birthday):
            raise HTTPException(status_code=400, detail="The birthday is not valid.")

        student_key = {"uni_id": request.uni_id, "name": request.name, "birthday": request.birthday}
        existing_student_user = fetch_one(
            "SELECT id FROM user WHERE uni_id = :uni_id AND name = :name AND birthday = :birthday",
            student_key
        )
        if existing_student_user:
            raise HTTPException(status_code=409, detail="An account already exists for this student.")

    taken = execute_raw_sql(
        "SELECT id, nickname FROM user WHERE id = :id OR nickname = :nickname",
        {"id": request.id, "nickname": request.nickname}
    )
    if any(row["id"] == request.id for row in taken):
        raise HTTPException(status_code=409, detail="This id (email) is already in use.")
    if any(row["nickname"] == request.nickname for row in taken):
        raise HTTPException(status_code=409, detail="This nickname is already in use.")

    if request.is_student:
        student = fetch_one(
            "SELECT name FROM student WHERE uni_id = :uni_id AND name = :name AND birthday = :birthday",
            student_key
        )
        if not student:
            raise HTTPException(status_code=403, detail="The student information is not registered.")

    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO user (id, nickname, name, birthday, uni_id, password, is_student)
                VALUES (:id, :nickname, :name, :birthday, :uni_id, :password, :is_student)
            """),
            {
                "id": request.id,
                "nickname": request.nickname,
                "name": request.name if request.is_student else None,
                "birthday": request.birthday if request.is_student else None,
                "uni_id": request.uni_id if request.is_student else None,
                "password": hash_password(request.password),
                "is_student": 1 if request.is_student else 0,
            }
        )

    logger.info("User joined", extra={"user_id": request.id, "is_student": request.is_student})
    return JoinResponse()


@router.post("/admin", response_model=JoinResponse, status_code=201)
async def create_admin(request: AdminCreateRequest, admin: str = Depends(get_current_admin)):
    """Create an admin account. Nicknames are assigned as admin<N>."""
    if fetch_one("SELECT id FROM user WHERE id = :id", {"id": request.id}):
        raise HTTPException(status_code=409, detail="This id (email) is already in use.")

    with get_db_session() as db:
        admin_count = db.execute(text("SELECT COUNT(*) FROM user WHERE is_admin = 1")).scalar()
        db.execute(
            text("""
                INSERT INTO user (id, nickname, password, is_student, is_admin)
                VALUES (:id, :nickname, :password, 0, 1)
            """),
            {
                "id": request.id,
                "nickname": f"admin{admin_count}",
                "password": hash_password(request.password),
            }
        )

    logger.info("Admin created", extra={"user_id": request.id, "created_by": admin})
    return JoinResponse()
