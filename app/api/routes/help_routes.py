"""
Help Routes

POST /help/password - Reset a forgotten password
"""

from fastapi import APIRouter, HTTPException
from sqlalchemy import text

from app.core.auth import hash_password, verify_password
from app.db.mysql import fetch_one, get_db_session
from app.schemas.schemas import PasswordResetRequest, PasswordResetResponse
from app.utils.helpers import is_valid_email

router = APIRouter(prefix="/help", tags=["Help"])


@router.post("/password", response_model=PasswordResetResponse)
async def reset_password(request: PasswordResetRequest):
    """Set a new password. It must differ from the current one."""
    if not is_valid_email(request.id):
        raise HTTPException(status_code=400, detail="The id is not a valid email address.")

    if request.password != request.verify_password:
        raise HTTPException(status_code=400, detail="The passwords do not match.")

    user = fetch_one("SELECT id, password FROM user WHERE id = :id", {"id": request.id})
    if not user:
        raise HTTPException(status_code=403, detail="This id (email) is not registered.")

    if verify_password(request.password, user["password"]):
        raise HTTPException(status_code=409, detail="The new password is the same as the current one.")

    with get_db_session() as db:
        db.execute(
            text("UPDATE user SET password = :password WHERE id = :id"),
            {"password": hash_password(request.password), "id": request.id}
        )

    return PasswordResetResponse()
