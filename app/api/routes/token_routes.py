"""
Token Routes

POST /token/refreshToken - Exchange a refresh token for a new access token
"""

from fastapi import APIRouter, Depends, HTTPException

from app.core.auth import create_access_token, get_refresh_email
from app.db.mysql import fetch_one
from app.schemas.schemas import RefreshData, RefreshResponse

router = APIRouter(prefix="/token", tags=["Authentication"])


@router.post("/refreshToken", response_model=RefreshResponse)
async def refresh_token(email: str = Depends(get_refresh_email)):
    """Issue a fresh 5 minute access token for a still-registered user."""
    if not fetch_one("SELECT id FROM user WHERE id = :id", {"id": email}):
        raise HTTPException(status_code=401, detail="Invalid refresh token.")

    return RefreshResponse(data=RefreshData(access_token=create_access_token(email), email=email))
