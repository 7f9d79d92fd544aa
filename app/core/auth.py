"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt (legacy SHA-256 rows still verify)
- Access / refresh JWT creation and verification
- FastAPI dependencies for protected, optional and admin-only routes

Tokens carry {"sub": "access" | "refresh", "email": <user id>}. An expired
token is answered with 419 so the client knows to call /token/refreshToken.
"""

import base64
import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import get_settings
from app.core.errors import APIError, NOT_ADMIN
from app.db.mysql import fetch_one

settings = get_settings()

ACCESS = "access"
REFRESH = "refresh"
TOKEN_TYPES = (ACCESS, REFRESH)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor; missing headers are reported by us, not FastAPI
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def legacy_hash(password: str) -> str:
    """base64(SHA-256(password)), the format of accounts created before bcrypt."""
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest()).decode("ascii")


def is_legacy_hash(hashed_password: str) -> bool:
    return pwd_context.identify(hashed_password, required=False) is None


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password against a bcrypt or legacy SHA-256 hash."""
    if not hashed_password:
        return False
    if is_legacy_hash(hashed_password):
        return hmac.compare_digest(legacy_hash(plain_password), hashed_password)
    return pwd_context.verify(plain_password, hashed_password)


def create_token(email: str, sub: str, expires_delta: timedelta) -> str:
    """Create a signed JWT of the given kind."""
    if sub not in TOKEN_TYPES:
        raise ValueError(f"Unknown token type: {sub}")
    expire = datetime.now(timezone.utc) + expires_delta
    payload = {"sub": sub, "email": email, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(email: str) -> str:
    return create_token(email, ACCESS, timedelta(minutes=settings.access_token_expire_minutes))


def create_refresh_token(email: str) -> str:
    return create_token(email, REFRESH, timedelta(hours=settings.refresh_token_expire_hours))


def _expired(token_type: str) -> APIError:
    return APIError(
        status_code=419,
        detail=f"Expired {token_type} token.",
        extra={"code": "expired", "type": token_type},
    )


def _invalid(token_type: str) -> HTTPException:
    return HTTPException(status_code=401, detail=f"Invalid {token_type} token.")


def verify_token(credentials: Optional[HTTPAuthorizationCredentials], token_type: str) -> str:
    """
    Validate a bearer token and return the email it was issued for.

    Raises 401 when the token is missing or invalid, 419 when expired.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="There is no token.")

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except ExpiredSignatureError:
        raise _expired(token_type)
    except JWTError:
        raise _invalid(token_type)

    email = payload.get("email")
    if payload.get("sub") != token_type or not email:
        raise _invalid(token_type)

    return email


async def get_current_email(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    FastAPI dependency - email of the caller; a valid access token is required.

    Usage:
        @router.get("/protected")
        async def route(email: str = Depends(get_current_email)):
            ...
    """
    return verify_token(credentials, ACCESS)


async def get_optional_email(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """Dependency - caller's email if signed in, else None. Expired tokens still get 419."""
    if credentials is None:
        return None
    try:
        return verify_token(credentials, ACCESS)
    except APIError:
        raise
    except HTTPException:
        return None


async def get_refresh_email(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Dependency - email from a valid refresh token."""
    return verify_token(credentials, REFRESH)


def is_admin(email: Optional[str]) -> bool:
    if not email:
        return False
    row = fetch_one("SELECT is_admin FROM user WHERE id = :id", {"id": email})
    return bool(row and row["is_admin"])


def can_edit(email: Optional[str], owner_id: Optional[str]) -> bool:
    """Authors may edit their own rows; admins may edit anything."""
    if email and email == owner_id:
        return True
    return is_admin(email)


async def get_current_admin(email: str = Depends(get_current_email)) -> str:
    """Dependency - require an administrator account."""
    if not is_admin(email):
        raise HTTPException(status_code=403, detail=NOT_ADMIN)
    return email
