"""
Error handling - one JSON error shape for every failure.

Every HTTP error leaves the API as {"message": "..."}; token expiry adds
{"code": "expired", "type": "access" | "refresh"} so clients know to refresh.
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

BAD_REQUEST = "Bad request."
SERVER_ERROR = "Server request failed."
NOT_FOUND = "Resource not found."
NOT_ADMIN = "Not an administrator account."
IMAGE_UPLOAD_FAILED = "Image upload failed."
S3_FAILED = "S3 connection failed."
MAIL_FAILED = "Failed to send mail."


class APIError(HTTPException):
    """HTTPException carrying extra top-level fields for the JSON body."""

    def __init__(self, status_code: int, detail: str, extra: Optional[dict] = None):
        super().__init__(status_code=status_code, detail=detail)
        self.extra = extra or {}


class StorageError(Exception):
    """Object storage (S3) call failed."""


class MailError(Exception):
    """Outgoing mail could not be delivered to the SMTP server."""


def bad_request(message: str = BAD_REQUEST) -> HTTPException:
    return HTTPException(status_code=400, detail=message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    body = {"message": exc.detail}
    body.update(getattr(exc, "extra", {}))
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"message": BAD_REQUEST})


async def storage_exception_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"message": S3_FAILED})


async def mail_exception_handler(request: Request, exc: MailError):
    logger.error("Mail failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"message": MAIL_FAILED})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": SERVER_ERROR})


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StorageError, storage_exception_handler)
    app.add_exception_handler(MailError, mail_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
