"""
Boogie On & On API - Main Application

FastAPI backend for the department community:
- MySQL for all structured data
- S3 for images (postings, profiles, projects, banners)
- SMTP for verification codes and application notices
- JWT authentication (access + refresh tokens)

Run: uvicorn app.main:app --reload
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.errors import register_exception_handlers
from app.core.logging_config import configure_logging

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Boogie On & On API",
    description="""
    Backend of the Boogie On & On department community.

    ## Features
    - **Auth**: email verification, join (students checked against the roster), login, token refresh
    - **Employment**: job postings and applications
    - **Community**: boards, comments, likes and best picks
    - **Profile**: student profiles with a completeness score
    - **Senior Project**: capstone project archive
    - **Management**: banners, students and admin accounts
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

register_exception_handlers(app)

# CORS middleware; credentials are needed for the view cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "Boogie On & On API"}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    from app.db.mysql import test_mysql_connection

    return {
        "status": "healthy",
        "mysql": "connected" if test_mysql_connection() else "disconnected",
    }
