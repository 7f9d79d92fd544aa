"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from app.api.routes.auth_routes import router as auth_router
from app.api.routes.token_routes import router as token_router
from app.api.routes.help_routes import router as help_router
from app.api.routes.map_routes import router as map_router
from app.api.routes.category_routes import router as category_router
from app.api.routes.banner_routes import router as banner_router
from app.api.routes.employment_routes import router as employment_router
from app.api.routes.community_routes import router as community_router
from app.api.routes.profile_routes import router as profile_router
from app.api.routes.senior_project_routes import router as senior_project_router
from app.api.routes.management_routes import router as management_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(token_router)
api_router.include_router(help_router)
api_router.include_router(map_router)
api_router.include_router(category_router)
api_router.include_router(banner_router)
api_router.include_router(employment_router)
api_router.include_router(community_router)
api_router.include_router(profile_router)
api_router.include_router(senior_project_router)
api_router.include_router(management_router)
