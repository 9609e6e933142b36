"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from app.api.routes.candidate_routes import router as candidate_router
from app.api.routes.placement_routes import router as placement_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(candidate_router)
api_router.include_router(placement_router)
