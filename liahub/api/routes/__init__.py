"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from liahub.api.routes.auth_routes import router as auth_router
from liahub.api.routes.user_routes import router as user_router
from liahub.api.routes.dashboard_routes import router as dashboard_router
from liahub.api.routes.notification_routes import router as notification_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(dashboard_router)
api_router.include_router(notification_router)
