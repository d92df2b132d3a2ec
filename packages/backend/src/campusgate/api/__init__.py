"""API route aggregation.

All routers registered here get mounted in main.py.

Auth is applied at the include_router level using FastAPI's dependencies
parameter. Health is open; /auth/me needs any valid token; /admin/* needs
an administrator token.
"""

from fastapi import APIRouter, Depends

from campusgate.api.admin import router as admin_router
from campusgate.api.auth import router as auth_router
from campusgate.api.health import router as health_router
from campusgate.auth.dependencies import get_current_claim, require_admin

api_router = APIRouter(prefix="/api/v1")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])

# Protected routes
api_router.include_router(auth_router, tags=["auth"], dependencies=[Depends(get_current_claim)])
api_router.include_router(admin_router, tags=["admin"], dependencies=[Depends(require_admin)])
