"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: the auth router mixes open routes (login, logoff) with a
protected one (/me), so /me declares Depends(get_ctx) on the handler
instead of at the include_router level. Health is open.
"""

from fastapi import APIRouter

from authkeep.api.auth import router as auth_router
from authkeep.api.health import router as health_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
