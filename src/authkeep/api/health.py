"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and reports
how busy the hashing pool is. Open route: works with or without a cookie.
"""

from fastapi import APIRouter, Request

from authkeep import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health."""
    pool = request.app.state.hash_pool
    return {
        "status": "ok" if not pool.closed else "degraded",
        "version": __version__,
        "hash_pool_in_flight": pool.in_flight,
    }
