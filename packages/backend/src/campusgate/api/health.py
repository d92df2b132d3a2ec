"""Health check endpoint."""

from fastapi import APIRouter, Request

from campusgate import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Report server status and how many real-time connections are live."""
    gateway = request.app.state.gateway
    return {
        "status": "healthy",
        "server": "ok",
        "version": __version__,
        "connections": len(gateway.registry),
    }
