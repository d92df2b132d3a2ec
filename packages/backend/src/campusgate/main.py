"""FastAPI application factory.

create_app() builds the gateway (registry, router, publisher, supervisor)
once, stores it on app.state, and mounts the HTTP API and the WebSocket
route. Lifespan binds the publisher to the serving loop, logs, and drains
in-flight broadcasts on shutdown.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campusgate import __version__
from campusgate.api import api_router
from campusgate.config import settings
from campusgate.realtime import Gateway, build_gateway

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "campusgate.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        admin_room=settings.admin_room,
    )
    app.state.gateway.publisher.bind_loop(asyncio.get_running_loop())

    yield

    logger.info("campusgate.shutdown", connections=len(app.state.gateway.registry))
    await app.state.gateway.publisher.drain()


def create_app(gateway: Optional[Gateway] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Campus Gate",
        description="Real-time notification gateway for the university portal",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.gateway = gateway or build_gateway()

    # ── Middleware stack ──────────────────────────────────────
    from campusgate.middleware.request_id import RequestIdMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    from campusgate.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: campusgate.main:app)
app = create_app()
