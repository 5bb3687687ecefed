"""CineMatch Backend main application."""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from cinematch.api.chats import router as chats_router
from cinematch.api.health import router as health_router
from cinematch.api.likes import router as likes_router
from cinematch.api.matches import router as matches_router
from cinematch.api.ws import router as ws_router
from cinematch.core.config import settings
from cinematch.core.logging import (
    configure_sqlalchemy_logging,
    get_logger,
    log_shutdown_info,
    log_startup_info,
    setup_logging,
)
from cinematch.db.db import build_engine, build_session_factory
from cinematch.models import Base
from cinematch.realtime import NotificationDispatcher, PresenceRegistry

# Initialize logging first
setup_logging()
configure_sqlalchemy_logging(settings.SQL_ECHO)

# Get logger after setup
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    log_startup_info()
    if settings.ENVIRONMENT != "production":
        Base.metadata.create_all(bind=app.state.engine)
    app.state.dispatcher.bind_loop(asyncio.get_running_loop())
    logger.info("FastAPI application started successfully")
    yield
    # Shutdown
    log_shutdown_info()
    app.state.engine.dispose()


def create_app(engine: Optional[Engine] = None) -> FastAPI:
    """Build an application with its own database engine and live-connection state."""
    engine = engine or build_engine()

    app = FastAPI(
        title="CineMatch Backend",
        description="Movie matching and chat backend",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.registry = PresenceRegistry()
    app.state.dispatcher = NotificationDispatcher(app.state.registry)

    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.BACKEND_CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Include routers
    app.include_router(matches_router, prefix=settings.API_V1_STR)
    app.include_router(chats_router, prefix=settings.API_V1_STR)
    app.include_router(likes_router, prefix=settings.API_V1_STR)
    app.include_router(health_router, tags=["health"])
    app.include_router(ws_router, tags=["websocket"])

    return app


app = create_app()
