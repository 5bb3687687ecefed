"""Health check endpoints for system monitoring."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from cinematch.dependencies import get_db_session, get_registry
from cinematch.realtime import PresenceRegistry

router = APIRouter()


@router.get("/health")
async def health_check(
    registry: Annotated[PresenceRegistry, Depends(get_registry)],
):
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "cinematch-backend",
        "online_users": registry.online_count(),
    }


@router.get("/health/database")
def database_health(db: Annotated[Session, Depends(get_db_session)]):
    """Health check for database connection."""
    try:
        # Simple query to test database connection
        db.execute(text("SELECT 1"))
        return {"status": "healthy", "database_connected": True}
    except Exception as e:
        return {"status": "unhealthy", "database_connected": False, "error": str(e)}
