"""
Health check endpoints.
/health always answers 200 so container health checks pass while the
database is down; /health/ready reports real dependency state.
"""

import structlog
from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from docextract.config import settings
from docextract.models.database import async_session_factory

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["health"])


async def _database_status() -> tuple[bool, str | None]:
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1, None
    except (SQLAlchemyError, OSError) as e:
        logger.warning("health_database_unreachable", error=str(e)[:200])
        return False, str(e)[:200]


@router.get("/health")
async def health_check():
    db_ok, db_error = await _database_status()
    response = {
        "status": "healthy" if db_ok else "degraded",
        "version": settings.APP_VERSION,
        "engine_version": settings.ENGINE_VERSION,
        "database": "connected" if db_ok else "unreachable",
    }
    if db_error:
        response["database_error"] = db_error
    return response


@router.get("/health/ready")
async def readiness_check():
    db_ok, _ = await _database_status()
    return {"ready": db_ok}
