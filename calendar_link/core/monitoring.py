# calendar_link/core/monitoring.py
"""Health checks and monitoring endpoints"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from calendar_link.config.database import get_db
from calendar_link.config.settings import get_settings

health_router = APIRouter()


@health_router.get("/")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "calendar-link-api"}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Detailed health check with dependencies"""
    settings = get_settings()
    checks = {
        "api": "healthy",
        "database": "unknown",
        "encryption_key": "configured" if settings.TOKEN_ENCRYPTION_KEY else "missing",
        "overall": "unknown"
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        checks["database"] = f"unhealthy: {str(e)}"

    # Overall status
    if checks["database"] == "healthy" and checks["encryption_key"] == "configured":
        checks["overall"] = "healthy"
    else:
        checks["overall"] = "degraded"

    return checks
