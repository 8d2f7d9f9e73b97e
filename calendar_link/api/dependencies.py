# ============================================================================
# FILE: calendar_link/api/dependencies.py
# Authentication and service dependencies for the calendar routes
# ============================================================================
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from calendar_link.config.database import get_db
from calendar_link.core.exceptions import UnauthorizedError
from calendar_link.core.security import verify_access_token
from calendar_link.services.calendar.calendar_service import CalendarLifecycleService

# ============================================================================
# Security Schemes
# ============================================================================

# auto_error is off so a missing header is reported as our own UNAUTHORIZED
jwt_security = HTTPBearer(
    scheme_name="JWT Bearer Token",
    description="Enter the application's JWT access token",
    auto_error=False,
)


# ============================================================================
# JWT Authentication Dependencies
# ============================================================================

async def get_current_user_id(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(jwt_security),
) -> UUID:
    """
    Dependency to get the calling user's id from the JWT access token.

    Usage in routes:
        @router.post("/disconnect")
        async def disconnect(user_id: UUID = Depends(get_current_user_id)):
            ...

    Raises:
        UnauthorizedError: If the header is missing or the token is invalid
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Missing authorization")

    return verify_access_token(credentials.credentials)


# ============================================================================
# Service Dependencies
# ============================================================================

def get_calendar_service(db: Session = Depends(get_db)) -> CalendarLifecycleService:
    """Dependency to get a CalendarLifecycleService bound to this request's session."""
    return CalendarLifecycleService(db)
