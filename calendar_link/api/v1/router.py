"""
API v1 router setup
All calendar routes require a JWT bearer token, except the provider redirect callback
"""
from fastapi import APIRouter

from calendar_link.api.v1 import calendar

api_v1_router = APIRouter()

# ============================================================================
# CALENDAR ROUTES
# ============================================================================
api_v1_router.include_router(
    calendar.router,
    prefix="/calendar",
    tags=["Calendar"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """API information and available endpoints."""
    return {
        "version": "1.0",
        "authentication": {
            "calendar": "JWT Bearer token required (user login)",
            "oauth_callback": "Signed state parameter from /calendar/authorize",
        }
    }
