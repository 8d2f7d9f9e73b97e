# ============================================================================
# FILE: calendar_link/api/v1/calendar.py
# Calendar connection endpoints - thin HTTP layer over CalendarLifecycleService
# IMPORTANT: Specific routes MUST come before parameterized routes
# ============================================================================
from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from typing import Optional
from urllib.parse import urlencode
from uuid import UUID
import logging

from calendar_link.api.dependencies import get_calendar_service, get_current_user_id
from calendar_link.config.settings import get_settings
from calendar_link.core.exceptions import (
    BadRequestError,
    CalendarFetchError,
    DatabaseError,
    EncryptionConfigError,
    NoPrimaryCalendarError,
    ProviderAPIError,
    UnauthorizedError,
)
from calendar_link.core.security import verify_oauth_state
from calendar_link.schemas.calendar import (
    AuthorizeRequest,
    AuthorizeResponse,
    ConnectCallbackRequest,
    ConnectResponse,
    CreateEventRequest,
    CreateEventResponse,
    DeleteEventRequest,
    DisconnectRequest,
    MessageResponse,
)
from calendar_link.services.calendar.calendar_service import CalendarLifecycleService
from calendar_link.services.calendar.providers import parse_provider

logger = logging.getLogger(__name__)

router = APIRouter(tags=["calendar"])

# Redirect reasons shown to the settings page when the OAuth redirect fails
CALLBACK_FAILURE_REASONS = (
    (NoPrimaryCalendarError, "no_primary_calendar"),
    (EncryptionConfigError, "server_config_error"),
    (DatabaseError, "database_error"),
    (CalendarFetchError, "calendar_fetch_failed"),
    (ProviderAPIError, "token_exchange_failed"),
)


def _settings_redirect(**params) -> RedirectResponse:
    settings = get_settings()
    return RedirectResponse(
        url=f"{settings.APP_URL}/settings?{urlencode(params)}",
        status_code=302,
    )


# ========== CONNECT ==========

@router.post("/authorize", response_model=AuthorizeResponse)
async def authorize(
        body: AuthorizeRequest,
        user_id: UUID = Depends(get_current_user_id),
        service: CalendarLifecycleService = Depends(get_calendar_service),
):
    """Returns the provider consent URL for the user to visit"""
    return {"authorizationUrl": service.authorization_url(user_id, body.provider)}


@router.post("/connect-callback", response_model=ConnectResponse)
async def connect_callback(
        body: ConnectCallbackRequest,
        user_id: UUID = Depends(get_current_user_id),
        service: CalendarLifecycleService = Depends(get_calendar_service),
):
    """Complete a connection with an authorization code relayed by the browser"""
    connection = service.connect_callback(user_id, body.provider, body.code)
    return {
        "success": True,
        "provider": connection.provider,
        "calendarId": connection.calendar_id,
        "calendarName": connection.calendar_name,
    }


@router.get("/oauth/{provider}/callback")
async def oauth_redirect_callback(
        provider: str,
        code: Optional[str] = None,
        state: Optional[str] = None,
        error: Optional[str] = None,
        service: CalendarLifecycleService = Depends(get_calendar_service),
):
    """
    The provider redirects here after authorization.
    No bearer token: the user is identified by the signed state parameter.
    """
    provider = parse_provider(provider)

    # User denied permission, etc.
    if error:
        logger.error(f"OAuth error from {provider.value}: {error}")
        return _settings_redirect(calendar="error", reason=error)

    if not code:
        raise BadRequestError("Missing authorization code", required=["code"])

    try:
        user_id, _ = verify_oauth_state(state or "", provider)
    except UnauthorizedError as e:
        logger.error(f"Rejected OAuth state: {e.message}")
        return _settings_redirect(calendar="error", reason="invalid_state")

    try:
        service.connect_callback(user_id, provider, code)
    except tuple(exc for exc, _ in CALLBACK_FAILURE_REASONS) as e:
        reason = next(reason for exc, reason in CALLBACK_FAILURE_REASONS if isinstance(e, exc))
        logger.error(f"{provider.value} connect failed for user {user_id}: {reason}")
        return _settings_redirect(calendar="error", reason=reason)

    return _settings_redirect(calendar="connected", provider=provider.value)


# ========== EVENTS ==========

@router.post("/create-event", response_model=CreateEventResponse)
async def create_event(
        body: CreateEventRequest,
        user_id: UUID = Depends(get_current_user_id),
        service: CalendarLifecycleService = Depends(get_calendar_service),
):
    """Schedule a resource on the user's connected calendar"""
    logger.info(f"Creating calendar event for user: {user_id}")
    result = service.create_event(user_id, body)
    return {"success": True, **result}


@router.post("/delete-event", response_model=MessageResponse)
async def delete_event(
        body: DeleteEventRequest,
        user_id: UUID = Depends(get_current_user_id),
        service: CalendarLifecycleService = Depends(get_calendar_service),
):
    """Delete an event from the provider (best-effort) and from the local mirror"""
    service.delete_event(user_id, body.event_id)
    return {"success": True, "message": "Calendar event deleted successfully"}


@router.get("/events")
async def list_events(
        user_id: UUID = Depends(get_current_user_id),
        service: CalendarLifecycleService = Depends(get_calendar_service),
):
    """Upcoming events the user scheduled through the app"""
    events = service.list_upcoming_events(user_id)
    return {"events": events, "count": len(events)}


# ========== CONNECTIONS ==========

@router.get("/connections")
async def list_connections(
        user_id: UUID = Depends(get_current_user_id),
        service: CalendarLifecycleService = Depends(get_calendar_service),
):
    """Calendar connections of the current user (no token material)"""
    return {"connections": service.list_connections(user_id)}


@router.post("/disconnect", response_model=MessageResponse)
async def disconnect(
        body: DisconnectRequest,
        user_id: UUID = Depends(get_current_user_id),
        service: CalendarLifecycleService = Depends(get_calendar_service),
):
    """Revoke and remove a calendar connection"""
    logger.info(f"Disconnecting calendar for user: {user_id} provider: {body.provider}")
    service.disconnect(user_id, body.provider)
    return {"success": True, "message": "Calendar disconnected successfully"}
