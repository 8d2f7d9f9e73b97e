# calendar_link/services/calendar/calendar_service.py
"""
Calendar connection lifecycle: connect, create event, delete event, disconnect.

Only the action the caller asked for can fail the request. Secondary work
(mirroring the event locally, deleting it at the provider during a local
delete, revoking tokens on disconnect) is attempted, logged on failure, and
never surfaced.
"""
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from sqlalchemy.orm import Session

from calendar_link.config.settings import Settings, get_settings
from calendar_link.core.exceptions import (
    BadRequestError,
    CalendarFetchError,
    DatabaseError,
    DecryptError,
    EncryptionConfigError,
    EventNotFoundError,
    NoPrimaryCalendarError,
    ProviderAPIError,
)
from calendar_link.core.security import create_oauth_state
from calendar_link.models import CalendarConnection, CalendarEvent
from calendar_link.models.types import utcnow
from calendar_link.schemas.calendar import CalendarProvider, CreateEventRequest
from calendar_link.services.calendar.connection_store import ConnectionStore
from calendar_link.services.calendar.event_store import EventMirrorStore
from calendar_link.services.calendar.providers import EventDraft, ProviderAdapter, get_adapter, parse_provider
from calendar_link.services.calendar.token_refresher import TokenRefresher, needs_refresh
from calendar_link.utils.encryption import TokenCipher, get_cipher, reveal, stored_token

logger = logging.getLogger(__name__)

EVENT_TITLE_SUFFIX = "Surgical Technique Review"
DEFAULT_DESCRIPTION = "Review surgical technique resource"
APP_SIGNATURE = "Created via Surgical Techniques App"
CREATE_EVENT_REQUIRED = ["provider", "resourceId", "eventDate", "eventTime"]


class CalendarLifecycleService:
    """Orchestrates calendar operations for one request."""

    def __init__(
            self,
            db: Session,
            cipher: Optional[TokenCipher] = None,
            settings: Optional[Settings] = None,
            adapter_factory: Callable[..., ProviderAdapter] = get_adapter,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.connections = ConnectionStore(db)
        self.events = EventMirrorStore(db)
        self._cipher = cipher
        self._adapter_factory = adapter_factory

    @property
    def cipher(self) -> TokenCipher:
        if self._cipher is None:
            self._cipher = get_cipher()
        return self._cipher

    def adapter_for(self, provider: CalendarProvider) -> ProviderAdapter:
        return self._adapter_factory(provider, settings=self.settings)

    # ========== CONNECT ==========

    def authorization_url(self, user_id: UUID, provider) -> str:
        """Provider consent URL carrying a signed state for this user"""
        provider = parse_provider(provider)
        state = create_oauth_state(user_id, provider)
        return self.adapter_for(provider).authorization_url(state)

    def connect_callback(self, user_id: UUID, provider, code: Optional[str]) -> CalendarConnection:
        """Exchange an authorization code and store the resulting connection."""
        provider = parse_provider(provider)
        if not code:
            raise BadRequestError("Missing authorization code", required=["code"])

        cipher = self.cipher
        adapter = self.adapter_for(provider)

        tokens = adapter.exchange_code(code)
        try:
            calendar = adapter.fetch_primary_calendar(tokens.access_token)
        except ProviderAPIError as e:
            logger.error(f"Calendar list fetch failed for {provider.value} user {user_id}: {e.message}")
            raise CalendarFetchError(e.status_code, provider.value, details=e.details)
        if calendar is None:
            logger.error(f"No primary {provider.value} calendar for user {user_id}")
            raise NoPrimaryCalendarError()

        access_ciphertext, access_iv = cipher.encrypt(tokens.access_token)
        refresh_ciphertext, refresh_iv = (
            cipher.encrypt(tokens.refresh_token) if tokens.refresh_token else (None, None)
        )
        if not tokens.refresh_token:
            logger.warning(f"{provider.value} returned no refresh token for user {user_id}")

        now = utcnow()
        connection = self.connections.upsert(
            user_id,
            provider,
            provider_user_id=calendar.provider_user_id,
            access_token_encrypted=access_ciphertext,
            access_token_iv=access_iv,
            refresh_token_encrypted=refresh_ciphertext,
            refresh_token_iv=refresh_iv,
            token_expires_at=now + timedelta(seconds=tokens.expires_in),
            calendar_id=calendar.calendar_id,
            calendar_email=calendar.email,
            calendar_name=calendar.name,
            last_synced_at=now,
        )
        logger.info(f"Stored {provider.value} connection for user {user_id} (calendar {calendar.calendar_id})")
        return connection

    # ========== CREATE EVENT ==========

    def create_event(self, user_id: UUID, request: CreateEventRequest) -> Dict[str, Optional[str]]:
        """Create an event for a resource on the user's calendar."""
        missing = [
            name for name, value in zip(
                CREATE_EVENT_REQUIRED,
                (request.provider, request.resource_id, request.event_date, request.event_time),
            )
            if not value
        ]
        if missing:
            raise BadRequestError(required=CREATE_EVENT_REQUIRED, details={"missing": missing})

        provider = parse_provider(request.provider)
        timezone_name = request.timezone or self.settings.DEFAULT_EVENT_TIMEZONE
        tz = self._zone(timezone_name)
        start, end = self.event_window(request.event_date, request.event_time, request.duration)

        connection = self.connections.get(user_id, provider)
        adapter = self.adapter_for(provider)
        access_token = TokenRefresher(self.connections, self.cipher).ensure_fresh(connection, adapter)

        title = f"{request.resource_title or 'Resource'} - {EVENT_TITLE_SUFFIX}"
        draft = EventDraft(
            title=title,
            description=self.event_description(request),
            start=start.strftime("%Y-%m-%dT%H:%M:%S"),
            end=end.strftime("%Y-%m-%dT%H:%M:%S"),
            timezone=timezone_name,
        )

        calendar_id = connection.calendar_id
        created = adapter.create_event(access_token, calendar_id, draft)

        try:
            self.events.record(
                user_id=user_id,
                resource_id=request.resource_id,
                provider=provider.value,
                external_event_id=created.event_id,
                calendar_id=calendar_id,
                event_title=title,
                event_start=start.replace(tzinfo=tz),
                event_end=end.replace(tzinfo=tz),
                event_notes=request.notes,
                event_url=created.event_url,
            )
            self.connections.touch_synced(user_id, provider)
        except DatabaseError as e:
            logger.warning(f"Failed to track event {created.event_id} (non-blocking): {e.details}")

        return {
            "eventId": created.event_id,
            "eventUrl": created.event_url,
            "calendarLink": created.calendar_link,
        }

    @staticmethod
    def _zone(timezone_name: str) -> ZoneInfo:
        try:
            return ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            raise BadRequestError(f"Unknown timezone: {timezone_name}")

    def event_window(self, event_date: str, event_time: str, duration: Optional[int]) -> Tuple[datetime, datetime]:
        """Naive local start/end for an event; duration defaults to DEFAULT_EVENT_DURATION_MINUTES."""
        start = None
        for fmt in ("%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S"):
            try:
                start = datetime.strptime(f"{event_date}T{event_time}", fmt)
                break
            except ValueError:
                continue
        if start is None:
            raise BadRequestError("Invalid eventDate/eventTime, expected YYYY-MM-DD and HH:MM")

        minutes = duration or self.settings.DEFAULT_EVENT_DURATION_MINUTES
        if minutes <= 0:
            raise BadRequestError("duration must be a positive number of minutes")
        try:
            end = start + timedelta(minutes=minutes)
        except OverflowError:
            raise BadRequestError("duration is too long")
        return start, end

    @staticmethod
    def event_description(request: CreateEventRequest) -> str:
        lines = [
            request.resource_description or DEFAULT_DESCRIPTION,
            "",
            f"Resource: {request.resource_title or ''}",
            f"Link: {request.resource_url or ''}",
        ]
        if request.notes:
            lines += ["", f"Notes: {request.notes}"]
        lines += [
            "",
            "---",
            APP_SIGNATURE,
            f"View resource: {request.resource_url or ''}",
        ]
        return "\n".join(lines).strip()

    # ========== DELETE EVENT ==========

    def delete_event(self, user_id: UUID, event_id: Optional[str]) -> None:
        """Delete a mirrored event. The local delete is authoritative."""
        if not event_id:
            raise BadRequestError("Missing eventId", required=["eventId"])

        event = self.events.get(user_id, event_id)
        if event is None:
            raise EventNotFoundError()

        self._delete_from_provider(user_id, event)

        self.events.delete(user_id, event.id)
        logger.info(f"Deleted calendar event {event_id} for user {user_id}")

    def _delete_from_provider(self, user_id: UUID, event: CalendarEvent) -> bool:
        provider = parse_provider(event.provider)
        connection = self.connections.find(user_id, provider)
        if connection is None:
            logger.warning("Calendar connection not found, deleting from database only")
            return False

        # A refresh round trip is not worth blocking a delete on
        if needs_refresh(connection):
            logger.info(f"{provider.value} token expiring, skipping provider deletion of {event.external_event_id}")
            return False

        access_token = stored_token(connection.access_token_encrypted, connection.access_token_iv)
        if access_token is None:
            return False

        try:
            self.adapter_for(provider).delete_event(
                reveal(access_token, self.cipher),
                event.calendar_id,
                event.external_event_id,
            )
        except (DecryptError, EncryptionConfigError) as e:
            logger.error(f"Failed to decrypt token, skipping {provider.value} deletion: {e.message}")
            return False
        except ProviderAPIError as e:
            logger.error(f"Failed to delete from {provider.value} (non-blocking): {e.status_code} {e.details}")
            return False

        logger.info(f"Event {event.external_event_id} deleted from {provider.value}")
        return True

    # ========== DISCONNECT ==========

    def disconnect(self, user_id: UUID, provider) -> None:
        """Revoke (best-effort) and delete the user's connection."""
        provider = parse_provider(provider)
        connection = self.connections.find(user_id, provider)
        adapter = self.adapter_for(provider)

        if connection is not None and adapter.supports_revoke:
            self._revoke(connection, adapter)

        self.connections.delete(user_id, provider)
        logger.info(f"Calendar disconnected for user {user_id} provider {provider.value}")

    def _revoke(self, connection: CalendarConnection, adapter: ProviderAdapter) -> None:
        access_token = stored_token(connection.access_token_encrypted, connection.access_token_iv)
        if access_token is None:
            return
        try:
            adapter.revoke_token(reveal(access_token, self.cipher))
            logger.info(f"Token revoked with {adapter.provider.value}")
        except (DecryptError, EncryptionConfigError) as e:
            logger.warning(f"Could not decrypt token for revocation (non-blocking): {e.message}")
        except ProviderAPIError as e:
            logger.warning(f"Failed to revoke token (non-blocking): {e.status_code} {e.details}")

    # ========== READS ==========

    def list_connections(self, user_id: UUID) -> List[dict]:
        return [c.to_public_dict() for c in self.connections.list_for_user(user_id)]

    def list_upcoming_events(self, user_id: UUID) -> List[dict]:
        return [e.to_dict() for e in self.events.list_upcoming(user_id, utcnow())]
