# calendar_link/services/calendar/providers/google.py
from datetime import datetime
from typing import Any, Dict, Optional
from urllib.parse import quote
import logging

import requests
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from calendar_link.core.exceptions import ProviderAPIError
from calendar_link.schemas.calendar import CalendarProvider
from calendar_link.services.calendar.providers.base import (
    CalendarIdentity,
    CreatedEvent,
    EventDraft,
    OAuthTokens,
    ProviderAdapter,
)

logger = logging.getLogger(__name__)


class GoogleCalendarAdapter(ProviderAdapter):
    provider = CalendarProvider.GOOGLE
    SCOPES = ['https://www.googleapis.com/auth/calendar.events']

    AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    REVOKE_URL = "https://oauth2.googleapis.com/revoke"
    CALENDAR_API = "https://www.googleapis.com/calendar/v3"
    EVENT_EDIT_URL = "https://calendar.google.com/calendar/r/eventedit/{event_id}"

    supports_revoke = True

    @property
    def client_id(self) -> str:
        return self.settings.GOOGLE_CLIENT_ID

    @property
    def client_secret(self) -> str:
        return self.settings.GOOGLE_CLIENT_SECRET

    @property
    def client_config(self) -> Dict[str, Any]:
        return {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uris": [self.settings.GOOGLE_REDIRECT_URI],
                "auth_uri": self.AUTH_URI,
                "token_uri": self.TOKEN_URL,
            }
        }

    def _flow(self) -> Flow:
        # The callback runs in a different request than the authorization
        # redirect, so no PKCE verifier can be carried over.
        return Flow.from_client_config(
            self.client_config,
            scopes=self.SCOPES,
            redirect_uri=self.settings.GOOGLE_REDIRECT_URI,
            autogenerate_code_verifier=False,
        )

    def authorization_url(self, state: str) -> str:
        authorization_url, _ = self._flow().authorization_url(
            access_type='offline',  # Gets refresh token
            include_granted_scopes='true',
            prompt='consent',  # Force consent screen to get refresh token
            state=state,
        )
        return authorization_url

    def exchange_code(self, code: str) -> OAuthTokens:
        flow = self._flow()
        try:
            flow.fetch_token(code=code)
        except (OAuth2Error, requests.RequestException, ValueError) as e:
            logger.error(f"Failed to exchange Google authorization code: {e}")
            raise ProviderAPIError(400, self.provider.value, details=str(e),
                                   message="Token exchange failed")

        credentials = flow.credentials
        if credentials.expiry:
            # google-auth reports expiry as naive UTC
            expires_in = int((credentials.expiry - datetime.utcnow()).total_seconds())
        else:
            expires_in = 3600

        return OAuthTokens(
            access_token=credentials.token,
            refresh_token=credentials.refresh_token,
            expires_in=max(expires_in, 0),
        )

    def fetch_primary_calendar(self, access_token: str) -> Optional[CalendarIdentity]:
        response = self._request(
            "GET",
            f"{self.CALENDAR_API}/users/me/calendarList",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not response.ok:
            raise ProviderAPIError(response.status_code, self.provider.value,
                                   details=self._json(response),
                                   message="Failed to fetch calendar list")

        calendars = self._json_object(response).get("items") or []
        primary = next(
            (cal for cal in calendars if isinstance(cal, dict) and cal.get("primary") and cal.get("id")),
            None,
        )
        if not primary:
            return None

        return CalendarIdentity(
            calendar_id=primary["id"],
            email=primary["id"],
            name=primary.get("summary") or primary["id"],
            # The primary calendar id is the account email, stable per Google user
            provider_user_id=primary["id"],
        )

    def revoke_token(self, token: str) -> bool:
        response = self._request(
            "POST",
            self.REVOKE_URL,
            data={"token": token},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if not response.ok:
            raise ProviderAPIError(response.status_code, self.provider.value,
                                   details=self._json(response),
                                   message="Token revocation failed")
        return True

    # ---------- events ----------

    def events_url(self, calendar_id: str) -> str:
        return f"{self.CALENDAR_API}/calendars/{quote(calendar_id, safe='')}/events"

    def event_url(self, calendar_id: str, external_event_id: str) -> str:
        return f"{self.events_url(calendar_id)}/{quote(external_event_id, safe='')}"

    def build_event_payload(self, draft: EventDraft) -> Dict[str, Any]:
        return {
            'summary': draft.title,
            'description': draft.description,
            'start': {
                'dateTime': draft.start,
                'timeZone': draft.timezone,
            },
            'end': {
                'dateTime': draft.end,
                'timeZone': draft.timezone,
            },
            'reminders': {
                'useDefault': False,
                'overrides': [
                    {'method': 'popup', 'minutes': 24 * 60},
                    {'method': 'popup', 'minutes': 60},
                ],
            },
        }

    def parse_created_event(self, body: Dict[str, Any]) -> CreatedEvent:
        return CreatedEvent(
            event_id=body['id'],
            event_url=body.get('htmlLink'),
            calendar_link=self.EVENT_EDIT_URL.format(event_id=body['id']),
        )
