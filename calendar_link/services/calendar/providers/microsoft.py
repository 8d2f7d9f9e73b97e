# calendar_link/services/calendar/providers/microsoft.py
from typing import Any, Dict, Optional
from urllib.parse import quote
import logging

import msal

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


class MicrosoftCalendarAdapter(ProviderAdapter):
    provider = CalendarProvider.MICROSOFT
    # msal adds offline_access/openid/profile itself and rejects them here
    SCOPES = ['Calendars.ReadWrite', 'User.Read']

    AUTHORITY = 'https://login.microsoftonline.com/common'
    TOKEN_URL = 'https://login.microsoftonline.com/common/oauth2/v2.0/token'
    GRAPH_ENDPOINT = 'https://graph.microsoft.com/v1.0'

    # Graph has no token revocation endpoint for delegated tokens
    supports_revoke = False

    @property
    def client_id(self) -> str:
        return self.settings.MICROSOFT_CLIENT_ID

    @property
    def client_secret(self) -> str:
        return self.settings.MICROSOFT_CLIENT_SECRET

    def _msal_app(self) -> msal.ConfidentialClientApplication:
        return msal.ConfidentialClientApplication(
            self.client_id,
            authority=self.AUTHORITY,
            client_credential=self.client_secret,
        )

    def authorization_url(self, state: str) -> str:
        return self._msal_app().get_authorization_request_url(
            self.SCOPES,
            state=state,
            redirect_uri=self.settings.MICROSOFT_REDIRECT_URI,
            prompt="consent",
        )

    def exchange_code(self, code: str) -> OAuthTokens:
        result = self._msal_app().acquire_token_by_authorization_code(
            code,
            scopes=self.SCOPES,
            redirect_uri=self.settings.MICROSOFT_REDIRECT_URI,
        )

        if "error" in result or not result.get("access_token"):
            logger.error(f"Token exchange error: {result.get('error_description')}")
            raise ProviderAPIError(400, self.provider.value,
                                   details=result.get("error_description") or result.get("error"),
                                   message="Token exchange failed")

        return OAuthTokens(
            access_token=result['access_token'],
            refresh_token=result.get('refresh_token'),
            expires_in=int(result.get('expires_in', 3600)),
        )

    def fetch_primary_calendar(self, access_token: str) -> Optional[CalendarIdentity]:
        response = self._request(
            "GET",
            f"{self.GRAPH_ENDPOINT}/me/calendars",
            headers={'Authorization': f'Bearer {access_token}'},
        )
        if not response.ok:
            raise ProviderAPIError(response.status_code, self.provider.value,
                                   details=self._json(response),
                                   message="Failed to fetch calendars")

        calendars = [
            cal for cal in self._json_object(response).get('value') or []
            if isinstance(cal, dict) and cal.get('id')
        ]
        if not calendars:
            return None

        primary = next((cal for cal in calendars if cal.get('isDefaultCalendar')), calendars[0])
        owner = primary.get('owner') or {}
        return CalendarIdentity(
            calendar_id=primary['id'],
            email=owner.get('address'),
            name=primary.get('name') or owner.get('address') or primary['id'],
            provider_user_id=self._fetch_user_id(access_token),
        )

    def _fetch_user_id(self, access_token: str) -> Optional[str]:
        """Graph object id of the signed-in user"""
        response = self._request(
            "GET",
            f"{self.GRAPH_ENDPOINT}/me",
            params={'$select': 'id'},
            headers={'Authorization': f'Bearer {access_token}'},
        )
        if not response.ok:
            raise ProviderAPIError(response.status_code, self.provider.value,
                                   details=self._json(response),
                                   message="Failed to fetch user profile")
        return self._json_object(response).get('id')

    # ---------- events ----------

    def events_url(self, calendar_id: str) -> str:
        # Events go to the user's default calendar
        return f"{self.GRAPH_ENDPOINT}/me/events"

    def event_url(self, calendar_id: str, external_event_id: str) -> str:
        return f"{self.GRAPH_ENDPOINT}/me/events/{quote(external_event_id, safe='')}"

    def build_event_payload(self, draft: EventDraft) -> Dict[str, Any]:
        return {
            'subject': draft.title,
            'body': {
                'contentType': 'text',
                'content': draft.description,
            },
            'start': {
                'dateTime': draft.start,
                'timeZone': draft.timezone,
            },
            'end': {
                'dateTime': draft.end,
                'timeZone': draft.timezone,
            },
            'isReminderOn': True,
            'reminderMinutesBeforeStart': 60,
        }

    def parse_created_event(self, body: Dict[str, Any]) -> CreatedEvent:
        web_link = body.get('webLink')
        return CreatedEvent(
            event_id=body['id'],
            event_url=web_link,
            calendar_link=web_link,
        )
