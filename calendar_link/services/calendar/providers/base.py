# calendar_link/services/calendar/providers/base.py
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

import requests

from calendar_link.config.settings import Settings, get_settings
from calendar_link.core.exceptions import ProviderAPIError
from calendar_link.schemas.calendar import CalendarProvider

logger = logging.getLogger(__name__)


@dataclass
class OAuthTokens:
    access_token: str
    refresh_token: Optional[str]
    expires_in: int  # seconds


@dataclass
class CalendarIdentity:
    calendar_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    provider_user_id: Optional[str] = None


@dataclass
class EventDraft:
    """Provider-neutral event. Start/end are local wall-clock ISO strings."""
    title: str
    description: str
    start: str
    end: str
    timezone: str


@dataclass
class CreatedEvent:
    event_id: str
    event_url: Optional[str]
    calendar_link: Optional[str]


class ProviderAdapter(ABC):
    """Protocol-level access to one calendar back end.

    Failures of the requested action surface as ProviderAPIError; the adapter
    never decides what is best-effort, the caller does.
    """

    provider: CalendarProvider
    TOKEN_URL: str
    supports_revoke = False

    def __init__(self, settings: Optional[Settings] = None, http: Optional[requests.Session] = None):
        self.settings = settings or get_settings()
        self.http = http or requests.Session()
        self.timeout = self.settings.PROVIDER_TIMEOUT_SECONDS

    # ---------- credentials ----------

    @property
    @abstractmethod
    def client_id(self) -> str:
        ...

    @property
    @abstractmethod
    def client_secret(self) -> str:
        ...

    @abstractmethod
    def authorization_url(self, state: str) -> str:
        """URL the user visits to grant calendar access"""

    @abstractmethod
    def exchange_code(self, code: str) -> OAuthTokens:
        """Exchange an authorization code for tokens"""

    @abstractmethod
    def fetch_primary_calendar(self, access_token: str) -> Optional[CalendarIdentity]:
        """Return the user's primary calendar, or None if there is none"""

    def refresh_access_token(self, refresh_token: str) -> OAuthTokens:
        """Exchange a refresh token for a new access token"""
        response = self._request(
            "POST",
            self.TOKEN_URL,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
        )
        data = self._json(response)

        if not response.ok or not isinstance(data, dict) or "error" in data or not data.get("access_token"):
            raise ProviderAPIError(
                response.status_code if not response.ok else 400,
                self.provider.value,
                details=data,
                message="Token refresh failed",
            )

        return OAuthTokens(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=int(data.get("expires_in", 3600)),
        )

    def revoke_token(self, token: str) -> bool:
        """Revoke a token at the provider. Returns False when unsupported."""
        return False

    # ---------- events ----------

    @abstractmethod
    def build_event_payload(self, draft: EventDraft) -> Dict[str, Any]:
        ...

    @abstractmethod
    def events_url(self, calendar_id: str) -> str:
        ...

    @abstractmethod
    def event_url(self, calendar_id: str, external_event_id: str) -> str:
        ...

    @abstractmethod
    def parse_created_event(self, body: Dict[str, Any]) -> CreatedEvent:
        ...

    def create_event(self, access_token: str, calendar_id: str, draft: EventDraft) -> CreatedEvent:
        """Create an event on the user's calendar"""
        response = self._request(
            "POST",
            self.events_url(calendar_id),
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
            json=self.build_event_payload(draft),
        )

        if not response.ok:
            raise ProviderAPIError(
                response.status_code,
                self.provider.value,
                details=self._json(response),
                message="Failed to create calendar event",
            )

        body = self._json_object(response)
        if not body.get("id"):
            raise ProviderAPIError(502, self.provider.value, details=body, message="Malformed provider response")
        created = self.parse_created_event(body)
        logger.info(f"Created {self.provider.value} event {created.event_id}")
        return created

    def delete_event(self, access_token: str, calendar_id: str, external_event_id: str) -> None:
        """Delete an event. An event that is already gone (404) counts as deleted."""
        response = self._request(
            "DELETE",
            self.event_url(calendar_id, external_event_id),
            headers={"Authorization": f"Bearer {access_token}"},
        )

        if response.status_code == 404:
            logger.info(f"{self.provider.value} event {external_event_id} already deleted")
            return

        if not response.ok:
            raise ProviderAPIError(
                response.status_code,
                self.provider.value,
                details=self._json(response),
                message="Failed to delete calendar event",
            )

    # ---------- http helpers ----------

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{self.provider.value} request {method} {url} failed: {e}")
            raise ProviderAPIError(
                502,
                self.provider.value,
                details=str(e),
                message="Calendar provider unreachable",
            )

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    def _json_object(self, response: requests.Response) -> Dict[str, Any]:
        """Body of a successful reply, which must be a JSON object."""
        body = self._json(response)
        if not isinstance(body, dict):
            logger.error(f"{self.provider.value} returned a non-object body ({response.status_code})")
            raise ProviderAPIError(502, self.provider.value, details=body, message="Malformed provider response")
        return body
