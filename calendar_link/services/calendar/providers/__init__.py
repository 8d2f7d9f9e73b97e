# calendar_link/services/calendar/providers/__init__.py
from typing import Dict, Optional, Type, Union

import requests

from calendar_link.config.settings import Settings
from calendar_link.core.exceptions import UnsupportedProviderError
from calendar_link.schemas.calendar import CalendarProvider

from .base import CalendarIdentity, CreatedEvent, EventDraft, OAuthTokens, ProviderAdapter
from .google import GoogleCalendarAdapter
from .microsoft import MicrosoftCalendarAdapter

ADAPTERS: Dict[CalendarProvider, Type[ProviderAdapter]] = {
    CalendarProvider.GOOGLE: GoogleCalendarAdapter,
    CalendarProvider.MICROSOFT: MicrosoftCalendarAdapter,
}


def parse_provider(provider: Union[str, CalendarProvider, None]) -> CalendarProvider:
    """Map a request value onto a known provider or raise UnsupportedProviderError"""
    try:
        return CalendarProvider(provider)
    except ValueError:
        raise UnsupportedProviderError(provider)


def get_adapter(
        provider: Union[str, CalendarProvider],
        settings: Optional[Settings] = None,
        http: Optional[requests.Session] = None,
) -> ProviderAdapter:
    return ADAPTERS[parse_provider(provider)](settings=settings, http=http)


__all__ = [
    "ADAPTERS",
    "CalendarIdentity",
    "CreatedEvent",
    "EventDraft",
    "GoogleCalendarAdapter",
    "MicrosoftCalendarAdapter",
    "OAuthTokens",
    "ProviderAdapter",
    "get_adapter",
    "parse_provider",
]
