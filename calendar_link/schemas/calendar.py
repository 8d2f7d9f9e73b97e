# calendar_link/schemas/calendar.py
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Any
from enum import Enum


class CalendarProvider(str, Enum):
    GOOGLE = "google"
    MICROSOFT = "microsoft"


class CamelModel(BaseModel):
    """Request bodies come from the browser in camelCase."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ========== REQUESTS ==========

class AuthorizeRequest(CamelModel):
    provider: str = Field(..., description="google or microsoft")


class ConnectCallbackRequest(CamelModel):
    provider: str = Field(..., description="google or microsoft")
    code: str = Field(..., description="Authorization code returned by the provider")


class CreateEventRequest(CamelModel):
    """Schedule a resource on the user's connected calendar.

    Only provider, resourceId, eventDate and eventTime are mandatory; the
    service reports every missing one in a single BAD_REQUEST response.
    """
    provider: Optional[str] = None
    resource_id: Optional[str] = Field(None, alias="resourceId")
    resource_title: Optional[str] = Field(None, alias="resourceTitle")
    resource_url: Optional[str] = Field(None, alias="resourceUrl")
    resource_description: Optional[str] = Field(None, alias="resourceDescription")
    event_date: Optional[str] = Field(None, alias="eventDate", description="YYYY-MM-DD")
    event_time: Optional[str] = Field(None, alias="eventTime", description="HH:MM")
    duration: Optional[int] = Field(None, description="Duration in minutes")
    notes: Optional[str] = None
    timezone: Optional[str] = Field(None, description="IANA timezone name")


class DeleteEventRequest(CamelModel):
    event_id: str = Field(..., alias="eventId")


class DisconnectRequest(CamelModel):
    provider: str


# ========== RESPONSES ==========

class AuthorizeResponse(BaseModel):
    authorizationUrl: str


class ConnectResponse(BaseModel):
    success: bool = True
    provider: str
    calendarId: str
    calendarName: Optional[str] = None


class CreateEventResponse(BaseModel):
    success: bool = True
    eventId: str
    eventUrl: Optional[str] = None
    calendarLink: Optional[str] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    error: str
    code: str
    details: Optional[Any] = None
