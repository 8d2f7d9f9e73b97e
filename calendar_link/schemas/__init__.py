# calendar_link/schemas/__init__.py
from .calendar import (
    CalendarProvider,
    AuthorizeRequest,
    AuthorizeResponse,
    ConnectCallbackRequest,
    ConnectResponse,
    CreateEventRequest,
    CreateEventResponse,
    DeleteEventRequest,
    DisconnectRequest,
    MessageResponse,
    ErrorResponse,
)

__all__ = [
    "CalendarProvider",
    "AuthorizeRequest",
    "AuthorizeResponse",
    "ConnectCallbackRequest",
    "ConnectResponse",
    "CreateEventRequest",
    "CreateEventResponse",
    "DeleteEventRequest",
    "DisconnectRequest",
    "MessageResponse",
    "ErrorResponse",
]
