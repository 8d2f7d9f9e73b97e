# calendar_link/models/__init__.py
from .base import Base
from .calendar_connection import CalendarConnection
from .calendar_event import CalendarEvent

__all__ = [
    "Base",
    "CalendarConnection",
    "CalendarEvent",
]
