# calendar_link/models/calendar_event.py
from sqlalchemy import Column, String, Text, Uuid, UniqueConstraint, CheckConstraint
import uuid

from calendar_link.models.base import Base
from calendar_link.models.types import UTCDateTime, utcnow


class CalendarEvent(Base):
    """Local mirror of an event created on a provider calendar."""

    __tablename__ = "calendar_events"
    __table_args__ = (
        UniqueConstraint("provider", "external_event_id", name="uq_calendar_event_provider_external_id"),
        CheckConstraint("provider IN ('google', 'microsoft')", name="ck_calendar_event_provider"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    resource_id = Column(String(255), nullable=False, index=True)

    provider = Column(String(20), nullable=False)
    external_event_id = Column(String(1024), nullable=False)
    calendar_id = Column(String(255), nullable=False)

    # Snapshot of the event at creation time
    event_title = Column(Text, nullable=False)
    event_start = Column(UTCDateTime, nullable=False)
    event_end = Column(UTCDateTime, nullable=False)
    event_notes = Column(Text, nullable=True)
    event_url = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "resourceId": self.resource_id,
            "provider": self.provider,
            "externalEventId": self.external_event_id,
            "calendarId": self.calendar_id,
            "eventTitle": self.event_title,
            "eventStart": self.event_start.isoformat(),
            "eventEnd": self.event_end.isoformat(),
            "eventNotes": self.event_notes,
            "eventUrl": self.event_url,
        }
