# calendar_link/services/calendar/event_store.py
from datetime import datetime
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from calendar_link.core.exceptions import DatabaseError, UnauthorizedError
from calendar_link.models import CalendarEvent

logger = logging.getLogger(__name__)


def _as_uuid(value) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class EventMirrorStore:
    """Local mirror of events created on provider calendars, scoped per user."""

    def __init__(self, db: Session):
        self.db = db

    def _scoped(self, user_id: UUID):
        if not user_id:
            raise UnauthorizedError()
        return self.db.query(CalendarEvent).filter(CalendarEvent.user_id == user_id)

    def record(
            self,
            user_id: UUID,
            resource_id: str,
            provider: str,
            external_event_id: str,
            calendar_id: str,
            event_title: str,
            event_start: datetime,
            event_end: datetime,
            event_notes: Optional[str] = None,
            event_url: Optional[str] = None,
    ) -> CalendarEvent:
        event = CalendarEvent(
            user_id=user_id,
            resource_id=resource_id,
            provider=provider,
            external_event_id=external_event_id,
            calendar_id=calendar_id,
            event_title=event_title,
            event_start=event_start,
            event_end=event_end,
            event_notes=event_notes,
            event_url=event_url,
        )
        try:
            self.db.add(event)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError("Failed to record calendar event", details=str(e))

        self.db.refresh(event)
        return event

    def get(self, user_id: UUID, event_id) -> Optional[CalendarEvent]:
        event_uuid = _as_uuid(event_id)
        if event_uuid is None:
            return None
        return self._scoped(user_id).filter(CalendarEvent.id == event_uuid).first()

    def delete(self, user_id: UUID, event_id) -> bool:
        event_uuid = _as_uuid(event_id)
        if event_uuid is None:
            return False
        try:
            deleted = self._scoped(user_id).filter(
                CalendarEvent.id == event_uuid
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError("Failed to delete event from database", details=str(e))
        return deleted > 0

    def list_upcoming(self, user_id: UUID, now: datetime) -> List[CalendarEvent]:
        return (
            self._scoped(user_id)
            .filter(CalendarEvent.event_start >= now)
            .order_by(CalendarEvent.event_start.asc())
            .all()
        )
