"""
Unit tests for the local event mirror.
"""
import uuid
from datetime import datetime, timedelta, timezone

from calendar_link.services.calendar.event_store import EventMirrorStore


def _record(store, user_id, external_event_id="evt-1", start=None):
    start = start or datetime(2030, 3, 1, 19, 0, tzinfo=timezone.utc)
    return store.record(
        user_id=user_id,
        resource_id="res-1",
        provider="google",
        external_event_id=external_event_id,
        calendar_id="surgeon@example.com",
        event_title="Knee Arthroscopy - Surgical Technique Review",
        event_start=start,
        event_end=start + timedelta(minutes=30),
    )


class TestEventMirrorStore:

    def test_record_and_get(self, db, user_id):
        store = EventMirrorStore(db)
        event = _record(store, user_id)

        found = store.get(user_id, str(event.id))
        assert found is not None
        assert found.external_event_id == "evt-1"
        assert found.event_start == datetime(2030, 3, 1, 19, 0, tzinfo=timezone.utc)

    def test_get_scoped_to_user(self, db, user_id, other_user_id):
        store = EventMirrorStore(db)
        event = _record(store, user_id)

        assert store.get(other_user_id, event.id) is None
        assert store.delete(other_user_id, event.id) is False
        assert store.get(user_id, event.id) is not None

    def test_get_with_malformed_id(self, db, user_id):
        assert EventMirrorStore(db).get(user_id, "not-a-uuid") is None
        assert EventMirrorStore(db).get(user_id, str(uuid.uuid4())) is None

    def test_delete(self, db, user_id):
        store = EventMirrorStore(db)
        event_id = _record(store, user_id).id

        assert store.delete(user_id, event_id) is True
        assert store.get(user_id, event_id) is None

    def test_list_upcoming(self, db, user_id):
        store = EventMirrorStore(db)
        now = datetime(2030, 1, 1, tzinfo=timezone.utc)
        _record(store, user_id, "past", start=now - timedelta(days=1))
        _record(store, user_id, "later", start=now + timedelta(days=2))
        _record(store, user_id, "soon", start=now + timedelta(days=1))

        upcoming = store.list_upcoming(user_id, now)
        assert [e.external_event_id for e in upcoming] == ["soon", "later"]
