"""
Unit tests for ConnectionStore persistence.
"""
from datetime import timedelta

import pytest

from calendar_link.core.exceptions import NotConnectedError, UnauthorizedError
from calendar_link.models import CalendarConnection
from calendar_link.models.types import utcnow
from calendar_link.schemas.calendar import CalendarProvider
from calendar_link.services.calendar.connection_store import ConnectionStore
from tests.helpers import seed_connection


class TestConnectionStore:

    def test_upsert_creates_connection(self, db, cipher, user_id):
        connection = seed_connection(db, cipher, user_id)

        assert connection.id is not None
        assert connection.provider == "google"
        assert connection.calendar_id == "surgeon@example.com"
        assert connection.connected_at is not None
        assert connection.token_expires_at.tzinfo is not None
        assert cipher.decrypt(connection.access_token_encrypted, connection.access_token_iv) == "access-token-1"

    def test_reconnect_replaces_the_row(self, db, cipher, user_id):
        first = seed_connection(db, cipher, user_id, access_token="old", calendar_id="old@example.com")
        first_id = first.id
        second = seed_connection(db, cipher, user_id, access_token="new", refresh_token=None,
                                 calendar_id="new@example.com")

        rows = db.query(CalendarConnection).filter(CalendarConnection.user_id == user_id).all()
        assert len(rows) == 1
        assert second.id == first_id
        assert second.calendar_id == "new@example.com"
        assert cipher.decrypt(second.access_token_encrypted, second.access_token_iv) == "new"
        # A reconnect without a refresh token must not keep the old one around
        assert second.refresh_token_encrypted is None
        assert second.refresh_token_iv is None
        assert second.last_refresh_at is None

    def test_providers_are_independent(self, db, cipher, user_id):
        seed_connection(db, cipher, user_id, provider="google")
        seed_connection(db, cipher, user_id, provider="microsoft")

        store = ConnectionStore(db)
        assert len(store.list_for_user(user_id)) == 2
        assert store.get(user_id, CalendarProvider.MICROSOFT).provider == "microsoft"

    def test_upsert_rejects_unknown_fields(self, db, user_id):
        with pytest.raises(ValueError):
            ConnectionStore(db).upsert(user_id, "google", calendar_color="blue")

    def test_get_scoped_to_user(self, db, cipher, user_id, other_user_id):
        seed_connection(db, cipher, user_id)
        store = ConnectionStore(db)

        assert store.find(other_user_id, "google") is None
        with pytest.raises(NotConnectedError) as exc_info:
            store.get(other_user_id, "google")
        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Calendar not connected"

    def test_missing_user_id(self, db):
        with pytest.raises(UnauthorizedError):
            ConnectionStore(db).find(None, "google")

    def test_delete(self, db, cipher, user_id, other_user_id):
        seed_connection(db, cipher, user_id)
        store = ConnectionStore(db)

        assert store.delete(other_user_id, "google") is False
        assert store.find(user_id, "google") is not None
        assert store.delete(user_id, "google") is True
        assert store.find(user_id, "google") is None
        assert store.delete(user_id, "google") is False

    def test_touch_synced(self, db, cipher, user_id):
        seed_connection(db, cipher, user_id)
        store = ConnectionStore(db)

        before = utcnow()
        store.touch_synced(user_id, "google")
        db.expire_all()
        assert store.get(user_id, "google").last_synced_at >= before - timedelta(seconds=1)


class TestUpdateTokens:

    def test_refresh_token_columns_untouched(self, db, cipher, user_id):
        connection = seed_connection(db, cipher, user_id)
        refresh_before = (connection.refresh_token_encrypted, connection.refresh_token_iv)
        store = ConnectionStore(db)

        ciphertext, iv = cipher.encrypt("access-token-2")
        new_expiry = utcnow() + timedelta(hours=1)
        assert store.update_tokens(user_id, "google", ciphertext, iv, new_expiry) is True

        db.expire_all()
        updated = store.get(user_id, "google")
        assert cipher.decrypt(updated.access_token_encrypted, updated.access_token_iv) == "access-token-2"
        assert (updated.refresh_token_encrypted, updated.refresh_token_iv) == refresh_before
        assert updated.last_refresh_at is not None
        assert abs((updated.token_expires_at - new_expiry).total_seconds()) < 1

    def test_compare_and_swap_match(self, db, cipher, user_id):
        connection = seed_connection(db, cipher, user_id)
        expected = connection.token_expires_at
        ciphertext, iv = cipher.encrypt("access-token-2")

        swapped = ConnectionStore(db).update_tokens(
            user_id, "google", ciphertext, iv, utcnow() + timedelta(hours=1),
            expected_expires_at=expected,
        )
        assert swapped is True

    def test_compare_and_swap_mismatch_still_writes(self, db, cipher, user_id, caplog):
        seed_connection(db, cipher, user_id)
        ciphertext, iv = cipher.encrypt("access-token-3")
        store = ConnectionStore(db)

        swapped = store.update_tokens(
            user_id, "google", ciphertext, iv, utcnow() + timedelta(hours=1),
            expected_expires_at=utcnow() - timedelta(days=1),
        )

        assert swapped is False
        assert "refreshed concurrently" in caplog.text
        db.expire_all()
        updated = store.get(user_id, "google")
        assert cipher.decrypt(updated.access_token_encrypted, updated.access_token_iv) == "access-token-3"

    def test_missing_connection(self, db, cipher, user_id):
        ciphertext, iv = cipher.encrypt("token")
        with pytest.raises(NotConnectedError):
            ConnectionStore(db).update_tokens(user_id, "google", ciphertext, iv, utcnow())
