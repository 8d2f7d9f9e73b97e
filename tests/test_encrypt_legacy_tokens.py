"""
Tests for the one-time legacy token encryption job.
"""
from calendar_link.scripts.encrypt_legacy_tokens import encrypt_legacy_tokens
from calendar_link.services.calendar.connection_store import ConnectionStore
from tests.helpers import seed_connection


class TestEncryptLegacyTokens:

    def test_encrypts_plaintext_rows(self, db, cipher, user_id, other_user_id):
        seed_connection(db, cipher, user_id, access_token="legacy-access",
                        refresh_token="legacy-refresh", encrypted=False)
        seed_connection(db, cipher, other_user_id)

        assert encrypt_legacy_tokens(db, cipher) == 1

        db.expire_all()
        legacy = ConnectionStore(db).get(user_id, "google")
        assert legacy.access_token_iv is not None
        assert legacy.refresh_token_iv is not None
        assert cipher.decrypt(legacy.access_token_encrypted, legacy.access_token_iv) == "legacy-access"
        assert cipher.decrypt(legacy.refresh_token_encrypted, legacy.refresh_token_iv) == "legacy-refresh"

        # Already encrypted rows are left alone
        assert encrypt_legacy_tokens(db, cipher) == 0

    def test_dry_run_writes_nothing(self, db, cipher, user_id):
        seed_connection(db, cipher, user_id, access_token="legacy-access", encrypted=False)

        assert encrypt_legacy_tokens(db, cipher, dry_run=True) == 1

        db.expire_all()
        row = ConnectionStore(db).get(user_id, "google")
        assert row.access_token_iv is None
        assert row.access_token_encrypted == "legacy-access"

    def test_missing_refresh_token(self, db, cipher, user_id):
        seed_connection(db, cipher, user_id, access_token="legacy-access",
                        refresh_token=None, encrypted=False)

        assert encrypt_legacy_tokens(db, cipher) == 1

        db.expire_all()
        row = ConnectionStore(db).get(user_id, "google")
        assert row.refresh_token_encrypted is None
        assert row.refresh_token_iv is None
