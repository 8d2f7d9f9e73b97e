#!/usr/bin/env python3
"""
One-time job: encrypt calendar tokens stored before encryption was introduced.

Legacy rows are the ones with a token but no IV. They keep working as plaintext
until this runs; afterwards every row carries ciphertext + IV.

Usage: python -m calendar_link.scripts.encrypt_legacy_tokens [--dry-run]
"""
import argparse
import sys
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from calendar_link.config.database import SessionLocal
from calendar_link.core.exceptions import EncryptionConfigError
from calendar_link.models import CalendarConnection
from calendar_link.utils.encryption import PlaintextToken, TokenCipher, get_cipher, stored_token
from calendar_link.utils.my_logging import setup_logging


def encrypt_connection(connection: CalendarConnection, cipher: TokenCipher) -> bool:
    """Encrypt whichever token columns are still plaintext. Returns True if the row changed."""
    changed = False

    access_token = stored_token(connection.access_token_encrypted, connection.access_token_iv)
    if isinstance(access_token, PlaintextToken):
        connection.access_token_encrypted, connection.access_token_iv = cipher.encrypt(access_token.value)
        changed = True

    refresh_token = stored_token(connection.refresh_token_encrypted, connection.refresh_token_iv)
    if isinstance(refresh_token, PlaintextToken):
        connection.refresh_token_encrypted, connection.refresh_token_iv = cipher.encrypt(refresh_token.value)
        changed = True

    return changed


def encrypt_legacy_tokens(db: Session, cipher: TokenCipher, dry_run: bool = False) -> int:
    """Encrypt all legacy plaintext rows. Returns the number of rows updated."""
    legacy_rows = db.query(CalendarConnection).filter(
        or_(
            CalendarConnection.access_token_iv.is_(None),
            (CalendarConnection.refresh_token_encrypted.isnot(None)
             & CalendarConnection.refresh_token_iv.is_(None)),
        )
    ).all()

    print(f"Found {len(legacy_rows)} connection(s) with plaintext tokens")

    updated = 0
    for connection in legacy_rows:
        if encrypt_connection(connection, cipher):
            updated += 1
            print(f"  - {connection.provider} connection for user {connection.user_id}")

    if dry_run:
        db.rollback()
        print(f"\nDry run: {updated} connection(s) would be encrypted")
    else:
        db.commit()
        print(f"\n✅ Encrypted tokens for {updated} connection(s)")

    return updated


def main(argv=None):
    parser = argparse.ArgumentParser(description="Encrypt legacy plaintext calendar tokens")
    parser.add_argument("--dry-run", action="store_true", help="Report rows without writing")
    args = parser.parse_args(argv)

    setup_logging(verbose=False)

    try:
        cipher = get_cipher()
    except EncryptionConfigError as e:
        print(f"\n❌ {e.message}")
        sys.exit(1)

    db: Session = SessionLocal()
    try:
        return encrypt_legacy_tokens(db, cipher, dry_run=args.dry_run)
    except SQLAlchemyError as e:
        db.rollback()
        print(f"\n❌ Error encrypting tokens: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
