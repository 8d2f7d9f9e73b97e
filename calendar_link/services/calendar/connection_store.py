# calendar_link/services/calendar/connection_store.py
"""
Persistence of calendar connections.

Every query is scoped to the calling user's id; no accessor reads a
connection by anything else.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from calendar_link.core.exceptions import DatabaseError, NotConnectedError, UnauthorizedError
from calendar_link.models import CalendarConnection
from calendar_link.models.types import utcnow
from calendar_link.schemas.calendar import CalendarProvider

logger = logging.getLogger(__name__)

UPSERT_FIELDS = {
    "provider_user_id",
    "access_token_encrypted",
    "access_token_iv",
    "refresh_token_encrypted",
    "refresh_token_iv",
    "token_expires_at",
    "calendar_id",
    "calendar_email",
    "calendar_name",
    "last_synced_at",
}


class ConnectionStore:
    """Service layer for CalendarConnection rows."""

    def __init__(self, db: Session):
        self.db = db

    def _scoped(self, user_id: UUID, provider: CalendarProvider):
        if not user_id:
            raise UnauthorizedError()
        return self.db.query(CalendarConnection).filter(
            CalendarConnection.user_id == user_id,
            CalendarConnection.provider == CalendarProvider(provider).value,
        )

    def find(self, user_id: UUID, provider: CalendarProvider) -> Optional[CalendarConnection]:
        return self._scoped(user_id, provider).first()

    def get(self, user_id: UUID, provider: CalendarProvider) -> CalendarConnection:
        connection = self.find(user_id, provider)
        if connection is None:
            raise NotConnectedError()
        return connection

    def list_for_user(self, user_id: UUID) -> List[CalendarConnection]:
        if not user_id:
            raise UnauthorizedError()
        return (
            self.db.query(CalendarConnection)
            .filter(CalendarConnection.user_id == user_id)
            .order_by(CalendarConnection.connected_at.desc())
            .all()
        )

    def upsert(self, user_id: UUID, provider: CalendarProvider, **fields) -> CalendarConnection:
        """Create or fully replace the connection for (user_id, provider)."""
        unknown = set(fields) - UPSERT_FIELDS
        if unknown:
            raise ValueError(f"Unknown connection fields: {sorted(unknown)}")

        provider = CalendarProvider(provider)
        values = {field: fields.get(field) for field in UPSERT_FIELDS}
        values["connected_at"] = utcnow()
        values["last_refresh_at"] = None

        try:
            connection = self._write(user_id, provider, values)
        except IntegrityError:
            # Lost an insert race with a concurrent callback; replace theirs.
            self.db.rollback()
            logger.warning(f"Concurrent {provider.value} connect for user {user_id}, overwriting")
            try:
                connection = self._write(user_id, provider, values)
            except SQLAlchemyError as e:
                self.db.rollback()
                raise DatabaseError(details=str(e))
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(details=str(e))

        self.db.refresh(connection)
        return connection

    def _write(self, user_id: UUID, provider: CalendarProvider, values: dict) -> CalendarConnection:
        connection = self.find(user_id, provider)
        if connection is None:
            connection = CalendarConnection(user_id=user_id, provider=provider.value)
            self.db.add(connection)
        for field, value in values.items():
            setattr(connection, field, value)
        self.db.commit()
        return connection

    def update_tokens(
            self,
            user_id: UUID,
            provider: CalendarProvider,
            access_token_encrypted: str,
            access_token_iv: Optional[str],
            token_expires_at: datetime,
            expected_expires_at: Optional[datetime] = None,
    ) -> bool:
        """
        Store a refreshed access token. Refresh-token columns are never touched.

        With ``expected_expires_at`` the write is a compare-and-swap on the
        stored expiry. When another request refreshed first the mismatch is
        logged and this write still wins.

        Returns:
            True if the stored expiry matched (or no expectation was given)
        """
        values = {
            CalendarConnection.access_token_encrypted: access_token_encrypted,
            CalendarConnection.access_token_iv: access_token_iv,
            CalendarConnection.token_expires_at: token_expires_at,
            CalendarConnection.last_refresh_at: utcnow(),
            CalendarConnection.updated_at: utcnow(),
        }
        scoped = self._scoped(user_id, provider)

        try:
            swapped = False
            if expected_expires_at is not None:
                swapped = scoped.filter(
                    CalendarConnection.token_expires_at == expected_expires_at
                ).update(values, synchronize_session=False) == 1

            if not swapped:
                if expected_expires_at is not None:
                    logger.warning(
                        f"{CalendarProvider(provider).value} token for user {user_id} was refreshed "
                        f"concurrently (expected expiry {expected_expires_at.isoformat()}); overwriting"
                    )
                if scoped.update(values, synchronize_session=False) == 0:
                    self.db.rollback()
                    raise NotConnectedError()

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(details=str(e))

        return expected_expires_at is None or swapped

    def touch_synced(self, user_id: UUID, provider: CalendarProvider) -> None:
        """Record a successful provider API call."""
        try:
            self._scoped(user_id, provider).update(
                {CalendarConnection.last_synced_at: utcnow()}, synchronize_session=False
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(details=str(e))

    def delete(self, user_id: UUID, provider: CalendarProvider) -> bool:
        try:
            deleted = self._scoped(user_id, provider).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError("Failed to disconnect calendar", details=str(e))
        return deleted > 0
