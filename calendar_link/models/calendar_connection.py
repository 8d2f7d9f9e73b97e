# calendar_link/models/calendar_connection.py
from sqlalchemy import Column, String, Text, Uuid, UniqueConstraint, CheckConstraint, Index
import uuid

from calendar_link.models.base import Base
from calendar_link.models.types import UTCDateTime, utcnow


class CalendarConnection(Base):
    """OAuth credentials and calendar identity linking one user to one provider."""

    __tablename__ = "user_calendar_connections"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_calendar_connection_user_provider"),
        CheckConstraint("provider IN ('google', 'microsoft')", name="ck_calendar_connection_provider"),
        Index("idx_calendar_connections_expiry", "token_expires_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    provider = Column(String(20), nullable=False, index=True)  # 'google', 'microsoft'
    provider_user_id = Column(String(255), nullable=True)

    # AES-256-GCM ciphertext + nonce, both base64. A null IV marks a legacy plaintext row.
    access_token_encrypted = Column(Text, nullable=False)
    access_token_iv = Column(String(32), nullable=True)
    refresh_token_encrypted = Column(Text, nullable=True)
    refresh_token_iv = Column(String(32), nullable=True)

    # Expiry of the current access token, never the refresh token
    token_expires_at = Column(UTCDateTime, nullable=False)

    # Calendar details
    calendar_id = Column(String(255), nullable=False)
    calendar_email = Column(String(255), nullable=True)
    calendar_name = Column(String(255), nullable=True)

    connected_at = Column(UTCDateTime, default=utcnow)
    last_synced_at = Column(UTCDateTime, nullable=True)
    last_refresh_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    def to_public_dict(self) -> dict:
        """Connection details that are safe to hand back to the browser."""
        return {
            "provider": self.provider,
            "calendarId": self.calendar_id,
            "calendarEmail": self.calendar_email,
            "calendarName": self.calendar_name,
            "tokenExpiresAt": self.token_expires_at.isoformat() if self.token_expires_at else None,
            "connectedAt": self.connected_at.isoformat() if self.connected_at else None,
            "lastSyncedAt": self.last_synced_at.isoformat() if self.last_synced_at else None,
        }
