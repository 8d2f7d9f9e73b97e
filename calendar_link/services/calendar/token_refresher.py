# calendar_link/services/calendar/token_refresher.py
from datetime import datetime, timedelta
from typing import Optional
import logging

from calendar_link.core.exceptions import DecryptError, ProviderAPIError, TokenExpiredError
from calendar_link.models import CalendarConnection
from calendar_link.models.types import utcnow
from calendar_link.services.calendar.connection_store import ConnectionStore
from calendar_link.services.calendar.providers import ProviderAdapter
from calendar_link.utils.encryption import TokenCipher, reveal, stored_token

logger = logging.getLogger(__name__)

# Refresh tokens this close to expiry so a request never races the expiry in flight
REFRESH_MARGIN = timedelta(minutes=5)


def needs_refresh(connection: CalendarConnection, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return connection.token_expires_at <= now + REFRESH_MARGIN


class TokenRefresher:
    """Hands out a usable access token for a connection, refreshing it on demand.

    Holds no state between calls. A failed refresh leaves the stored row
    exactly as it was.
    """

    def __init__(self, store: ConnectionStore, cipher: TokenCipher):
        self.store = store
        self.cipher = cipher

    def ensure_fresh(
            self,
            connection: CalendarConnection,
            adapter: ProviderAdapter,
            now: Optional[datetime] = None,
    ) -> str:
        """
        Return a plaintext access token valid for at least REFRESH_MARGIN.

        Raises:
            TokenExpiredError: token needed a refresh and the refresh failed
            DecryptError: the stored access token does not decrypt
        """
        now = now or utcnow()
        if not needs_refresh(connection, now):
            access_token = stored_token(connection.access_token_encrypted, connection.access_token_iv)
            if access_token is None:
                raise TokenExpiredError()
            return reveal(access_token, self.cipher)

        logger.info(f"{connection.provider} token for user {connection.user_id} expiring, refreshing")
        return self.refresh(connection, adapter)

    def refresh(self, connection: CalendarConnection, adapter: ProviderAdapter) -> str:
        refresh_token = stored_token(connection.refresh_token_encrypted, connection.refresh_token_iv)
        if refresh_token is None:
            logger.warning(f"No refresh token stored for {connection.provider} user {connection.user_id}")
            raise TokenExpiredError()

        try:
            tokens = adapter.refresh_access_token(reveal(refresh_token, self.cipher))
        except DecryptError:
            logger.error(f"Refresh token for {connection.provider} user {connection.user_id} does not decrypt")
            raise TokenExpiredError()
        except ProviderAPIError as e:
            logger.error(f"Token refresh failed ({e.status_code}): {e.details}")
            raise TokenExpiredError()

        ciphertext, iv = self.cipher.encrypt(tokens.access_token)
        self.store.update_tokens(
            connection.user_id,
            connection.provider,
            ciphertext,
            iv,
            utcnow() + timedelta(seconds=tokens.expires_in),
            expected_expires_at=connection.token_expires_at,
        )
        logger.info(f"Token refreshed and saved for {connection.provider} user {connection.user_id}")
        return tokens.access_token
