# calendar_link/core/security.py
"""
JWT helpers: verification of the application's bearer tokens and signed
OAuth ``state`` values that carry the user id through the provider redirect.
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from uuid import UUID

from jose import JWTError, jwt

from calendar_link.config.settings import get_settings
from calendar_link.core.exceptions import UnauthorizedError
from calendar_link.schemas.calendar import CalendarProvider

ACCESS_TOKEN_TYPE = "access"
OAUTH_STATE_TYPE = "oauth_state"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary with claims (should include 'sub' with user_id)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": ACCESS_TOKEN_TYPE
    })

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def _decode(token: str, expected_type: str) -> dict:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise UnauthorizedError(f"Could not validate credentials: {str(e)}")

    if payload.get("type") != expected_type:
        raise UnauthorizedError("Invalid token type")
    return payload


def _subject(payload: dict) -> UUID:
    user_id_str = payload.get("sub")
    if user_id_str is None:
        raise UnauthorizedError("Could not validate credentials")
    try:
        return UUID(user_id_str)
    except ValueError:
        raise UnauthorizedError("Invalid user ID in token")


def verify_access_token(token: str) -> UUID:
    """Verify a bearer token and return the user id it was issued for."""
    return _subject(_decode(token, ACCESS_TOKEN_TYPE))


def create_oauth_state(user_id: UUID, provider: CalendarProvider) -> str:
    """Signed, short-lived state value for the provider authorization redirect."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "provider": CalendarProvider(provider).value,
        "nonce": secrets.token_urlsafe(16),
        "iat": now,
        "exp": now + timedelta(minutes=settings.OAUTH_STATE_EXPIRE_MINUTES),
        "type": OAUTH_STATE_TYPE,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_oauth_state(state: str, provider: CalendarProvider) -> Tuple[UUID, CalendarProvider]:
    """Return (user_id, provider) from a state value issued by create_oauth_state."""
    payload = _decode(state, OAUTH_STATE_TYPE)
    if payload.get("provider") != CalendarProvider(provider).value:
        raise UnauthorizedError("OAuth state was issued for a different provider")
    return _subject(payload), CalendarProvider(provider)
