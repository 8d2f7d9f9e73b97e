"""Builders shared by the calendar link tests."""
import json
from datetime import timedelta
from typing import Any, Optional

import requests

from calendar_link.models.types import utcnow
from calendar_link.services.calendar.connection_store import ConnectionStore


def make_response(status_code: int = 200, body: Any = None) -> requests.Response:
    """A real requests.Response carrying a JSON body (or nothing)."""
    response = requests.Response()
    response.status_code = status_code
    if body is None:
        response._content = b""
    else:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    return response


def make_text_response(status_code: int, text: str) -> requests.Response:
    """A reply whose body is not JSON, e.g. an HTML error page from a proxy."""
    response = requests.Response()
    response.status_code = status_code
    response._content = text.encode("utf-8")
    response.headers["Content-Type"] = "text/html"
    return response


def seed_connection(
        db,
        cipher,
        user_id,
        provider: str = "google",
        access_token: str = "access-token-1",
        refresh_token: Optional[str] = "refresh-token-1",
        expires_in: timedelta = timedelta(hours=1),
        calendar_id: str = "surgeon@example.com",
        encrypted: bool = True,
):
    """Store a connection the way a completed connect callback would."""
    if encrypted:
        access_ciphertext, access_iv = cipher.encrypt(access_token)
        refresh_ciphertext, refresh_iv = cipher.encrypt(refresh_token) if refresh_token else (None, None)
    else:
        access_ciphertext, access_iv = access_token, None
        refresh_ciphertext, refresh_iv = refresh_token, None

    return ConnectionStore(db).upsert(
        user_id,
        provider,
        access_token_encrypted=access_ciphertext,
        access_token_iv=access_iv,
        refresh_token_encrypted=refresh_ciphertext,
        refresh_token_iv=refresh_iv,
        token_expires_at=utcnow() + expires_in,
        calendar_id=calendar_id,
        calendar_email=calendar_id,
        calendar_name="Work",
    )
