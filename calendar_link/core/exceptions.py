# calendar_link/core/exceptions.py
"""
Error taxonomy for the calendar connection service.

Every error carries a machine readable ``code`` so the browser can tell
"reconnect your calendar" apart from a generic failure, plus the HTTP status
the API layer should answer with.
"""
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging

from calendar_link.config.settings import get_settings

logger = logging.getLogger(__name__)


class CalendarError(Exception):
    """Base class for all errors surfaced to API callers."""

    code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class UnauthorizedError(CalendarError):
    code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"


class BadRequestError(CalendarError):
    code = "BAD_REQUEST"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Missing required fields"

    def __init__(self, message: Optional[str] = None, required: Optional[List[str]] = None, details: Any = None):
        super().__init__(message, details)
        self.required = required

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.required:
            body["required"] = self.required
        return body


class UnsupportedProviderError(BadRequestError):
    code = "UNSUPPORTED_PROVIDER"

    def __init__(self, provider: Any):
        super().__init__(f"Unsupported calendar provider: {provider}")
        self.provider = provider


class NotConnectedError(CalendarError):
    code = "NOT_CONNECTED"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Calendar not connected"


class EventNotFoundError(CalendarError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Event not found or unauthorized"


class TokenExpiredError(CalendarError):
    code = "TOKEN_EXPIRED"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Session expired, please reconnect your calendar"


class DecryptError(CalendarError):
    """Stored ciphertext did not authenticate. Different from "no token stored"."""

    code = "DECRYPT_ERROR"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Failed to decrypt token, please reconnect your calendar"


class NoPrimaryCalendarError(CalendarError):
    code = "NO_PRIMARY_CALENDAR"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "No primary calendar found"


class ProviderAPIError(CalendarError):
    """The provider rejected the requested action."""

    code = "API_ERROR"
    message = "Calendar provider request failed"

    def __init__(self, status_code: int, provider: str, details: Any = None, message: Optional[str] = None):
        super().__init__(message, details)
        self.status_code = status_code
        self.provider = provider

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["provider"] = self.provider
        return body


class CalendarFetchError(ProviderAPIError):
    """Tokens were issued but the calendar list could not be read."""

    message = "Failed to fetch calendar list"


class EncryptionConfigError(CalendarError):
    code = "CONFIG_ERROR"
    message = "Server configuration error"


class DatabaseError(CalendarError):
    code = "DATABASE_ERROR"
    message = "Database operation failed"


def _cors_headers(request: Request) -> Dict[str, str]:
    """Mirror the CORSMiddleware origin policy; the bare Exception handler runs outside it."""
    allowed = get_settings().ALLOWED_ORIGINS
    origin = request.headers.get("origin")
    if "*" in allowed:
        return {"Access-Control-Allow-Origin": "*"}
    if origin and origin in allowed:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    return {}


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as ``{error, code}`` JSON."""

    @app.exception_handler(CalendarError)
    async def calendar_error_handler(request: Request, exc: CalendarError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        required = [
            str(err["loc"][-1])
            for err in exc.errors()
            if err.get("type") == "missing" and err.get("loc")
        ]
        error = BadRequestError(
            "Missing required fields" if required else "Invalid request body",
            required=required or None,
        )
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unexpected error handling {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
            headers=_cors_headers(request),
        )
