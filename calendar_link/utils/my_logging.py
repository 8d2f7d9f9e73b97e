# calendar_link/utils/my_logging.py
"""Logging configuration"""
import logging
import sys
from calendar_link.config.settings import get_settings

APP_LOGGER = "calendar_link"

# These log request URLs, headers or token responses at DEBUG/INFO
TOKEN_BEARING_LOGGERS = ("urllib3", "requests_oauthlib", "google_auth_oauthlib", "msal")

# Per-statement and per-request chatter, hidden for one-shot scripts
SCRIPT_QUIET_LOGGERS = ("sqlalchemy.engine", "alembic", "uvicorn.access")


def setup_logging(verbose=True):
    """
    Configure logging for the API or a maintenance script.

    The service's own loggers follow LOG_LEVEL. Library loggers that can echo
    OAuth tokens are held at WARNING regardless of LOG_LEVEL. With
    ``verbose=False`` the service logs warnings and up only.
    """
    settings = get_settings()
    app_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO) if verbose else logging.WARNING

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger(APP_LOGGER).setLevel(app_level)

    for name in TOKEN_BEARING_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if not verbose:
        for name in SCRIPT_QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.ERROR)
