"""
Shared fixtures for the calendar link test suite.

Environment is configured before anything from calendar_link is imported so
the cached settings, the module-level engine and the cipher all pick it up.
"""
import base64
import os
import uuid

TEST_ENCRYPTION_KEY = base64.b64encode(b"0123456789abcdef0123456789abcdef").decode("ascii")

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TOKEN_ENCRYPTION_KEY"] = TEST_ENCRYPTION_KEY
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["APP_URL"] = "http://app.test"
os.environ["GOOGLE_CLIENT_ID"] = "google-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "google-client-secret"
os.environ["MICROSOFT_CLIENT_ID"] = "microsoft-client-id"
os.environ["MICROSOFT_CLIENT_SECRET"] = "microsoft-client-secret"

import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from calendar_link.config.database import build_engine, create_tables  # noqa: E402
from calendar_link.models import Base  # noqa: E402
from calendar_link.utils.encryption import TokenCipher  # noqa: E402


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_tables(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def cipher():
    return TokenCipher(TEST_ENCRYPTION_KEY)


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def other_user_id():
    return uuid.uuid4()
