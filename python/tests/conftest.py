"""Pytest configuration and fixtures for Rest.IP tests.

Test isolation strategy:
- Every test gets its own in-memory SQLite database with the host schema
- The app's get_db and get_session_factory dependencies are overridden to
  use that database, so background tasks write to it too
- Auth uses MockTokenVerifier; mint headers with tests.helpers.auth_headers
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path

# Add repo root to sys.path for importing top-level packages (e.g., apps)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

os.environ.setdefault("RESTIP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("OAUTH_JWKS_URL", "http://localhost:9999/.well-known/jwks.json")
os.environ.setdefault("OAUTH_ISSUER", "test-issuer")
os.environ.setdefault("OAUTH_AUDIENCES", "test-audience")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from restip.app import add_request_id_middleware, create_app
from restip.config import clear_settings_cache
from restip.db.session import create_session_factory, get_db, get_session_factory
from tests.factories import create_test_user
from tests.support.verifier import MockTokenVerifier
from tests.utils.db import create_test_engine


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Re-read settings from the environment in every test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Create a private in-memory database holding the host schema."""
    engine = create_test_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Provide a session on the test database for seeding and assertions."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_verifier() -> MockTokenVerifier:
    """Provide a test token verifier."""
    return MockTokenVerifier()


@pytest.fixture
def app(session_factory: sessionmaker[Session], test_verifier: MockTokenVerifier) -> FastAPI:
    """Provide the full app (format, auth and request-id middleware) on the test database."""
    app = create_app(token_verifier=test_verifier)

    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    add_request_id_middleware(app, log_requests=False)
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Provide a test client for the full app.

    Requests need auth_headers() except on public paths such as /health.
    """
    with TestClient(app) as client:
        yield client


@pytest.fixture
def viewer_id(db_session: Session) -> str:
    """A host user to act as in authenticated requests."""
    return create_test_user(db_session, username="viewer", forename="Vera", lastname="Viewer")


@pytest.fixture
def other_user_id(db_session: Session) -> str:
    """A second host user to exchange messages with."""
    return create_test_user(db_session, username="other", forename="Otto", lastname="Other")
