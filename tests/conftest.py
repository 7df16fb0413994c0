"""
Pytest configuration and shared fixtures.
"""

import os
import tempfile

# Set required environment variables BEFORE importing app modules
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="synth-logs-"))
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("SLACK_CLIENT_ID", "test-client-id")
os.environ.setdefault("SLACK_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("SLACK_REDIRECT_URI", "http://localhost:3001/slack/oauth/callback")
os.environ.setdefault("SLACK_EXCHANGE_MODE", "direct")
os.environ.setdefault("LOCAL_STORE_PATH", os.path.join(tempfile.mkdtemp(prefix="synth-store-"), "tokens.json"))

from unittest.mock import AsyncMock, MagicMock

import pytest
from cryptography.fernet import Fernet
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.init_db import init_db
from app.schemas.slack import ProbeResult, SlackTokenPayload
from app.services.connection_events import ConnectionEvents
from app.services.connection_reconciler import ConnectionReconciler
from app.stores.local_token_store import LocalTokenStore
from app.stores.profile_store import ProfileStore


@pytest.fixture
def session_factory():
    """In-memory SQLite shared across sessions of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def profile_store(session_factory):
    return ProfileStore(session_factory=session_factory)


@pytest.fixture
def local_store(tmp_path):
    return LocalTokenStore(path=str(tmp_path / "slack_tokens.json"), encryption_key=Fernet.generate_key())


@pytest.fixture
def probe():
    mock_probe = MagicMock()
    mock_probe.verify_token = AsyncMock(
        return_value=ProbeResult(valid=True, team_id="T1", team_name="Acme", slack_user_id="US1")
    )
    return mock_probe


@pytest.fixture
def token_payload():
    return SlackTokenPayload.model_validate({
        "ok": True,
        "access_token": "xoxb-tok",
        "scope": "channels:read,chat:write",
        "team": {"id": "T1", "name": "Acme"},
        "authed_user": {"id": "US1"},
    })


@pytest.fixture
def exchange(token_payload):
    mock_exchange = MagicMock()
    mock_exchange.exchange = AsyncMock(return_value=token_payload)
    return mock_exchange


@pytest.fixture
def events():
    return ConnectionEvents()


@pytest.fixture
def reconciler(profile_store, local_store, probe, exchange, events):
    return ConnectionReconciler(
        profile_store=profile_store,
        local_store=local_store,
        probe=probe,
        exchange=exchange,
        events=events,
    )
