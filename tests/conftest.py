"""Pytest configuration and fixtures for ManyMarkets tests"""

import os

# Set testing mode before any manymarkets import builds the engine
os.environ["TESTING"] = "1"
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from manymarkets.ai.daily_prompts import daily_prompt_cache
from manymarkets.ai.provider import get_llm_client
from manymarkets.api.deps import limiter
from manymarkets.auth import create_access_token
from manymarkets.billing.autumn import get_autumn_client
from manymarkets.billing.paddle import get_paddle_client
from manymarkets.database import Base, get_db, get_session_factory
from manymarkets.main import app
from manymarkets.models import Profile


class FakeLLM:
    """Stands in for LLMClient; records calls and replays canned output."""

    def __init__(self):
        self.text = ""
        self.chunks = ["Hello", " there"]
        self.error = None
        self.calls = []

    def generate_text(self, prompt, system=None):
        self.calls.append({"prompt": prompt, "system": system})
        if self.error is not None:
            raise self.error
        return self.text

    def stream_text(self, messages, system=None):
        self.calls.append({"messages": messages, "system": system})
        if self.error is not None:
            raise self.error
        for chunk in self.chunks:
            yield chunk


@pytest.fixture(scope="function")
def db_engine():
    """Fresh in-memory database per test; StaticPool shares one connection"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def autumn():
    return MagicMock()


@pytest.fixture
def paddle():
    client = MagicMock()
    client.is_configured = True
    return client


@pytest.fixture(scope="function")
def client(session_factory, llm, autumn, paddle):
    """Test client with the database and every external provider overridden"""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_llm_client] = lambda: llm
    app.dependency_overrides[get_autumn_client] = lambda: autumn
    app.dependency_overrides[get_paddle_client] = lambda: paddle

    # Disable rate limiting in tests
    limiter.enabled = False
    daily_prompt_cache.clear()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    daily_prompt_cache.clear()


@pytest.fixture
def make_profile(db_session):
    """Factory inserting a committed profile."""

    def _make(user_id="user-1", email="owner@example.com", **fields):
        profile = Profile(id=user_id, email=email, **fields)
        db_session.add(profile)
        db_session.commit()
        db_session.refresh(profile)
        return profile

    return _make


@pytest.fixture
def profile(make_profile):
    return make_profile(referral_code="OWNER123")


def auth_headers(user_id="user-1", email="owner@example.com", full_name=None):
    token = create_access_token(user_id, email=email, full_name=full_name)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers():
    return auth_headers()


@pytest.fixture
def headers_for():
    return auth_headers
