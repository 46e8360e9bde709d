"""
Pytest configuration and fixtures for testing.

- In-memory SQLite by default; set TEST_DATABASE_URL to run against a
  separate PostgreSQL database instead
- Fresh schema per test (create_all / drop_all)
- StubModelClient stands in for the chat-completion endpoint
"""
import json
import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load environment variables (.env.local takes precedence over .env)
env_local = Path(__file__).parent / '.env.local'
env_file = Path(__file__).parent / '.env'

if env_local.exists():
    load_dotenv(env_local)
elif env_file.exists():
    load_dotenv(env_file)

# Settings() requires DATABASE_URL; tests never connect through it
os.environ.setdefault("DATABASE_URL", "sqlite://")

from db.session import create_db_engine, create_session_factory  # noqa: E402
from extraction.model_client import ModelCompletion  # noqa: E402
from models import Base  # noqa: E402


class StubModelClient:
    """
    Deterministic ModelClient.

    responses: list of str bodies (or Exceptions to raise), consumed in order.
    The last one is repeated once the list runs out.
    """

    def __init__(self, responses=None, tokens: int = 100):
        self.responses = list(responses or ['{"jobs": []}'])
        self.tokens = tokens
        self.calls = []

    async def complete_json(self, system: str, user: str, max_tokens: int) -> ModelCompletion:
        self.calls.append({"system": system, "user": user, "max_tokens": max_tokens})
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        if not isinstance(response, str):
            response = json.dumps(response)
        return ModelCompletion(content=response, total_tokens=self.tokens)


@pytest.fixture
def stub_model_client():
    """Factory: stub_model_client(responses) -> StubModelClient"""
    return StubModelClient


@pytest.fixture(scope="function")
def engine():
    """
    Engine with a fresh schema.

    Uses TEST_DATABASE_URL when set, in-memory SQLite otherwise.
    """
    engine = create_db_engine(os.getenv("TEST_DATABASE_URL") or "sqlite://")
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """
    Database session for one test.

    Usage:
        def test_upsert(db):
            from db.company_service import upsert_company
            upsert_company(db, DiscoveredCompany(name="Acme", career_url="https://acme.com/careers"))
    """
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
