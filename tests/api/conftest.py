"""Test fixtures for API integration tests."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tournament_ledger.config import get_settings
from tournament_ledger.main import app
from tournament_ledger.tournament.engine import TournamentEngine
from tournament_ledger.tournament.registry import TournamentRegistry
from tournament_ledger.utils.security import create_access_token


@pytest.fixture
def owner() -> str:
    return get_settings().owner_identity


@pytest.fixture
def engine(owner):
    """Fresh ledger per test, installed where the lifespan would put it."""
    engine = TournamentEngine(TournamentRegistry(owner))
    app.state.tournament_engine = engine
    yield engine
    del app.state.tournament_engine


@pytest_asyncio.fixture
async def client(engine) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def _bearer(identity: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(identity)}"}


@pytest.fixture
def auth_headers():
    """Build an Authorization header for any caller identity."""
    return _bearer


@pytest.fixture
def owner_headers(owner) -> dict[str, str]:
    return _bearer(owner)
