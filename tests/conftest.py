"""Pytest fixtures for agentforce-bot tests."""

import os
from unittest.mock import patch, AsyncMock, MagicMock

import pytest

from agentforce_bot.config import Settings
from agentforce_bot.session.store import SessionStore


@pytest.fixture
def mock_env_vars():
    """Mock environment variables for testing."""
    env_vars = {
        "MICROSOFT_APP_ID": "test-app-id",
        "MICROSOFT_APP_PASSWORD": "test-app-password",
        "MICROSOFT_APP_TENANT_ID": "test-tenant-id",
        "SF_TOKEN_URL": "https://login.example.com/services/oauth2/token",
        "SF_CLIENT_ID": "test-sf-client-id",
        "SF_CLIENT_SECRET": "test-sf-client-secret",
        "SF_SESSION_URL": "https://api.example.com/einstein/ai-agent/v1/agents/agent-1/sessions",
        "SF_INSTANCE_URL": "https://example.my.salesforce.com",
        "SF_MESSAGE_URL": "https://api.example.com/einstein/ai-agent/v1/sessions",
        "HOST": "127.0.0.1",
        "PORT": "3978",
        "LOG_LEVEL": "DEBUG",
    }
    with patch.dict(os.environ, env_vars, clear=False):
        yield env_vars


@pytest.fixture
def settings(mock_env_vars) -> Settings:
    """Create Settings instance with mocked environment."""
    return Settings(_env_file=None)


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_store(clock) -> SessionStore:
    """Real SessionStore with a 30 minute timeout driven by the fake clock."""
    return SessionStore(timeout=1800, clock=clock)


@pytest.fixture
def mock_token_provider():
    """Token provider that always returns a fixed bearer token."""
    provider = MagicMock()
    provider.get_token = AsyncMock(return_value="token-abc")
    return provider


@pytest.fixture
def mock_einstein_client():
    """EinsteinClient double handing out sequential session ids."""
    client = MagicMock()
    counter = {"n": 0}

    async def _create_session(access_token, conversation_id):
        counter["n"] += 1
        return f"session-{counter['n']}"

    client.create_session = AsyncMock(side_effect=_create_session)
    client.send_message = AsyncMock(return_value="Hello from Agentforce")
    client.forget_session = MagicMock()
    return client
