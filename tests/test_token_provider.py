"""Tests for the Salesforce token provider."""

from unittest.mock import AsyncMock

import httpx
import pytest

from agentforce_bot.einstein.errors import CredentialFailure
from agentforce_bot.einstein.token import TokenProvider

TOKEN_URL = "https://login.example.com/services/oauth2/token"


def _response(status_code, **kwargs):
    return httpx.Response(status_code, request=httpx.Request("POST", TOKEN_URL), **kwargs)


@pytest.fixture
def http_client():
    client = AsyncMock(spec=httpx.AsyncClient)
    client.is_closed = False
    return client


@pytest.fixture
def provider(http_client):
    return TokenProvider(
        token_url=TOKEN_URL,
        client_id="client-id",
        client_secret="client-secret",
        http_client=http_client,
    )


class TestGetToken:
    @pytest.mark.asyncio
    async def test_returns_access_token(self, provider, http_client):
        http_client.post = AsyncMock(return_value=_response(
            200,
            json={"access_token": "sf-token", "instance_url": "https://x", "token_type": "Bearer"},
        ))

        assert await provider.get_token() == "sf-token"

        http_client.post.assert_awaited_once_with(
            TOKEN_URL,
            data={
                "grant_type": "client_credentials",
                "client_id": "client-id",
                "client_secret": "client-secret",
            },
        )

    @pytest.mark.asyncio
    async def test_http_error_raises_credential_failure(self, provider, http_client):
        http_client.post = AsyncMock(return_value=_response(
            400,
            json={"error": "invalid_client", "error_description": "bad secret"},
        ))

        with pytest.raises(CredentialFailure) as exc_info:
            await provider.get_token()

        assert exc_info.value.status_code == 400
        assert exc_info.value.details["error"] == "invalid_client"

    @pytest.mark.asyncio
    async def test_transport_error_raises_credential_failure(self, provider, http_client):
        http_client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(CredentialFailure, match="Failed to get Salesforce token"):
            await provider.get_token()

    @pytest.mark.asyncio
    async def test_missing_access_token_raises_credential_failure(self, provider, http_client):
        http_client.post = AsyncMock(return_value=_response(200, json={"token_type": "Bearer"}))

        with pytest.raises(CredentialFailure):
            await provider.get_token()

    @pytest.mark.asyncio
    async def test_non_json_body_raises_credential_failure(self, provider, http_client):
        http_client.post = AsyncMock(return_value=_response(200, text="<html>oops</html>"))

        with pytest.raises(CredentialFailure):
            await provider.get_token()


class TestClose:
    @pytest.mark.asyncio
    async def test_closes_http_client(self, provider, http_client):
        await provider.close()
        http_client.aclose.assert_called_once()

    @pytest.mark.asyncio
    async def test_noop_when_no_client(self):
        provider = TokenProvider(TOKEN_URL, "id", "secret")
        await provider.close()
