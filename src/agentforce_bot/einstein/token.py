"""Salesforce OAuth token provider using the client credentials flow."""

from __future__ import annotations

import httpx
import structlog
from pydantic import ValidationError

from agentforce_bot.einstein.errors import CredentialFailure
from agentforce_bot.einstein.models import TokenResponse

logger = structlog.get_logger()


def _error_detail(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return response.text


class TokenProvider:
    """Exchanges connected app client credentials for a bearer token.

    Tokens are not cached: every turn fetches a fresh one, and any
    failure is surfaced as CredentialFailure without retrying.
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._http_client = http_client
        self._timeout = timeout

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def get_token(self) -> str:
        client = await self._get_http_client()
        try:
            response = await client.post(
                self._token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                },
            )
            response.raise_for_status()
            token = TokenResponse.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            logger.error(
                "token_request_failed",
                status_code=e.response.status_code,
                detail=detail,
            )
            raise CredentialFailure(
                "Failed to get Salesforce token.",
                status_code=e.response.status_code,
                details=detail,
            ) from e
        except httpx.HTTPError as e:
            logger.error("token_request_failed", error=str(e))
            raise CredentialFailure("Failed to get Salesforce token.", details=str(e)) from e
        except (ValueError, ValidationError) as e:
            logger.error("token_response_invalid", error=str(e))
            raise CredentialFailure("Failed to get Salesforce token.", details=str(e)) from e

        logger.debug("token_acquired", token_type=token.token_type)
        return token.access_token

    async def close(self) -> None:
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
