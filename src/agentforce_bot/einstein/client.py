"""Async client for the Salesforce Einstein Agent API."""

from __future__ import annotations

import itertools
from collections.abc import AsyncGenerator, AsyncIterator

import httpx
import structlog
from cachetools import TTLCache
from pydantic import ValidationError

from agentforce_bot.config import Settings
from agentforce_bot.einstein.errors import (
    DispatchFailed,
    MalformedResponse,
    SessionCreationFailed,
    SessionExpired,
)
from agentforce_bot.einstein.models import MessagesResponse, SessionCreated, StreamChunk

logger = structlog.get_logger()

EXTERNAL_SESSION_KEY_PREFIX = "teams-chat-"
_SESSION_NOT_FOUND = "session not found"


def external_session_key(conversation_id: str) -> str:
    """Namespaced key the backend uses to tie a session to a Teams conversation."""
    return f"{EXTERNAL_SESSION_KEY_PREFIX}{conversation_id}"


def _error_detail(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return response.text


def _is_session_not_found(status_code: int, body: str) -> bool:
    return status_code == 404 or _SESSION_NOT_FOUND in body.lower()


class SequenceCounter:
    """Hands out strictly increasing message sequence ids per session.

    Counters expire together with the sessions they belong to, so memory
    stays bounded by the number of live sessions.
    """

    def __init__(self, ttl: float, maxsize: int = 10000) -> None:
        self._counters: TTLCache[str, itertools.count] = TTLCache(maxsize=maxsize, ttl=ttl)

    def next(self, session_id: str) -> int:
        counter = self._counters.get(session_id)
        if counter is None:
            counter = itertools.count(1)
            self._counters[session_id] = counter
        return next(counter)

    def forget(self, session_id: str) -> None:
        self._counters.pop(session_id, None)


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncGenerator[StreamChunk, None]:
    """Group server-sent event lines into StreamChunk objects."""
    event_name = "message"
    data_lines: list[str] = []

    async for raw_line in lines:
        line = raw_line.rstrip("\r")
        if line == "":
            if data_lines:
                yield StreamChunk(data="\n".join(data_lines), event=event_name)
            event_name = "message"
            data_lines = []
            continue
        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_name = value or "message"
        elif field == "data":
            data_lines.append(value)

    if data_lines:
        yield StreamChunk(data="\n".join(data_lines), event=event_name)


class EinsteinClient:
    """Async client for Einstein Agent API sessions and messages.

    A single httpx.AsyncClient is shared for all calls. Session ids are
    treated as opaque strings and are only ever interpolated into URLs.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
        sequence: SequenceCounter | None = None,
    ) -> None:
        self._session_url = settings.sf_session_url
        self._instance_url = settings.sf_instance_url
        self._message_url = settings.sf_message_url.rstrip("/")
        self._timeout = settings.sf_timeout
        self._http_client = http_client
        self._sequence = sequence or SequenceCounter(
            ttl=settings.session_timeout_seconds,
            maxsize=settings.session_counter_maxsize,
        )

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    @staticmethod
    def _auth_headers(access_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    def _message_body(self, session_id: str, text: str) -> dict:
        return {
            "message": {
                "sequenceId": self._sequence.next(session_id),
                "type": "Text",
                "text": text,
            },
            "variables": [],
        }

    async def create_session(self, access_token: str, conversation_id: str) -> str:
        """Start a new agent session scoped to a Teams conversation.

        Returns:
            The backend session id.

        Raises:
            SessionCreationFailed: on any transport, HTTP, or payload error.
        """
        client = await self._get_http_client()
        payload = {
            "externalSessionKey": external_session_key(conversation_id),
            "instanceConfig": {"endpoint": self._instance_url},
            "streamingCapabilities": {"chunkTypes": ["Text"]},
            "bypassUser": True,
        }

        try:
            response = await client.post(
                self._session_url,
                json=payload,
                headers=self._auth_headers(access_token),
            )
            response.raise_for_status()
            created = SessionCreated.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            logger.error(
                "session_create_failed",
                conversation_id=conversation_id,
                status_code=e.response.status_code,
                detail=detail,
            )
            raise SessionCreationFailed(
                "Failed to create Einstein AI session.",
                status_code=e.response.status_code,
                details=detail,
            ) from e
        except httpx.HTTPError as e:
            logger.error("session_create_failed", conversation_id=conversation_id, error=str(e))
            raise SessionCreationFailed(
                "Failed to create Einstein AI session.", details=str(e)
            ) from e
        except ValueError as e:
            logger.error("session_create_invalid_response", conversation_id=conversation_id, error=str(e))
            raise SessionCreationFailed(
                "Failed to create Einstein AI session.", details=str(e)
            ) from e

        logger.info(
            "session_created",
            conversation_id=conversation_id,
            session_id=created.session_id,
        )
        return created.session_id

    async def send_message(self, access_token: str, session_id: str, text: str) -> str:
        """Send a user utterance and return the first reply message.

        Raises:
            SessionExpired: the backend does not know session_id.
            DispatchFailed: any other transport or HTTP failure.
            MalformedResponse: success status without a reply message.
        """
        client = await self._get_http_client()

        try:
            response = await client.post(
                f"{self._message_url}/{session_id}/messages",
                json=self._message_body(session_id, text),
                headers=self._auth_headers(access_token),
            )
        except httpx.HTTPError as e:
            logger.error("message_send_failed", session_id=session_id, error=str(e))
            raise DispatchFailed(
                "Failed to send message to Einstein AI.", details=str(e)
            ) from e

        if response.is_error:
            self._raise_for_dispatch(session_id, response.status_code, response.text)

        try:
            parsed = MessagesResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error("message_response_malformed", session_id=session_id, error=str(e))
            raise MalformedResponse(
                "Einstein AI response did not contain a message.",
                status_code=response.status_code,
                details=response.text,
            ) from e

        reply = parsed.messages[0].message
        logger.info(
            "message_reply_received",
            session_id=session_id,
            reply_length=len(reply),
            message_count=len(parsed.messages),
        )
        return reply

    async def stream_message(
        self, access_token: str, session_id: str, text: str
    ) -> AsyncGenerator[StreamChunk, None]:
        """Send a user utterance and yield the agent's streamed events.

        Error statuses are reported before any chunk is yielded, using the
        same SessionExpired / DispatchFailed split as send_message.
        """
        client = await self._get_http_client()
        headers = {
            **self._auth_headers(access_token),
            "Accept": "text/event-stream",
            "Content-Type": "application/json",
        }

        logger.info("message_stream_start", session_id=session_id)
        chunk_count = 0

        try:
            async with client.stream(
                "POST",
                f"{self._message_url}/{session_id}/messages/stream",
                json=self._message_body(session_id, text),
                headers=headers,
            ) as response:
                if response.is_error:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    self._raise_for_dispatch(session_id, response.status_code, body)

                async for chunk in iter_sse_events(response.aiter_lines()):
                    chunk_count += 1
                    logger.debug(
                        "message_stream_chunk",
                        session_id=session_id,
                        chunk_number=chunk_count,
                        event=chunk.event,
                    )
                    yield chunk
        except httpx.HTTPError as e:
            logger.error(
                "message_stream_failed",
                session_id=session_id,
                chunks_received=chunk_count,
                error=str(e),
            )
            raise DispatchFailed(
                "Einstein AI stream failed.", details=str(e)
            ) from e

        logger.info(
            "message_stream_complete",
            session_id=session_id,
            total_chunks_received=chunk_count,
        )

    def forget_session(self, session_id: str) -> None:
        """Drop local per-session bookkeeping for a session known to be dead."""
        self._sequence.forget(session_id)

    def _raise_for_dispatch(self, session_id: str, status_code: int, body: str) -> None:
        if _is_session_not_found(status_code, body):
            logger.warning("session_not_found", session_id=session_id, status_code=status_code)
            raise SessionExpired(
                "Einstein AI session expired.", status_code=status_code, details=body
            )
        logger.error(
            "message_send_failed",
            session_id=session_id,
            status_code=status_code,
            detail=body,
        )
        raise DispatchFailed(
            "Failed to send message to Einstein AI.", status_code=status_code, details=body
        )

    async def close(self) -> None:
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
