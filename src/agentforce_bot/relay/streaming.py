"""Relay an agent message stream as server-sent events."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from agentforce_bot.einstein.errors import EinsteinError, SessionExpired

if TYPE_CHECKING:
    from agentforce_bot.einstein.client import EinsteinClient
    from agentforce_bot.einstein.token import TokenProvider
    from agentforce_bot.session.resolver import SessionResolver

logger = structlog.get_logger()

DEFAULT_CONVERSATION_ID = "default-conversation"


@dataclass(slots=True)
class StreamEvent:
    """One outbound server-sent event."""

    event: str | None = None
    data: str | None = None

    @classmethod
    def chunk(cls, data: str) -> StreamEvent:
        return cls(data=data)

    @classmethod
    def done(cls) -> StreamEvent:
        return cls(event="done")

    @classmethod
    def error(cls, detail: Any) -> StreamEvent:
        return cls(event="error", data=json.dumps(detail, default=str))

    @property
    def is_terminal(self) -> bool:
        return self.event in ("done", "error")

    def encode(self) -> bytes:
        lines: list[str] = []
        if self.event:
            lines.append(f"event: {self.event}")
        if self.data is not None:
            lines.extend(f"data: {line}" for line in self.data.split("\n"))
        return ("\n".join(lines) + "\n\n").encode("utf-8")


def error_detail(error: Exception) -> Any:
    """Structured detail for an error event: backend body when we have one."""
    if isinstance(error, EinsteinError):
        return error.details if error.details is not None else error.message
    return str(error)


class StreamRelay:
    """Resolves a session and relays the agent stream for one message.

    ``events`` always finishes with exactly one terminal event: ``done``
    after the backend stream ends, or ``error`` on any failure. No chunk
    is yielded after an error.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        resolver: SessionResolver,
        client: EinsteinClient,
    ) -> None:
        self._token_provider = token_provider
        self._resolver = resolver
        self._client = client

    async def events(self, conversation_id: str, message: str) -> AsyncGenerator[StreamEvent, None]:
        log = logger.bind(conversation_id=conversation_id)
        relayed = 0

        try:
            access_token = await self._token_provider.get_token()
            session_id = await self._resolve(conversation_id, access_token)

            try:
                async for chunk in self._client.stream_message(access_token, session_id, message):
                    relayed += 1
                    yield StreamEvent.chunk(chunk.data)
            except SessionExpired:
                if relayed:
                    raise
                log.warning("stream_session_expired", session_id=session_id)
                self._resolver.invalidate(conversation_id, session_id)
                self._client.forget_session(session_id)
                session_id = await self._resolver.resolve(conversation_id, access_token)
                async for chunk in self._client.stream_message(access_token, session_id, message):
                    relayed += 1
                    yield StreamEvent.chunk(chunk.data)
        except Exception as e:
            log.error(
                "stream_error",
                chunks_relayed=relayed,
                error_type=type(e).__name__,
                error=str(e),
            )
            yield StreamEvent.error(error_detail(e))
            return

        log.info("stream_done", chunks_relayed=relayed)
        yield StreamEvent.done()

    async def _resolve(self, conversation_id: str, access_token: str) -> str:
        try:
            return await self._resolver.resolve(conversation_id, access_token)
        except EinsteinError as e:
            logger.warning(
                "stream_session_resolve_retry",
                conversation_id=conversation_id,
                error=str(e),
            )
            return await self._resolver.resolve(conversation_id, access_token)
