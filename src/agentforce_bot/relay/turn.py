"""Turn handler: one inbound Teams message to one agent reply."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from agentforce_bot.einstein.errors import EinsteinError, SessionExpired

if TYPE_CHECKING:
    from agentforce_bot.einstein.client import EinsteinClient
    from agentforce_bot.einstein.token import TokenProvider
    from agentforce_bot.session.resolver import SessionResolver

logger = structlog.get_logger()

ERROR_REPLY = "Error communicating with Salesforce Einstein AI."

# First attempt plus one retry on a fresh session.
MAX_ATTEMPTS = 2


@dataclass(slots=True)
class TurnResult:
    """Outcome of a turn. ``reply`` is always safe to show to the user."""

    reply: str
    succeeded: bool
    attempts: int = 0
    error: Exception | None = None


class TurnHandler:
    """Runs token fetch, session resolution and dispatch for one message.

    A SessionExpired failure evicts the stale session and retries once on
    a freshly created one. Every other failure ends the turn. Failures are
    never raised to the caller; they come back as a TurnResult carrying
    the fixed error reply.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        resolver: SessionResolver,
        client: EinsteinClient,
        error_reply: str = ERROR_REPLY,
    ) -> None:
        self._token_provider = token_provider
        self._resolver = resolver
        self._client = client
        self._error_reply = error_reply

    async def handle(self, conversation_id: str, text: str) -> TurnResult:
        log = logger.bind(conversation_id=conversation_id)

        try:
            access_token = await self._token_provider.get_token()
        except Exception as e:
            log.error("turn_failed", stage="token", error=str(e))
            return self._failure(e, attempts=0)

        attempt = 0
        while True:
            attempt += 1
            session_id: str | None = None
            try:
                session_id = await self._resolver.resolve(conversation_id, access_token)
                reply = await self._client.send_message(access_token, session_id, text)
            except SessionExpired as e:
                if attempt < MAX_ATTEMPTS and session_id is not None:
                    log.warning(
                        "session_expired_retry",
                        session_id=session_id,
                        attempt=attempt,
                    )
                    self._resolver.invalidate(conversation_id, session_id)
                    self._client.forget_session(session_id)
                    continue
                log.error(
                    "turn_failed",
                    stage="dispatch",
                    session_id=session_id,
                    attempt=attempt,
                    error=str(e),
                )
                return self._failure(e, attempts=attempt)
            except EinsteinError as e:
                log.error(
                    "turn_failed",
                    stage="dispatch" if session_id else "session",
                    session_id=session_id,
                    attempt=attempt,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                return self._failure(e, attempts=attempt)
            except Exception as e:
                log.exception("turn_failed_unexpected", session_id=session_id, attempt=attempt)
                return self._failure(e, attempts=attempt)

            log.info(
                "turn_completed",
                session_id=session_id,
                attempts=attempt,
                reply_length=len(reply),
            )
            return TurnResult(reply=reply, succeeded=True, attempts=attempt)

    def _failure(self, error: Exception, attempts: int) -> TurnResult:
        return TurnResult(
            reply=self._error_reply,
            succeeded=False,
            attempts=attempts,
            error=error,
        )
