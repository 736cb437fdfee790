"""Resolve a conversation to a usable Einstein agent session."""

from __future__ import annotations

import asyncio
import weakref
from typing import TYPE_CHECKING

import structlog

from agentforce_bot.session.store import SessionStore

if TYPE_CHECKING:
    from agentforce_bot.einstein.client import EinsteinClient

logger = structlog.get_logger()


class SessionResolver:
    """Reuses a cached agent session or creates and records a new one.

    Resolution is serialized per conversation, so concurrent turns for
    the same conversation share a single newly created session.
    """

    def __init__(self, store: SessionStore, client: EinsteinClient) -> None:
        self._store = store
        self._client = client
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    @property
    def store(self) -> SessionStore:
        return self._store

    def _lock_for(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    async def resolve(self, conversation_id: str, access_token: str) -> str:
        """Return a session id for the conversation.

        Raises:
            SessionCreationFailed: when a new session was needed and the
                backend could not create it. Nothing is stored in that case.
        """
        lock = self._lock_for(conversation_id)
        async with lock:
            entry = self._store.get(conversation_id)
            if entry is not None:
                logger.info(
                    "session_reused",
                    conversation_id=conversation_id,
                    session_id=entry.session_id,
                )
                return entry.session_id

            session_id = await self._client.create_session(access_token, conversation_id)
            self._store.put(conversation_id, session_id)
            return session_id

    def invalidate(self, conversation_id: str, session_id: str) -> bool:
        """Forget a dead session so the next resolve creates a new one.

        A session another turn already put in its place is left alone.
        """
        removed = self._store.delete_if(conversation_id, session_id)
        logger.info(
            "session_invalidated",
            conversation_id=conversation_id,
            session_id=session_id,
            removed=removed,
        )
        return removed
