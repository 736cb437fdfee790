"""Session store mapping Teams conversations to Einstein agent sessions."""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class SessionEntry:
    """An agent session recorded for one conversation."""

    session_id: str
    last_touch: float


class SessionStore:
    """Maps conversation IDs to agent session IDs with a fixed expiry window.

    An entry is reusable while ``now - last_touch < timeout``. Lookups
    never refresh ``last_touch``, so a session expires a fixed time after
    it was created no matter how often it is used. Expired entries are
    invisible to ``get`` and are physically removed by ``sweep``.
    """

    def __init__(self, timeout: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._timeout = timeout
        self._clock = clock
        self._entries: dict[str, SessionEntry] = {}
        self._lock = threading.Lock()

    @property
    def timeout(self) -> float:
        return self._timeout

    def now(self) -> float:
        return self._clock()

    def get(self, conversation_id: str) -> SessionEntry | None:
        """Get the live entry for a conversation, or None if missing/expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(conversation_id)
        if entry is None or now - entry.last_touch >= self._timeout:
            return None
        return entry

    def put(self, conversation_id: str, session_id: str, now: float | None = None) -> SessionEntry:
        """Store (or replace) the session for a conversation."""
        entry = SessionEntry(
            session_id=session_id,
            last_touch=self._clock() if now is None else now,
        )
        with self._lock:
            self._entries[conversation_id] = entry
        return entry

    def delete(self, conversation_id: str) -> None:
        """Remove a conversation's session. Missing keys are ignored."""
        with self._lock:
            self._entries.pop(conversation_id, None)

    def delete_if(self, conversation_id: str, session_id: str) -> bool:
        """Remove the conversation's entry only if it still holds ``session_id``.

        Returns True when an entry was removed.
        """
        with self._lock:
            entry = self._entries.get(conversation_id)
            if entry is None or entry.session_id != session_id:
                return False
            del self._entries[conversation_id]
            return True

    def sweep(self, now: float | None = None) -> int:
        """Remove every entry older than the timeout and return how many went."""
        if now is None:
            now = self._clock()
        with self._lock:
            expired = [
                conversation_id
                for conversation_id, entry in self._entries.items()
                if now - entry.last_touch > self._timeout
            ]
            for conversation_id in expired:
                del self._entries[conversation_id]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SessionSweeper:
    """Background task that periodically sweeps a SessionStore."""

    def __init__(self, store: SessionStore, interval: float) -> None:
        self._store = store
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("session_sweeper_started", interval_seconds=self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("session_sweeper_stopped")

    def sweep_once(self) -> int:
        removed = self._store.sweep()
        if removed:
            logger.info("sessions_swept", removed=removed, remaining=len(self._store))
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.sweep_once()
            except Exception:
                logger.exception("session_sweep_failed")
