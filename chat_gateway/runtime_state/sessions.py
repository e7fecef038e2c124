# chat_gateway/runtime_state/sessions.py
# -*- coding: utf-8 -*-
"""
Local Chat Gateway — Runtime Session State
------------------------------------------

This module implements the in-memory session store for the gateway.

Purpose
~~~~~~~
- Track per-session conversation history so the browser UI can have
  multi-turn conversations without mixing different tabs/users.
- Expire idle sessions after a fixed TTL.

Design notes
~~~~~~~~~~~~
- Memory only: a process restart loses every session.
- One store object is built at app start and handed to the routers through
  `app.state`, so tests can build their own.
- History is never truncated here; the prompt builder decides how much of it
  is replayed to the model.
"""

from __future__ import annotations

import asyncio
import secrets
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from chat_gateway.utils import get_logger


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

logger = get_logger("chat_gateway.runtime_state")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class SessionTurn(BaseModel):
    """One turn in the conversation history."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    text: str


class SessionData(BaseModel):
    """
    Per-session state.

    Attributes
    ----------
    session_id:
        Opaque token carried in the `sessionId` cookie.
    last_seen:
        Last time a request touched this session (used for expiry).
    history:
        Every turn of the conversation, oldest first.
    """

    session_id: str
    last_seen: datetime = Field(default_factory=_utcnow)
    history: List[SessionTurn] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Session store implementation
# ---------------------------------------------------------------------------


class SessionStore:
    """
    In-memory session store.

    Parameters
    ----------
    ttl_seconds:
        Sessions idle for longer than this are removed by `sweep()`.
    clock:
        Callable returning an aware "now" datetime. Tests pass a fake clock.
    """

    def __init__(
        self,
        ttl_seconds: int = 60 * 60,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or _utcnow
        self._sessions: Dict[str, SessionData] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def new_session_id() -> str:
        """Return a fresh opaque session token."""
        return "s_" + secrets.token_urlsafe(18)

    def resolve(self, session_id: Optional[str]) -> SessionData:
        """
        Return the session for `session_id`.

        The result is a snapshot; changing it never affects the store.
        Unknown or missing ids get an empty, unregistered SessionData; it only
        enters the store once it is touched or appended to.
        """
        if session_id:
            with self._lock:
                session = self._sessions.get(session_id)
                if session is not None:
                    return session.model_copy(deep=True)
        return SessionData(session_id=session_id or "", last_seen=self._clock())

    def history(self, session_id: str) -> List[SessionTurn]:
        """Return a copy of the stored history (empty for unknown ids)."""
        with self._lock:
            session = self._sessions.get(session_id)
            return list(session.history) if session else []

    def touch(self, session_id: str) -> None:
        """Record now as the session's last-seen time."""
        with self._lock:
            self._get_or_create(session_id).last_seen = self._clock()

    def append(self, session_id: str, turns: Iterable[SessionTurn]) -> None:
        """Append one or more turns to the session's history."""
        with self._lock:
            session = self._get_or_create(session_id)
            session.history.extend(turns)

    def clear(self, session_id: str) -> None:
        """Drop the session and its last-seen record entirely."""
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info("[SessionStore] Cleared session %s", session_id)

    def sweep(self) -> int:
        """
        Remove sessions idle for longer than the TTL.

        Returns
        -------
        int
            Number of deleted sessions.
        """
        cutoff = self._clock() - self.ttl
        with self._lock:
            stale = [
                sid
                for sid, sess in self._sessions.items()
                if sess.last_seen < cutoff
            ]
            for sid in stale:
                del self._sessions[sid]

        for sid in stale:
            logger.info("[SessionStore] Expired idle session %s", sid)
        return len(stale)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_or_create(self, session_id: str) -> SessionData:
        session = self._sessions.get(session_id)
        if session is None:
            logger.info("[SessionStore] Creating new session %s", session_id)
            session = SessionData(session_id=session_id, last_seen=self._clock())
            self._sessions[session_id] = session
        return session


# ---------------------------------------------------------------------------
# Background sweeper
# ---------------------------------------------------------------------------


class SessionSweeper:
    """
    Periodically calls `store.sweep()` on the running event loop.

    Started and stopped by the FastAPI lifespan in chat_gateway.main.
    """

    def __init__(self, store: SessionStore, interval_seconds: float) -> None:
        self.store = store
        self.interval = interval_seconds
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("[SessionSweeper] Started (interval=%ss)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[SessionSweeper] Stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                removed = self.store.sweep()
            except Exception:  # noqa: BLE001
                logger.exception("[SessionSweeper] Sweep failed")
                continue
            if removed:
                logger.info("[SessionSweeper] Removed %d idle session(s)", removed)
