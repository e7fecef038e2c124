"""
Runtime state package for the Local Chat Gateway.

This package is responsible for tracking per-session conversation state,
so the browser UI can hold multi-turn conversations without mixing users.

Typical usage (e.g. in the /chat-stream router):

    from chat_gateway.runtime_state import SessionStore, SessionTurn

    store = SessionStore(ttl_seconds=3600)
    store.touch(session_id)
    history = store.history(session_id)
    # ... build the prompt from `history` ...

    store.append(
        session_id,
        [
            SessionTurn(role="user", text=user_text),
            SessionTurn(role="assistant", text=reply_text),
        ],
    )
"""

from .sessions import (
    SessionTurn,
    SessionData,
    SessionStore,
    SessionSweeper,
)

__all__ = [
    "SessionTurn",
    "SessionData",
    "SessionStore",
    "SessionSweeper",
]
