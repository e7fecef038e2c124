# chat_gateway/routers/chat.py
# -*- coding: utf-8 -*-
"""
Local Chat Gateway — chat routers
---------------------------------
HTTP endpoints the browser UI calls.

Flow:
  GET /chat-stream?message=...&mode=...
    -> resolve session id from the `sessionId` cookie (new one if absent)
    -> touch the session, load its history
    -> build_prompt(mode, history, message)
    -> InferenceRelay.stream(prompt), each token forwarded as an SSE frame
    -> on normal completion: persist user + assistant turns, send `done`
    -> on upstream failure: send one `error` frame, persist nothing

  POST /clear
    -> forget the caller's session
"""

from __future__ import annotations

import logging
import re
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from chat_gateway.core.config import settings
from chat_gateway.core.prompts import Mode, build_prompt, resolve_mode
from chat_gateway.core.sse import SSE_HEADERS, relay_event_to_sse
from chat_gateway.models.chat import ClearResponse
from chat_gateway.providers.ollama_stream import InferenceRelay
from chat_gateway.runtime_state import SessionStore, SessionTurn

router = APIRouter(tags=["chat"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_relay(request: Request) -> InferenceRelay:
    return request.app.state.relay


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def session_id_from_cookie(
    cookie_header: Optional[str],
    name: str = settings.session_cookie_name,
) -> Optional[str]:
    """Pull `<name>=<value>` out of a raw Cookie header, or None."""
    match = re.search(rf"{re.escape(name)}=([^;]+)", cookie_header or "")
    if match is None:
        return None
    return match.group(1).strip() or None


def session_cookie(session_id: str, name: str = settings.session_cookie_name) -> str:
    return f"{name}={session_id}; Path=/; SameSite=Lax"


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------


async def relay_to_sse(
    relay: InferenceRelay,
    store: SessionStore,
    session_id: str,
    message: str,
    prompt: str,
) -> AsyncIterator[str]:
    """
    Drive the relay and render every event as an SSE frame.

    Turns are persisted only when the relay finishes normally, so a failed
    or abandoned generation leaves the history untouched.
    """
    async for event in relay.stream(prompt):
        if event.kind == "done":
            store.append(
                session_id,
                [
                    SessionTurn(role="user", text=message),
                    SessionTurn(role="assistant", text=event.text),
                ],
            )
            logger.info(
                "[/chat-stream] session_id=%s reply_chars=%d",
                session_id,
                len(event.text),
            )
        yield relay_event_to_sse(event)


@router.get("/chat-stream")
async def chat_stream(
    request: Request,
    message: str = Query(default=""),
    mode: str = Query(default=Mode.VIRTUAL_ASSISTANT.value),
    store: SessionStore = Depends(get_session_store),
    relay: InferenceRelay = Depends(get_relay),
) -> Response:
    """
    Stream one assistant reply over Server-Sent Events.

    - 400 "Missing message" when `message` is blank.
    - 500 "Stream error" if anything fails before the stream opens.
    """
    try:
        if not message.strip():
            return PlainTextResponse("Missing message", status_code=400)

        session_id = session_id_from_cookie(request.headers.get("cookie"))
        is_new_session = session_id is None
        if session_id is None:
            session_id = store.new_session_id()

        store.touch(session_id)
        history = store.history(session_id)
        prompt = build_prompt(
            mode,
            history,
            message,
            max_turns=settings.max_history_turns,
        )

        logger.info(
            "[/chat-stream] session_id=%s new=%s mode=%s history_turns=%d text=%r",
            session_id,
            is_new_session,
            resolve_mode(mode).value,
            len(history),
            message,
        )

        response = StreamingResponse(
            relay_to_sse(relay, store, session_id, message, prompt),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )
        if is_new_session:
            response.headers.append("set-cookie", session_cookie(session_id))
        return response
    except Exception:  # noqa: BLE001
        logger.exception("Unhandled exception in /chat-stream endpoint")
        return PlainTextResponse("Stream error", status_code=500)


# ---------------------------------------------------------------------------
# Clear
# ---------------------------------------------------------------------------


@router.post("/clear", response_model=ClearResponse)
async def clear_session(
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> ClearResponse:
    """Forget the caller's conversation history."""
    session_id = session_id_from_cookie(request.headers.get("cookie"))
    if session_id is not None:
        store.clear(session_id)
    logger.info("[/clear] session_id=%s", session_id)
    return ClearResponse(ok=True)
