# chat_gateway/core/sse.py
# -*- coding: utf-8 -*-
"""
Server-Sent Events framing used by /chat-stream.

Wire format:

    data: {"token": "Hel"}\\n\\n
    event: error\\ndata: {"error": "..."}\\n\\n
    event: done\\ndata: {"done": true}\\n\\n
"""

from __future__ import annotations

import json
from typing import Any, Optional

from chat_gateway.core.types import RelayEvent

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
}


def format_sse(data: Any, event: Optional[str] = None) -> str:
    """Render one SSE frame. `data` is JSON-encoded on a single line."""
    payload = json.dumps(data, ensure_ascii=False)
    if event:
        return f"event: {event}\ndata: {payload}\n\n"
    return f"data: {payload}\n\n"


def relay_event_to_sse(event: RelayEvent) -> str:
    if event.kind == "token":
        return format_sse({"token": event.text})
    if event.kind == "error":
        return format_sse({"error": event.text}, event="error")
    return format_sse({"done": True}, event="done")
