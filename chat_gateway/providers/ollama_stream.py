# chat_gateway/providers/ollama_stream.py
# -*- coding: utf-8 -*-
"""
Local Chat Gateway — Inference relay (Ollama streaming /api/generate)
----------------------------------------------------------------------
POSTs a prompt to Ollama, reads the NDJSON body line by line and turns it
into RelayEvents: one `token` per fragment, then a single `done` or `error`.
"""

from __future__ import annotations

import json
import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import httpx

from chat_gateway.core.types import RelayEvent
from chat_gateway.utils import Stopwatch

logger = logging.getLogger(__name__)

GENERIC_UPSTREAM_ERROR = "Ollama error"


class InferenceRelayError(Exception):
    """Raised when the upstream generation cannot be started or read."""


# ---------------------------------------------------------------------------
# NDJSON parsing
# ---------------------------------------------------------------------------

def parse_ndjson_line(line: str) -> Tuple[Optional[str], bool]:
    """
    Parse one line of Ollama's streamed body.

    Returns
    -------
    (fragment, done):
        fragment is the non-empty `response` text carried by the line, or None.
        done is True when the object carries `"done": true`.

    Blank lines, invalid JSON and non-object JSON are not errors; they yield
    (None, False) and the caller simply moves on.
    """
    line = line.strip()
    if not line:
        return None, False

    try:
        obj = json.loads(line)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed NDJSON line: %r", line[:200])
        return None, False

    if not isinstance(obj, dict):
        return None, False

    fragment = obj.get("response")
    if not isinstance(fragment, str) or not fragment:
        fragment = None

    return fragment, bool(obj.get("done"))


# ---------------------------------------------------------------------------
# Relay
# ---------------------------------------------------------------------------

class InferenceRelay:
    """
    Forwards a prompt to Ollama and relays the generated tokens.

    Parameters
    ----------
    url:
        Ollama generate endpoint, e.g. "http://localhost:11434/api/generate".
    model:
        Ollama model name, e.g. "llama3.2:3b".
    transport:
        Optional httpx transport. Tests pass an httpx.MockTransport here.

    Usage
    -----
        relay = InferenceRelay(settings.ollama_url, settings.ollama_model)
        async for event in relay.stream(prompt):
            if event.kind == "token":
                ...               # forward to the client immediately
            elif event.kind == "done":
                reply = event.text  # trimmed full reply
            else:
                ...               # single terminal error, nothing else follows
    """

    def __init__(
        self,
        url: str,
        model: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.model = model
        self._transport = transport

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "prompt": prompt,
            "stream": True,
        }

    async def stream(self, prompt: str) -> AsyncIterator[RelayEvent]:
        """
        Yield token events in upstream order, then exactly one terminal event:
        either `done` (with the trimmed full reply) or `error`.
        """
        parts: List[str] = []

        try:
            with Stopwatch("Ollama stream") as watch:
                async with aclosing(self._iter_fragments(prompt)) as fragments:
                    async for fragment in fragments:
                        parts.append(fragment)
                        yield RelayEvent.token(fragment)
        except InferenceRelayError as exc:
            logger.warning("Inference relay failed: %s", exc)
            yield RelayEvent.error(str(exc) or GENERIC_UPSTREAM_ERROR)
            return

        full_text = "".join(parts).strip()
        logger.info(
            "Ollama stream finished: model=%s tokens=%d chars=%d in %.3f s",
            self.model,
            len(parts),
            len(full_text),
            watch.elapsed,
        )
        yield RelayEvent.done(full_text)

    async def _iter_fragments(self, prompt: str) -> AsyncIterator[str]:
        """
        Open the upstream stream and yield each `response` fragment.

        The per-line iterator re-assembles lines split across network chunks.
        Reading stops at the first `"done": true` object or when the upstream
        closes the connection, whichever comes first.

        Raises
        ------
        InferenceRelayError
            On connection failure, non-success status, or a transport error
            while reading the body.
        """
        payload = self.build_payload(prompt)

        try:
            async with httpx.AsyncClient(timeout=None, transport=self._transport) as client:
                async with client.stream("POST", self.url, json=payload) as resp:
                    if not resp.is_success:
                        await resp.aread()
                        text = resp.text.strip()
                        raise InferenceRelayError(text or GENERIC_UPSTREAM_ERROR)

                    async for line in resp.aiter_lines():
                        fragment, done = parse_ndjson_line(line)
                        if fragment is not None:
                            yield fragment
                        if done:
                            break
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise InferenceRelayError(f"Ollama HTTP error: {exc}") from exc


# ---------------------------------------------------------------------------
# Self-test
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    """
    Minimal manual self-test (needs Ollama running locally):

        python3 -m chat_gateway.providers.ollama_stream
    """
    import asyncio

    from chat_gateway.core.config import settings

    async def _demo() -> None:
        relay = InferenceRelay(settings.ollama_url, settings.ollama_model)
        async for event in relay.stream("User: Say hello in five words.\nAssistant:"):
            if event.kind == "token":
                print(event.text, end="", flush=True)
            else:
                print(f"\n[{event.kind}] {event.text!r}")

    print("Local Chat Gateway — ollama_stream.py self-test\n")
    print(f"settings.ollama_url  : {settings.ollama_url!r}")
    print(f"settings.ollama_model: {settings.ollama_model!r}\n")
    asyncio.run(_demo())
