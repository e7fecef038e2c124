import json
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import httpx
import pytest

# Ensure repo root on sys.path for imports from anywhere in tests tree.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")

from chat_gateway.providers.ollama_stream import InferenceRelay  # noqa: E402
from chat_gateway.runtime_state import SessionStore  # noqa: E402

OLLAMA_TEST_URL = "http://ollama.test/api/generate"


class FakeClock:
    """Settable clock for SessionStore."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeOllama:
    """
    httpx.MockTransport handler standing in for Ollama's /api/generate.

    Records every JSON body it receives in `requests`.
    """

    def __init__(
        self,
        lines: Iterable[str] = (),
        status_code: int = 200,
        body: Optional[str] = None,
    ) -> None:
        self.lines = list(lines)
        self.status_code = status_code
        self.body = body
        self.requests: List[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.body is not None:
            content = self.body
        else:
            content = "".join(line + "\n" for line in self.lines)
        return httpx.Response(self.status_code, content=content.encode("utf-8"))

    @property
    def last_prompt(self) -> str:
        return self.requests[-1]["prompt"]


def ndjson(*fragments: str, done: bool = True) -> List[str]:
    """Build Ollama-style NDJSON lines for the given fragments."""
    lines = [json.dumps({"model": "test-model", "response": f, "done": False}) for f in fragments]
    if done:
        lines.append(json.dumps({"model": "test-model", "response": "", "done": True}))
    return lines


def make_relay(handler: Callable[[httpx.Request], httpx.Response]) -> InferenceRelay:
    return InferenceRelay(
        OLLAMA_TEST_URL,
        "test-model",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(ttl_seconds=3600, clock=clock)
