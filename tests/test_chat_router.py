import json

import httpx
import pytest
from fastapi.testclient import TestClient

from chat_gateway.core.prompts import PERSONA_PROMPTS, Mode
from chat_gateway.main import create_app
from chat_gateway.routers.chat import session_cookie, session_id_from_cookie
from chat_gateway.runtime_state import SessionTurn

from conftest import FakeOllama, make_relay, ndjson


def parse_sse(body: str):
    """Split an SSE body into (event, data) tuples."""
    frames = []
    for block in body.split("\n\n"):
        if not block.strip():
            continue
        event = "message"
        data = None
        for line in block.split("\n"):
            if line.startswith("event: "):
                event = line[len("event: "):]
            elif line.startswith("data: "):
                data = json.loads(line[len("data: "):])
        frames.append((event, data))
    return frames


@pytest.fixture
def upstream():
    return FakeOllama(ndjson("Hel", "lo", " world"))


@pytest.fixture
def app(store, upstream):
    return create_app(session_store=store, relay=make_relay(upstream), mount_static=False)


@pytest.fixture
def client(app):
    return TestClient(app)


def test_stream_relays_tokens_and_persists_exchange(client, store, upstream):
    resp = client.get("/chat-stream", params={"message": "Say hello", "mode": "study_helper"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    assert resp.headers["cache-control"] == "no-cache, no-transform"

    assert parse_sse(resp.text) == [
        ("message", {"token": "Hel"}),
        ("message", {"token": "lo"}),
        ("message", {"token": " world"}),
        ("done", {"done": True}),
    ]
    assert resp.text.endswith('event: done\ndata: {"done": true}\n\n')

    session_id = client.cookies.get("sessionId")
    assert session_id
    assert store.history(session_id) == [
        SessionTurn(role="user", text="Say hello"),
        SessionTurn(role="assistant", text="Hello world"),
    ]
    assert upstream.last_prompt.startswith(PERSONA_PROMPTS[Mode.STUDY_HELPER])


def test_new_session_sets_cookie(client):
    resp = client.get("/chat-stream", params={"message": "hi"})
    cookie = resp.headers["set-cookie"]
    assert cookie.startswith("sessionId=s_")
    assert cookie.endswith("; Path=/; SameSite=Lax")


def test_known_session_does_not_reset_cookie(client, store):
    store.touch("s_existing")
    resp = client.get(
        "/chat-stream",
        params={"message": "hi"},
        headers={"Cookie": "theme=dark; sessionId=s_existing"},
    )
    assert "set-cookie" not in resp.headers
    assert len(store.history("s_existing")) == 2


def test_second_request_replays_history(client, upstream):
    client.get("/chat-stream", params={"message": "My name is Ada"})
    client.get("/chat-stream", params={"message": "What is my name?"})

    prompt = upstream.last_prompt
    assert "User: My name is Ada\nAssistant: Hello world\n" in prompt
    assert prompt.endswith("User: What is my name?\nAssistant:")


@pytest.mark.parametrize("message", ["", "   ", None])
def test_blank_message_is_rejected(client, upstream, message):
    params = {} if message is None else {"message": message}
    resp = client.get("/chat-stream", params=params)

    assert resp.status_code == 400
    assert resp.text == "Missing message"
    assert upstream.requests == []


def test_unknown_mode_uses_virtual_assistant(client, upstream):
    client.get("/chat-stream", params={"message": "hi", "mode": "pirate"})
    assert upstream.last_prompt == (
        f"{PERSONA_PROMPTS[Mode.VIRTUAL_ASSISTANT]}\n\nUser: hi\nAssistant:"
    )


def test_upstream_failure_sends_single_error_and_persists_nothing(store):
    upstream = FakeOllama(status_code=500, body="model crashed")
    client = TestClient(create_app(session_store=store, relay=make_relay(upstream), mount_static=False))

    resp = client.get("/chat-stream", params={"message": "hi"})

    assert resp.status_code == 200
    assert parse_sse(resp.text) == [("error", {"error": "model crashed"})]
    session_id = client.cookies.get("sessionId")
    assert store.history(session_id) == []


def test_malformed_upstream_line_is_not_surfaced(store):
    lines = [json.dumps({"response": "A"}), "garbage{", json.dumps({"response": "B"}), json.dumps({"done": True})]
    client = TestClient(create_app(session_store=store, relay=make_relay(FakeOllama(lines)), mount_static=False))

    frames = parse_sse(client.get("/chat-stream", params={"message": "hi"}).text)

    assert frames == [
        ("message", {"token": "A"}),
        ("message", {"token": "B"}),
        ("done", {"done": True}),
    ]


def test_clear_then_stream_starts_with_empty_history(client, upstream, store):
    client.get("/chat-stream", params={"message": "remember me"})
    session_id = client.cookies.get("sessionId")

    resp = client.post("/clear")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert session_id not in store

    client.get("/chat-stream", params={"message": "fresh start"})
    assert upstream.last_prompt == (
        f"{PERSONA_PROMPTS[Mode.VIRTUAL_ASSISTANT]}\n\nUser: fresh start\nAssistant:"
    )


def test_clear_without_cookie_is_acknowledged(store):
    client = TestClient(create_app(session_store=store, relay=make_relay(FakeOllama()), mount_static=False))
    resp = client.post("/clear")
    assert resp.json() == {"ok": True}


def test_two_clients_never_share_history(app, store, upstream):
    alice = TestClient(app)
    bob = TestClient(app)

    alice.get("/chat-stream", params={"message": "alice secret"})
    bob.get("/chat-stream", params={"message": "bob question"})

    assert "alice secret" not in upstream.last_prompt
    assert alice.cookies.get("sessionId") != bob.cookies.get("sessionId")


def test_unexpected_failure_returns_generic_500(store, monkeypatch):
    client = TestClient(create_app(session_store=store, relay=make_relay(FakeOllama()), mount_static=False))

    def boom(session_id):
        raise RuntimeError("store exploded")

    monkeypatch.setattr(store, "touch", boom)
    resp = client.get("/chat-stream", params={"message": "hi"})

    assert resp.status_code == 500
    assert resp.text == "Stream error"


def test_health_reports_model_and_sessions(client, store):
    store.touch("s_a")
    data = client.get("/health").json()

    assert data["status"] == "ok"
    assert data["model"] == "test-model"
    assert data["active_sessions"] == 1


def test_static_ui_is_served():
    client = TestClient(create_app(relay=make_relay(FakeOllama())))
    resp = client.get("/")
    assert resp.status_code == 200
    assert "text/html" in resp.headers["content-type"]


@pytest.mark.parametrize(
    "header, expected",
    [
        ("sessionId=s_abc", "s_abc"),
        ("a=1; sessionId=s_abc; b=2", "s_abc"),
        ("a=1", None),
        ("", None),
        (None, None),
    ],
)
def test_session_id_from_cookie(header, expected):
    assert session_id_from_cookie(header) == expected


def test_session_cookie_format():
    assert session_cookie("s_x") == "sessionId=s_x; Path=/; SameSite=Lax"


def test_lifespan_starts_and_stops_sweeper(store):
    app = create_app(session_store=store, relay=make_relay(FakeOllama()), mount_static=False)
    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        sweeper = app.state.sweeper
        assert sweeper.running
        assert sweeper.store is store

    assert not sweeper.running


def test_create_app_keeps_injected_empty_store_and_relay(store):
    relay = make_relay(FakeOllama())
    app = create_app(session_store=store, relay=relay, mount_static=False)

    assert len(store) == 0
    assert app.state.session_store is store
    assert app.state.relay is relay


def test_transport_failure_mid_stream_persists_nothing(store):
    async def body():
        yield (json.dumps({"response": "Hel"}) + "\n").encode()
        raise httpx.ReadError("connection reset by peer")

    def handler(request):
        return httpx.Response(200, content=body())

    client = TestClient(create_app(session_store=store, relay=make_relay(handler), mount_static=False))
    resp = client.get("/chat-stream", params={"message": "hi"})

    frames = parse_sse(resp.text)
    assert frames[0] == ("message", {"token": "Hel"})
    assert [event for event, _ in frames] == ["message", "error"]
    assert "connection reset by peer" in frames[1][1]["error"]
    assert store.history(client.cookies.get("sessionId")) == []
