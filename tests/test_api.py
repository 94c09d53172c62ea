"""Tests for the FastAPI application endpoints.

This module contains integration tests for the StyleChat API endpoints:
health and metrics, chat history, catalog search and the chat WebSocket.
The app is built with in-memory stores and fake providers; the lifespan is
not entered, so no settings-driven services are created.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from stylechat.api.deps import build_services
from stylechat.api.main import create_app
from stylechat.assistant.models import SENDER_ASSISTANT, SENDER_USER, ChatTurn
from stylechat.assistant.prompts import WELCOME_MESSAGE
from stylechat.assistant.throttle import RequestThrottle
from stylechat.config import Settings

from conftest import FakeEmbedder, FakeLanguageModel, product_doc


def _client(catalog, chat_store, embedder=None, llm=None):
    services = build_services(
        Settings(STORE_BACKEND="memory", FRONTEND_URL="https://shop.example.com/"),
        catalog=catalog,
        chat_store=chat_store,
        embedder=embedder or FakeEmbedder(vector=[1.0, 0.0]),
        llm=llm or FakeLanguageModel(),
        throttle=RequestThrottle(0),
    )
    return TestClient(create_app(services))


@pytest.fixture
def client(catalog, chat_store):
    return _client(catalog, chat_store)


def test_ping_endpoint(client):
    """Test that the /ping endpoint returns correct status and JSON."""
    response = client.get("/ping")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_metrics_endpoint(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    data = response.json()
    assert data["llm_call_count"] == 0
    assert data["fallbacks"] == {}


def test_request_id_header(client):
    response = client.get("/ping")

    assert "X-Request-ID" in response.headers


# ===== chat history =====


def test_chat_history_endpoint(client, chat_store):
    """Test that stored turns come back oldest first with their fields."""

    async def seed():
        await chat_store.append(ChatTurn(session_id="s1", user_id="u1", sender=SENDER_USER, message="hi"))
        await chat_store.append(
            ChatTurn(session_id="s1", sender=SENDER_ASSISTANT, message="hello", product_ids=["1"])
        )
        await chat_store.append(ChatTurn(session_id="s2", user_id="u1", sender=SENDER_USER, message="other"))

    asyncio.run(seed())

    response = client.get("/chat/history/s1")

    assert response.status_code == 200
    data = response.json()
    assert data["session_id"] == "s1"
    assert data["count"] == 2
    assert [m["message"] for m in data["messages"]] == ["hi", "hello"]
    assert data["messages"][1]["product_ids"] == ["1"]
    assert data["messages"][0]["timestamp"] is not None


def test_chat_history_limit_validation(client):
    response = client.get("/chat/history/s1?limit=0")

    assert response.status_code == 422


def test_user_sessions_endpoint(client, chat_store):
    async def seed():
        await chat_store.append(ChatTurn(session_id="s1", user_id="u1", sender=SENDER_USER, message="one"))
        await chat_store.append(ChatTurn(session_id="s2", user_id="u1", sender=SENDER_USER, message="two"))

    asyncio.run(seed())

    response = client.get("/chat/sessions?user_id=u1")

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert [s["session_id"] for s in data["sessions"]] == ["s2", "s1"]


def test_user_sessions_requires_user_id(client):
    response = client.get("/chat/sessions")

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "User ID is required"
    assert data["error_type"] == "ValidationError"


# ===== catalog search =====


def test_catalog_search(client):
    response = client.get("/catalog/search?q=red%20dress&k=2")

    assert response.status_code == 200
    data = response.json()
    assert data["query"] == "red dress"
    results = data["results"]
    assert [r["id"] for r in results] == ["1", "2"]
    assert results[0]["score"] == pytest.approx(1.0)
    assert results[0]["url"] == "https://shop.example.com/product/1"
    assert results[1]["score"] == pytest.approx(0.0)


def test_catalog_search_blank_query(client):
    response = client.get("/catalog/search?q=%20%20")

    assert response.status_code == 400
    assert response.json()["error"] == "Query text is required"


def test_catalog_search_invalid_k(client):
    response = client.get("/catalog/search?q=dress&k=0")

    assert response.status_code == 422


def test_catalog_search_provider_failure(catalog, chat_store):
    """Test that an embedding outage is a 502 here, not an empty result."""
    client = _client(catalog, chat_store, embedder=FakeEmbedder(error=ConnectionError("down")))

    response = client.get("/catalog/search?q=dress")

    assert response.status_code == 502
    data = response.json()
    assert data["error_type"] == "UpstreamProviderError"
    assert data["details"]["error_type"] == "ConnectionError"


def test_catalog_search_dimension_mismatch(catalog, chat_store):
    catalog.add(product_doc("4", "Odd Item", embedding=[1.0, 0.0, 0.0]))
    client = _client(catalog, chat_store)

    response = client.get("/catalog/search?q=dress")

    assert response.status_code == 500
    data = response.json()
    assert data["error_type"] == "DimensionMismatchError"
    assert data["details"] == {"item_id": "4", "expected": 2, "actual": 3}


# ===== WebSocket =====


def test_websocket_chat_flow(client, chat_store):
    """Test join, welcome, and a full message round trip over the socket."""
    with client.websocket_connect("/ws/chat") as ws:
        ws.send_json({"event": "join_chat", "session_id": "s1", "user_id": "u1"})

        history = ws.receive_json()
        assert history == {"event": "chat_history", "data": {"messages": []}}
        welcome = ws.receive_json()
        assert welcome["event"] == "assistant_message"
        assert welcome["data"]["message"] == WELCOME_MESSAGE

        ws.send_json(
            {"event": "user_message", "session_id": "s1", "user_id": "u1", "message": "red dress"}
        )

        frames = [ws.receive_json() for _ in range(4)]

    assert [f["event"] for f in frames] == [
        "message_sent",
        "assistant_typing",
        "assistant_typing",
        "assistant_message",
    ]
    assert frames[0]["data"]["message"] == "red dress"
    assert frames[0]["data"]["message_id"]
    assert [f["data"] for f in frames[1:3]] == [{"is_typing": True}, {"is_typing": False}]
    answer = frames[3]["data"]
    assert answer["message"] == "Check out the Red Dress!"
    assert [p["id"] for p in answer["products"]] == ["1", "2"]
    assert len(chat_store.turns) == 3


def test_websocket_rejects_bad_frames(client):
    with client.websocket_connect("/ws/chat") as ws:
        ws.send_text("not json")
        invalid = ws.receive_json()
        ws.send_json({"event": "dance"})
        unknown = ws.receive_json()
        ws.send_json({"event": "join_chat"})
        missing = ws.receive_json()

    assert invalid == {"event": "error", "data": {"message": "Invalid JSON frame"}}
    assert unknown == {"event": "error", "data": {"message": "Unknown event: dance"}}
    assert missing == {"event": "error", "data": {"message": "Session ID is required"}}


def test_websocket_rejects_non_text_fields(client):
    """Test that wrongly typed fields get an error and the socket stays usable."""
    with client.websocket_connect("/ws/chat") as ws:
        ws.send_json({"event": "typing", "session_id": {"a": 1}, "is_typing": True})
        bad_session = ws.receive_json()
        ws.send_json({"event": "user_message", "session_id": "s1", "message": 123})
        bad_message = ws.receive_json()
        ws.send_json({"event": "join_chat", "session_id": "s1"})
        history = ws.receive_json()

    assert bad_session == {"event": "error", "data": {"message": "Fields must be strings: session_id"}}
    assert bad_message == {"event": "error", "data": {"message": "Fields must be strings: message"}}
    assert history["event"] == "chat_history"
