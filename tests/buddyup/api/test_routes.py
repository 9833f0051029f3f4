"""Tests for BuddyUp API routes."""

from __future__ import annotations

import time

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from buddyup.api.app import create_app
from buddyup.core.errors import ConfigError
from buddyup.infra.config import BuddyUpConfig

from ...conftest import MockModelClient

TENNIS = {"kind": "direct", "activity": "Tennis", "description": "A tennis partner nearby"}


@pytest.fixture
def model() -> MockModelClient:
    return MockModelClient()


@pytest.fixture
def client(model):
    config = BuddyUpConfig(
        anthropic_api_key="",
        match_synthesis_delay_seconds=0,
        reply_delay_seconds=0,
        seed_demo_data=True,
    )
    app = create_app(config=config, model_client=model)
    with TestClient(app) as c:
        yield c


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


class TestAssistantRoutes:
    def test_get_assistant(self, client):
        resp = client.get("/api/assistant")
        assert resp.status_code == 200
        data = resp.json()
        assert data["thinking"] is False
        assert len(data["messages"]) == 1
        assert data["messages"][0]["sender"] == "assistant"

    def test_send_text(self, client, model):
        model.add_text("What sport do you like?")
        resp = client.post("/api/assistant/messages", json={"text": "Hi!"})
        assert resp.status_code == 200
        bodies = [m["body"] for m in resp.json()["messages"]]
        assert bodies[-2:] == ["Hi!", "What sport do you like?"]

    def test_send_creates_match(self, client, model):
        model.add_tool_call(TENNIS)
        model.add_text("Say hi to your new partner!")
        resp = client.post("/api/assistant/messages", json={"text": "tennis partner please"})
        messages = resp.json()["messages"]
        card = next(m for m in messages if m["kind"] == "match-card")
        match_id = card["match"]["conversation_id"]

        listing = client.get("/api/conversations").json()["conversations"]
        assert listing[0]["conversation_id"] == match_id
        assert listing[0]["unread"] == 1

        nav = client.post(f"/api/matches/{match_id}/open").json()
        assert nav == {"active_tab": "chats", "active_conversation_id": match_id}
        assert client.get(f"/api/conversations/{match_id}").json()["unread"] == 0

    def test_busy_returns_409(self, client):
        client.app.state.service.session.begin_thinking()
        resp = client.post("/api/assistant/messages", json={"text": "again"})
        assert resp.status_code == 409

    def test_missing_text_422(self, client):
        assert client.post("/api/assistant/messages", json={}).status_code == 422


class TestConversationRoutes:
    def test_listing_and_filters(self, client):
        data = client.get("/api/conversations").json()
        assert [c["conversation_id"] for c in data["conversations"]] == ["group-demo", "direct-demo"]
        assert data["active_conversation_id"] is None

        groups = client.get("/api/conversations", params={"kind": "group"}).json()
        assert [c["conversation_id"] for c in groups["conversations"]] == ["group-demo"]

        found = client.get("/api/conversations", params={"q": "jordan"}).json()
        assert [c["conversation_id"] for c in found["conversations"]] == ["direct-demo"]

    def test_bad_kind_422(self, client):
        assert client.get("/api/conversations", params={"kind": "triple"}).status_code == 422

    def test_unread_total(self, client):
        assert client.get("/api/conversations/unread").json() == {"total": 3}
        client.post("/api/conversations/group-demo/select")
        assert client.get("/api/conversations/unread").json() == {"total": 1}

    def test_detail_and_404(self, client):
        detail = client.get("/api/conversations/group-demo").json()
        assert detail["name"] == "Weekend Hikers 🏔️"
        assert detail["messages"][0]["sender_name"] == "Sam"
        assert client.get("/api/conversations/ghost").status_code == 404

    def test_send_message_gets_reply(self, client):
        resp = client.post("/api/conversations/direct-demo/messages", json={"text": "Sunday?"})
        assert resp.status_code == 201
        assert resp.json()["message"]["body"] == "Sunday?"

        def replied() -> bool:
            messages = client.get("/api/conversations/direct-demo").json()["messages"]
            return messages[-1]["sender"] == "counterpart" and len(messages) == 3

        assert _wait_for(replied)

    def test_send_blank_message(self, client):
        resp = client.post("/api/conversations/direct-demo/messages", json={"text": "  "})
        assert resp.status_code == 201
        assert resp.json()["message"] is None

    def test_send_to_unknown_404(self, client):
        resp = client.post("/api/conversations/ghost/messages", json={"text": "hi"})
        assert resp.status_code == 404

    def test_select_and_close(self, client):
        nav = client.post("/api/conversations/direct-demo/select").json()
        assert nav["active_conversation_id"] == "direct-demo"
        assert client.post("/api/conversations/ghost/select").status_code == 404
        nav = client.post("/api/conversations/close").json()
        assert nav["active_conversation_id"] is None


class TestNavigationRoutes:
    def test_tabs(self, client):
        assert client.post("/api/tabs/profile").json()["active_tab"] == "profile"
        assert client.post("/api/tabs/settings").status_code == 422

    def test_open_unknown_match_404(self, client):
        assert client.post("/api/matches/ghost/open").status_code == 404


class TestEventsWebSocket:
    def test_receives_assistant_events(self, client, model):
        with client.websocket_connect("/ws/events") as ws:
            assert _wait_for(lambda: client.app.state.ws_manager.connection_count == 1)
            time.sleep(0.05)
            model.add_text("Hello!")
            client.post("/api/assistant/messages", json={"text": "hey"})

            first = ws.receive_json()
            assert first["event_type"] == "assistant.thinking"
            assert first["data"]["thinking"] is True
            second = ws.receive_json()
            assert second["event_type"] == "assistant.message"
            assert second["data"]["message"]["body"] == "Hello!"

    def test_assistant_channel_receives_assistant_events(self, client, model):
        with client.websocket_connect("/ws/assistant") as ws:
            assert _wait_for(lambda: client.app.state.ws_manager.connection_count == 1)
            time.sleep(0.05)
            model.add_text("Hi there")
            client.post("/api/assistant/messages", json={"text": "hey"})

            first = ws.receive_json()
            assert first["event_type"] == "assistant.thinking"
            assert first["conversation_id"] == "assistant"
            second = ws.receive_json()
            assert second["event_type"] == "assistant.message"
            assert second["data"]["message"]["body"] == "Hi there"

    def test_conversation_channel_receives_replies(self, client):
        with client.websocket_connect("/ws/conversations/direct-demo") as ws:
            assert _wait_for(lambda: client.app.state.ws_manager.connection_count == 1)
            time.sleep(0.05)
            client.post("/api/conversations/direct-demo/messages", json={"text": "Sunday?"})

            event = ws.receive_json()
            assert event["event_type"] == "conversation.reply"
            assert event["conversation_id"] == "direct-demo"

    def test_conversation_channel_rejects_unknown_id(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws/conversations/ghost") as ws:
                ws.receive_json()
        assert exc_info.value.code == 4004
        assert client.app.state.ws_manager.connection_count == 0


class TestAppStartup:
    def test_missing_api_key_fails_startup(self):
        config = BuddyUpConfig(anthropic_api_key="", anthropic_api_keys="")
        with pytest.raises(ConfigError):
            with TestClient(create_app(config=config)):
                pass
