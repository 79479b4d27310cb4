"""End-to-end tests for the /voice WebSocket endpoint and HTTP routes."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, List
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from conftest import FakeEntryStore
from dal.usage_dal import usage_day
from main import create_app
from models.usage_models import UsageRecord
from services.auth.token_verifier import StaticTokenVerifier
from utils.settings import RelaySettings

SETTINGS = RelaySettings(openai_api_key="sk-test", sweep_interval_seconds=3600)


class ScriptedUpstream:
    """Upstream socket that announces session.created and then waits to be closed."""

    def __init__(self) -> None:
        self.sent: List[Dict[str, Any]] = []
        self._events = [json.dumps({"type": "session.created"})]
        self.closed = asyncio.Event()

    async def send(self, message: str) -> None:
        self.sent.append(json.loads(message))

    async def close(self) -> None:
        self.closed.set()

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        if self._events:
            return self._events.pop(0)
        await self.closed.wait()
        raise StopAsyncIteration


class ScriptedConnector:
    def __init__(self, failures: int = 0) -> None:
        self.upstreams: List[ScriptedUpstream] = []
        self.calls = 0
        self.failures = failures

    async def __call__(self, url: str, headers: Dict[str, str]) -> ScriptedUpstream:
        self.calls += 1
        if self.calls <= self.failures:
            raise OSError("connection refused")
        upstream = ScriptedUpstream()
        self.upstreams.append(upstream)
        return upstream


class RecordingUsageDAL:
    """Ledger with a fixed realtime total that records every charge."""

    def __init__(self, realtime_minutes: float = 0.0) -> None:
        self.realtime_minutes = realtime_minutes
        self.increments: List[tuple] = []

    async def get_usage(self, user_id: str, day: str | None = None) -> UsageRecord:
        return UsageRecord(user_id=user_id, usage_date=day or usage_day(), realtime_minutes=self.realtime_minutes)

    async def increment(self, user_id, mode, minutes, cost, day=None) -> UsageRecord:
        self.increments.append((user_id, mode, minutes, cost))
        return await self.get_usage(user_id, day)


@pytest.fixture
def entry_store() -> FakeEntryStore:
    return FakeEntryStore()


@pytest.fixture
def connector() -> ScriptedConnector:
    return ScriptedConnector()


@pytest.fixture
def client(tmp_path, entry_store, connector):
    app = create_app(
        SETTINGS,
        token_verifier=StaticTokenVerifier({"good-token": "user-1"}),
        entry_store=entry_store,
        openai_client=MagicMock(),
        realtime_connector=connector,
        database_dir=str(tmp_path),
    )
    with TestClient(app) as test_client:
        yield test_client


def _receive_until(ws, message_type: str, limit: int = 10) -> Dict[str, Any]:
    for _ in range(limit):
        message = ws.receive_json()
        if message["type"] == message_type:
            return message
    raise AssertionError(f"no {message_type} message received")


def _wait_until(client: TestClient, condition: Callable[[], bool], attempts: int = 100) -> None:
    """Let the app loop run until ``condition`` holds."""
    for _ in range(attempts):
        if condition():
            return
        client.portal.call(asyncio.sleep, 0.01)
    raise AssertionError("condition never held")


def _make_app(tmp_path, connector: ScriptedConnector, **overrides: Any):
    overrides.setdefault("token_verifier", StaticTokenVerifier({"good-token": "user-1"}))
    overrides.setdefault("entry_store", FakeEntryStore())
    return create_app(
        SETTINGS,
        openai_client=MagicMock(),
        realtime_connector=connector,
        database_dir=str(tmp_path),
        **overrides,
    )


class TestHttpEndpoints:
    def test_root_banner(self, client: TestClient) -> None:
        assert client.get("/").json() == {"status": "ok", "service": "journal-voice-relay"}

    def test_health(self, client: TestClient) -> None:
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["relay_ready"] is True
        assert body["active_sessions"] == 0


class TestAuthentication:
    def test_missing_token_closes_4001(self, client: TestClient) -> None:
        with client.websocket_connect("/voice") as ws:
            with pytest.raises(WebSocketDisconnect) as excinfo:
                ws.receive_json()
        assert excinfo.value.code == 4001

    def test_unknown_token_closes_4002(self, client: TestClient) -> None:
        with client.websocket_connect("/voice?token=forged") as ws:
            with pytest.raises(WebSocketDisconnect) as excinfo:
                ws.receive_json()
        assert excinfo.value.code == 4002

    def test_failed_refresh_closes_4002(self, client: TestClient) -> None:
        with client.websocket_connect("/voice?token=good-token") as ws:
            ws.send_json({"type": "token_refresh", "token": "expired"})
            with pytest.raises(WebSocketDisconnect) as excinfo:
                ws.receive_json()
        assert excinfo.value.code == 4002


class TestMessages:
    def test_invalid_message_is_recoverable(self, client: TestClient) -> None:
        with client.websocket_connect("/voice?token=good-token") as ws:
            ws.send_text("{not json")
            assert ws.receive_json() == {
                "type": "error",
                "code": "INVALID_MESSAGE",
                "message": "Invalid message format",
                "recoverable": True,
            }
            ws.send_json({"type": "end_session"})
            assert ws.receive_json()["code"] == "NO_SESSION"

    def test_audio_without_session(self, client: TestClient) -> None:
        with client.websocket_connect("/voice?token=good-token") as ws:
            ws.send_json({"type": "audio_chunk", "data": "AAAA"})
            error = ws.receive_json()
        assert error["code"] == "NO_SESSION"
        assert error["recoverable"] is True

    def test_realtime_free_session_ready(self, client: TestClient, connector: ScriptedConnector) -> None:
        with client.websocket_connect("/voice?token=good-token") as ws:
            ws.send_json({"type": "start_session", "mode": "realtime"})
            ready = ws.receive_json()

        assert ready["type"] == "session_ready"
        assert ready["mode"] == "realtime"
        assert connector.upstreams[0].sent[0]["type"] == "session.update"

    def test_standard_session_saves_entry(self, client: TestClient, entry_store: FakeEntryStore) -> None:
        with client.websocket_connect("/voice?token=good-token") as ws:
            ws.send_json({"type": "start_session", "mode": "standard"})
            assert ws.receive_json()["mode"] == "standard"
            opening = _receive_until(ws, "transcript_delta")
            assert opening["delta"].startswith("Assistant: ")

            ws.send_json({"type": "end_session", "saveOptions": {"save": True}})
            saved = _receive_until(ws, "session_saved")

        assert saved == {"type": "session_saved", "entryId": "entry-1", "success": True}
        assert entry_store.created[0]["user_id"] == "user-1"
        assert entry_store.created[0]["tags"] == ["@voice"]
        assert entry_store.created[0]["text"].startswith("Assistant: ")


def test_usage_limit_blocks_realtime(tmp_path, connector: ScriptedConnector) -> None:
    usage_dal = RecordingUsageDAL(realtime_minutes=10.0)
    app = create_app(
        SETTINGS,
        token_verifier=StaticTokenVerifier({"good-token": "user-1"}),
        usage_dal=usage_dal,
        entry_store=FakeEntryStore(),
        openai_client=MagicMock(),
        realtime_connector=connector,
        database_dir=str(tmp_path),
    )
    with TestClient(app) as client:
        with client.websocket_connect("/voice?token=good-token") as ws:
            ws.send_json({"type": "start_session", "mode": "realtime", "sessionType": "stress_release"})
            limit = ws.receive_json()

    assert limit["type"] == "usage_limit"
    assert limit["limitType"] == "realtime_minutes"
    assert connector.upstreams == []
    assert usage_dal.increments == []


class RefreshOutageVerifier(StaticTokenVerifier):
    """Accepts the connect token but errors while checking a refreshed one."""

    async def verify(self, token: str):
        if token == "refreshed-token":
            raise RuntimeError("identity provider unavailable")
        return await super().verify(token)


def test_refresh_verifier_error_closes_4002(tmp_path, connector: ScriptedConnector) -> None:
    app = _make_app(tmp_path, connector, token_verifier=RefreshOutageVerifier({"good-token": "user-1"}))
    with TestClient(app) as client:
        with client.websocket_connect("/voice?token=good-token") as ws:
            ws.send_json({"type": "token_refresh", "token": "refreshed-token"})
            with pytest.raises(WebSocketDisconnect) as excinfo:
                ws.receive_json()
    assert excinfo.value.code == 4002


class TestSessionLifecycle:
    def test_failed_upstream_open_allows_clean_retry(self, tmp_path) -> None:
        connector = ScriptedConnector(failures=1)
        with TestClient(_make_app(tmp_path, connector)) as client:
            relay = client.app.state.relay
            with client.websocket_connect("/voice?token=good-token") as ws:
                ws.send_json({"type": "start_session", "mode": "realtime"})
                error = ws.receive_json()
                assert error["code"] == "OPENAI_ERROR"
                assert len(relay.store) == 0

                ws.send_json({"type": "start_session", "mode": "realtime"})
                ready = ws.receive_json()

                assert ready["type"] == "session_ready"
                assert ready["mode"] == "realtime"
                assert connector.calls == 2
                assert len(relay.store) == 1
                assert relay.bridges.get(ready["sessionId"]) is not None

    def test_resume_reconnects_lost_upstream(self, client: TestClient, connector: ScriptedConnector) -> None:
        relay = client.app.state.relay
        with client.websocket_connect("/voice?token=good-token") as ws:
            ws.send_json({"type": "start_session", "mode": "realtime"})
            first = ws.receive_json()
            session_id = first["sessionId"]

            client.portal.call(connector.upstreams[0].close)
            _wait_until(client, lambda: relay.bridges.get(session_id) is None)

            ws.send_json({"type": "start_session", "mode": "realtime"})
            second = ws.receive_json()

            assert second == {"type": "session_ready", "sessionId": session_id, "mode": "realtime"}
            assert len(connector.upstreams) == 2
            assert connector.upstreams[1].sent[0]["type"] == "session.update"
            assert relay.bridges.get(session_id) is not None

    def test_stale_socket_disconnect_keeps_resumed_session(
        self, client: TestClient, connector: ScriptedConnector, entry_store: FakeEntryStore
    ) -> None:
        relay = client.app.state.relay
        with client.websocket_connect("/voice?token=good-token") as first_ws:
            first_ws.send_json({"type": "start_session", "mode": "realtime"})
            session_id = first_ws.receive_json()["sessionId"]

            with client.websocket_connect("/voice?token=good-token") as second_ws:
                second_ws.send_json({"type": "start_session", "mode": "realtime"})
                assert second_ws.receive_json()["sessionId"] == session_id

                first_ws.close()
                client.portal.call(asyncio.sleep, 0.1)
                assert relay.store.get(session_id) is not None

                second_ws.send_json({"type": "audio_chunk", "data": "AAAA"})
                second_ws.send_json({"type": "end_session", "saveOptions": {"save": True}})
                saved = _receive_until(second_ws, "session_saved")

        assert saved["success"] is True
        assert {"type": "input_audio_buffer.append", "audio": "AAAA"} in connector.upstreams[0].sent
        assert len(connector.upstreams) == 1
        assert entry_store.created[0]["user_id"] == "user-1"
        assert len(relay.store) == 0

    def test_disconnect_ends_session_and_charges_usage(self, tmp_path, connector: ScriptedConnector) -> None:
        usage_dal = RecordingUsageDAL()
        with TestClient(_make_app(tmp_path, connector, usage_dal=usage_dal)) as client:
            relay = client.app.state.relay
            with client.websocket_connect("/voice?token=good-token") as ws:
                ws.send_json({"type": "start_session", "mode": "realtime"})
                session_id = ws.receive_json()["sessionId"]
                ws.close()
                _wait_until(client, lambda: len(relay.store) == 0)

            assert relay.bridges.get(session_id) is None

        assert len(usage_dal.increments) == 1
        assert usage_dal.increments[0][:2] == ("user-1", "realtime")
        assert connector.upstreams[0].closed.is_set()

    def test_swept_session_ignores_later_turns(self, client: TestClient) -> None:
        relay = client.app.state.relay
        with client.websocket_connect("/voice?token=good-token") as ws:
            ws.send_json({"type": "start_session", "mode": "standard"})
            session_id = ws.receive_json()["sessionId"]
            _receive_until(ws, "transcript_delta")

            relay.store.get(session_id).last_activity = 0
            evicted = client.portal.call(relay.sweep_idle)

            assert [session.session_id for session in evicted] == [session_id]
            assert session_id not in relay.pipelines

            ws.send_json({"type": "end_turn"})
            ws.send_json({"type": "audio_chunk", "data": "AAAA"})
            error = ws.receive_json()

        assert error["code"] == "NO_SESSION"


class TestGuidedCatalogRoute:
    def test_lists_sessions_with_suggestions(self, client: TestClient) -> None:
        body = client.get("/guided-sessions", params={"timeOfDay": "morning"}).json()

        assert body["timeOfDay"] == "morning"
        ids = [session["id"] for session in body["sessions"]]
        assert "morning_checkin" in ids
        assert "morning_checkin" in body["suggested"]
        assert "evening_reflection" not in body["suggested"]
        assert all(session["totalPrompts"] > 0 for session in body["sessions"])

    def test_low_mood_suggests_support(self, client: TestClient) -> None:
        body = client.get("/guided-sessions", params={"timeOfDay": "afternoon", "mood": 0.2}).json()
        assert "stress_release" in body["suggested"]

    def test_rejects_unknown_time_of_day(self, client: TestClient) -> None:
        assert client.get("/guided-sessions", params={"timeOfDay": "brunch"}).status_code == 422
