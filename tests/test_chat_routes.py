"""HTTP tests for the chat, status and quota endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from pestdesk.api.routes.chat import get_chat_service
from pestdesk.core.errors import LLMAppError
from pestdesk.main import app
from pestdesk.services.chat_service import ChatService


@pytest.fixture
def llm() -> MagicMock:
    fake = MagicMock()
    fake.provider = "openrouter"
    fake.model = "test/model"
    fake.generate_reply = AsyncMock(return_value="Seal gaps and set snap traps.")
    return fake


@pytest.fixture
def client(llm: MagicMock):
    app.dependency_overrides[get_chat_service] = lambda: ChatService(llm=llm)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _ask(client: TestClient, message: str = "I have rats in my kitchen", **extra):
    return client.post("/api/chat", json={"message": message, **extra})


class TestChatEndpoint:
    def test_live_answer_is_camel_case_without_note(self, client: TestClient) -> None:
        resp = _ask(client)

        assert resp.status_code == 200
        assert resp.json() == {"response": "Seal gaps and set snap traps.", "isFallback": False}

    def test_fallback_answer_includes_note(self, client: TestClient, llm: MagicMock) -> None:
        llm.generate_reply.side_effect = LLMAppError(code="llm_upstream_error", message="down")

        resp = _ask(client, liveOnly=False)

        assert resp.status_code == 200
        body = resp.json()
        assert body["isFallback"] is True
        assert body["note"] == "using local fallback"
        assert "rodents" in body["response"]

    def test_live_only_failure_returns_502(self, client: TestClient, llm: MagicMock) -> None:
        llm.generate_reply.side_effect = LLMAppError(code="llm_upstream_error", message="down")

        resp = _ask(client)

        assert resp.status_code == 502
        assert resp.json()["error"]["code"] == "llm_upstream_error"
        assert resp.json()["error"]["request_id"] == resp.headers["X-Request-ID"]

    def test_history_and_model_are_forwarded(self, client: TestClient, llm: MagicMock) -> None:
        resp = client.post(
            "/api/chat",
            json={
                "message": "And for the roof?",
                "model": "google/gemini-2.0-flash-001",
                "history": [
                    {"role": "user", "content": "Rats in the store"},
                    {"role": "assistant", "content": "Set traps along walls."},
                ],
            },
        )

        assert resp.status_code == 200
        messages = llm.generate_reply.await_args.args[0]
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert llm.generate_reply.await_args.kwargs["model"] == "google/gemini-2.0-flash-001"

    def test_empty_message_returns_400(self, client: TestClient) -> None:
        resp = _ask(client, message="  ")

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "empty_message"

    def test_missing_message_is_rejected(self, client: TestClient) -> None:
        resp = client.post("/api/chat", json={"liveOnly": False})

        assert resp.status_code == 422


class TestFreeTierQuota:
    def test_second_call_within_a_minute_is_throttled(self, client: TestClient, llm: MagicMock) -> None:
        assert _ask(client).status_code == 200

        resp = _ask(client)

        assert resp.status_code == 429
        assert resp.json()["detail"].startswith("Too many requests. Please wait")
        assert 1 <= int(resp.headers["Retry-After"]) <= 60
        assert resp.headers["X-RateLimit-Limit"] == "1"
        assert resp.headers["X-RateLimit-Remaining"] == "0"
        assert resp.headers["X-RateLimit-Reason"] == "per_minute_quota_exceeded"
        assert llm.generate_reply.await_count == 1

    def test_daily_quota_is_reported(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FREE_TIER_PER_MINUTE", "100")
        monkeypatch.setenv("FREE_TIER_PER_DAY", "2")

        assert _ask(client).status_code == 200
        assert _ask(client).status_code == 200
        resp = _ask(client)

        assert resp.status_code == 429
        assert resp.headers["X-RateLimit-Reason"] == "daily_quota_exceeded"
        assert resp.headers["X-RateLimit-Limit"] == "2"
        assert resp.json()["detail"].startswith("Daily free quota reached.")

    def test_headers_can_be_disabled(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FREE_TIER_INCLUDE_HEADERS", "false")

        _ask(client)
        resp = _ask(client)

        assert resp.status_code == 429
        assert "Retry-After" not in resp.headers

    def test_disabled_limiter_never_throttles(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FREE_TIER_ENABLED", "false")

        for _ in range(3):
            assert _ask(client).status_code == 200

    def test_rotating_unknown_api_keys_share_the_ip_quota(self, client: TestClient) -> None:
        codes = [
            client.post(
                "/api/chat",
                json={"message": "Ants in the pantry again"},
                headers={"X-API-Key": f"made-up-{i}"},
            ).status_code
            for i in range(5)
        ]

        assert codes[0] == 200
        assert set(codes[1:]) == {429}

    def test_allow_listed_api_keys_get_their_own_quota(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FREE_TIER_API_KEYS", "alice, bob")

        first = client.post("/api/chat", json={"message": "Ants in the pantry again"}, headers={"X-API-Key": "alice"})
        other = client.post("/api/chat", json={"message": "Ants in the pantry again"}, headers={"X-API-Key": "bob"})
        again = client.post("/api/chat", json={"message": "Ants in the pantry again"}, headers={"X-API-Key": "alice"})
        unlisted = client.post("/api/chat", json={"message": "Ants in the pantry again"}, headers={"X-API-Key": "mallory"})

        assert first.status_code == 200
        assert other.status_code == 200
        assert again.status_code == 429
        assert unlisted.status_code == 200
        assert client.get("/api/rate-limit").json()["minuteRemaining"] == 0

    def test_invalid_requests_do_not_consume_quota(self, client: TestClient) -> None:
        assert client.post("/api/chat", json={"liveOnly": False}).status_code == 422
        assert _ask(client, message="   ").status_code == 400
        assert _ask(client, message="a" * 8001).status_code == 400

        assert client.get("/api/rate-limit").json()["minuteRemaining"] == 1
        assert _ask(client).status_code == 200

    def test_global_scope_shares_one_quota(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FREE_TIER_SCOPE", "global")

        first = client.post("/api/chat", json={"message": "Ants in the pantry again"}, headers={"X-API-Key": "alice"})
        other = client.post("/api/chat", json={"message": "Ants in the pantry again"}, headers={"X-API-Key": "bob"})

        assert first.status_code == 200
        assert other.status_code == 429


class TestStatusEndpoints:
    def test_status_reports_live_provider(self, client: TestClient) -> None:
        resp = client.get("/api/status")

        assert resp.status_code == 200
        assert resp.json() == {"gemini": False, "live": True}

    def test_status_without_provider(self) -> None:
        app.dependency_overrides[get_chat_service] = lambda: ChatService(llm=None)
        try:
            resp = TestClient(app).get("/api/status")
        finally:
            app.dependency_overrides.clear()

        assert resp.json() == {"gemini": False, "live": False}

    def test_rate_limit_status_does_not_consume(self, client: TestClient) -> None:
        before = client.get("/api/rate-limit").json()
        client.get("/api/rate-limit")

        assert before == {
            "perMinuteLimit": 1,
            "perDayLimit": 20,
            "dayRemaining": 20,
            "minuteRemaining": 1,
            "dayResetInSeconds": None,
        }
        assert _ask(client).status_code == 200

    def test_rate_limit_status_after_a_call(self, client: TestClient) -> None:
        _ask(client)

        body = client.get("/api/rate-limit").json()

        assert body["minuteRemaining"] == 0
        assert body["dayRemaining"] == 19
        assert 0 < body["dayResetInSeconds"] <= 86_400
