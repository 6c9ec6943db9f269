"""Tests for intake/api.py using FastAPI's TestClient — fake oracle, mock summarizer."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from intake.api import create_app
from intake.auth import AdminAuth
from intake.providers.base import OracleUnavailable
from intake.store import SessionStore
from tests.conftest import FakeOracle, MockProvider, extraction

SUMMARY = "Two paragraphs.\n---\nBusiness Unit: Finance\nCategory (tag): Automation\nUrgency (high/med/low): low\n---"

QUESTIONS = [{"id": "q1", "key": "problem", "text": "What problem?"}]


@pytest.fixture
def fake_oracle() -> FakeOracle:
    return FakeOracle(extraction({"problem": ("manual invoice checks", 4)}, focus="q1", response="Thanks!"))


@pytest.fixture
def summarizer() -> MockProvider:
    return MockProvider("openai", SUMMARY)


@pytest.fixture
def store(tmp_path: Path) -> SessionStore:
    return SessionStore(tmp_path / "records")


@pytest.fixture
def client(sample_app_config, fake_oracle, summarizer, store) -> TestClient:
    auth = AdminAuth(password="hunter2", secret="s3cret", ttl_sec=60)
    return TestClient(create_app(sample_app_config, fake_oracle, summarizer, store, auth))


def _login(client: TestClient) -> str:
    r = client.post("/admin/login", json={"password": "hunter2"})
    assert r.status_code == 200
    return r.json()["token"]


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_questions_lists_catalog(client, catalog):
    r = client.get("/questions")
    assert r.status_code == 200
    assert [q["id"] for q in r.json()["questions"]] == [q.id for q in catalog]


def test_chat_processes_turn(client):
    r = client.post("/chat", json={
        "questions": QUESTIONS,
        "answers": {},
        "chat": [],
        "message": "We spend too much time on manual invoice checks",
    })
    assert r.status_code == 200
    body = r.json()
    assert body["answers"]["problem"] == {"text": "manual invoice checks", "quality": 4}
    assert body["allAnswered"] is True
    assert body["currentFocus"] == "q1"
    assert body["response"] == "Thanks!"


def test_chat_invalid_payload_is_400(client, fake_oracle):
    r = client.post("/chat", json={"questions": [], "message": "hi"})
    assert r.status_code == 400
    assert "questions" in r.json()["detail"]
    assert fake_oracle.requests == []


def test_chat_oracle_unavailable_is_502(client, fake_oracle):
    fake_oracle.error = OracleUnavailable("openai", "API call failed: overloaded", 529)
    r = client.post("/chat", json={"questions": QUESTIONS, "message": "hi"})
    assert r.status_code == 502
    assert "529" in r.json()["detail"]


def test_summarize_returns_summary(client, summarizer):
    r = client.post("/summarize", json={
        "answers": {"problem": {"text": "invoices", "quality": 4}},
        "chat": [{"role": "user", "text": "invoices"}],
    })
    assert r.status_code == 200
    assert r.json() == {"summary": SUMMARY}
    summarizer.generate.assert_awaited_once()


def test_summarize_upstream_failure_is_502(client, summarizer):
    summarizer.generate = AsyncMock(side_effect=OracleUnavailable("openai", "Request timed out after 30s"))
    r = client.post("/summarize", json={"answers": {}, "chat": []})
    assert r.status_code == 502


def test_summarize_bad_answers_is_400(client):
    r = client.post("/summarize", json={"answers": ["nope"], "chat": []})
    assert r.status_code == 400


def test_submit_stores_record(client, store):
    r = client.post("/submit", json={
        "sessionId": "sess-1",
        "answers": {"problem": {"text": "invoices", "quality": 4}},
        "chat": [],
    })
    assert r.status_code == 200
    body = r.json()
    assert body["tags"] == {"business_unit": "Finance", "category": "Automation", "urgency": "low"}
    [record] = store.load_all()
    assert record.session_id == "sess-1"
    assert record.summary == SUMMARY


def test_submit_requires_session_id(client, store):
    r = client.post("/submit", json={"answers": {}, "chat": []})
    assert r.status_code == 400
    assert store.load_all() == []


def test_admin_login_wrong_password(client):
    r = client.post("/admin/login", json={"password": "wrong"})
    assert r.status_code == 401


def test_admin_records_requires_token(client):
    assert client.get("/admin/records").status_code == 401
    r = client.get("/admin/records", headers={"Authorization": "Bearer 1.deadbeef"})
    assert r.status_code == 401
    r = client.get("/admin/records", headers={"Authorization": "Basic aHVudGVyMg=="})
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Bearer"


def test_admin_records_with_token(client):
    client.post("/submit", json={"sessionId": "sess-2", "answers": {}, "chat": []})
    token = _login(client)
    r = client.get("/admin/records", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    [record] = r.json()["records"]
    assert record["sessionId"] == "sess-2"
    assert record["tags"]["business_unit"] == "Finance"


def test_admin_disabled_without_auth(sample_app_config, fake_oracle, summarizer, store):
    client = TestClient(create_app(sample_app_config, fake_oracle, summarizer, store, auth=None))
    assert client.get("/admin/records").status_code == 503
    assert client.post("/admin/login", json={"password": "x"}).status_code == 503


def test_cors_preflight(client):
    r = client.options(
        "/chat",
        headers={"Origin": "https://intake.example.com", "Access-Control-Request-Method": "POST"},
    )
    assert r.status_code == 200
    assert "access-control-allow-origin" in r.headers
