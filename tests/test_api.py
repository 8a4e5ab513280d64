import asyncio

import pytest
from fastapi.testclient import TestClient

from competitor_signals import create_app
from competitor_signals.services.report_store import ReportDraft

from conftest import FakeNewsProvider, FakeSentimentProvider, FakeSummarizer, build_service


@pytest.fixture
def client(store):
    svc = build_service(news=[FakeNewsProvider()], forum=FakeSentimentProvider(), store=store)
    with TestClient(create_app(intelligence=svc)) as c:
        yield c


def _analyze(client, competitors="Acme, acme.com\nGlobex", **extra):
    body = {"competitors": competitors, "session_id": "sess-1", **extra}
    return client.post("/api/analyze", json=body)


def test_health_and_root(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert client.get("/").json()["api"] == "/api"


def test_analyze_returns_structured_report(client):
    r = _analyze(client)
    assert r.status_code == 200
    data = r.json()
    assert data["competitors"] == ["Acme", "Globex"]
    assert data["title"] == "Acme, Globex Analysis"
    assert data["summary"]["kind"] == "structured"
    assert data["summary"]["data"]["effort"] == "high"
    assert data["cached"] is False
    assert data["user_id"] == "guest_sess-1"
    assert data["metadata"]["domains"] == {"Acme": "acme.com"}

    again = _analyze(client, "Globex\nacme.com")
    assert again.json()["cached"] is True


def test_analyze_rejects_bad_input(client):
    assert _analyze(client, "!!!").status_code == 400
    assert client.post("/api/analyze", json={"competitors": ""}).status_code == 422
    r = _analyze(client, "A\nB\nC\nD\nE\nF")
    assert r.status_code == 400


def test_analysis_failure_is_generic_500(store):
    svc = build_service(summarizer=FakeSummarizer(fail_all=True), store=store)
    with TestClient(create_app(intelligence=svc)) as c:
        r = c.post("/api/analyze", json={"competitors": "Acme"})
    assert r.status_code == 500
    assert r.json()["detail"] == "Failed to analyze competitors. Please try again."
    assert store.reports == []


def test_stream_session_allocation(client):
    r = client.post("/api/analyze/sessions", json={"session_id": "sess-1"})
    assert r.status_code == 200
    assert r.json()["stream_session_id"].startswith("sess-1_")


def test_reports_history_and_lookup(client):
    report_id = _analyze(client, user_id="u1").json()["id"]
    _analyze(client, "Initech", user_id="u1")

    listing = client.get("/api/reports", params={"user_id": "u1"}).json()
    assert listing["total"] == 2
    assert listing["items"][0]["competitors"] == ["Initech"]

    r = client.get(f"/api/reports/{report_id}")
    assert r.status_code == 200
    assert r.json()["id"] == report_id
    assert client.get("/api/reports/does-not-exist").status_code == 404


def test_newsletter_reports_resolve_to_markdown(client, store):
    report = asyncio.run(store.create(ReportDraft(
        user_id="u1",
        title="Quick Summary (Newsletter) - 2026-10-01",
        competitors=["Acme"],
        signals=[],
        summary='{"looks": "like json"}',
        metadata={"type": "newsletter_summary"},
    )))
    summary = client.get(f"/api/reports/{report.id}").json()["summary"]
    assert summary == {"kind": "newsletter", "markdown": '{"looks": "like json"}'}


def test_enhanced_endpoint_serves_seeded_data(client):
    report_id = _analyze(client, "Acme").json()["id"]
    r = client.get(f"/api/reports/{report_id}/enhanced")
    assert r.status_code == 200
    data = r.json()
    assert data["stale"] is False
    assert data["payload"][0]["competitor"] == "Acme"
    assert data["payload"][0]["forum_sentiment"]["platform"] == "hackernews"
    assert client.get("/api/reports/nope/enhanced").status_code == 404
    assert client.get("/api/reports/nope/enhanced/stream").status_code == 404


def test_tracked_competitor_lifecycle(client):
    r = client.post("/api/competitors/tracked", json={"user_id": "u1", "competitor_name": "Stripe, stripe.com"})
    assert r.status_code == 200
    tracked_id = r.json()["id"]
    assert r.json()["canonical_key"] == "stripe"

    dup = client.post("/api/competitors/tracked", json={"user_id": "u1", "competitor_name": "stripe.com"})
    assert dup.status_code == 409

    listing = client.get("/api/competitors/tracked", params={"user_id": "u1"}).json()
    assert listing["count"] == 1
    assert listing["limit"] == 5

    analyzed = client.post("/api/competitors/tracked/analyze", json={"user_id": "u1"})
    assert analyzed.status_code == 200
    assert analyzed.json()["competitors"] == ["Stripe"]

    assert client.delete(f"/api/competitors/tracked/{tracked_id}", params={"user_id": "u1"}).status_code == 200
    assert client.delete(f"/api/competitors/tracked/{tracked_id}", params={"user_id": "u1"}).status_code == 404
    empty = client.post("/api/competitors/tracked/analyze", json={"user_id": "u1"})
    assert empty.status_code == 400


def test_tracked_limit_is_400(client):
    for name in ["A1", "B2", "C3", "D4", "E5"]:
        assert client.post("/api/competitors/tracked", json={"user_id": "u2", "competitor_name": name}).status_code == 200
    r = client.post("/api/competitors/tracked", json={"user_id": "u2", "competitor_name": "F6"})
    assert r.status_code == 400
