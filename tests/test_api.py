"""Tests for the HTTP service."""

import time

import pytest
from fastapi.testclient import TestClient

from pathfinder.main import JOBS, app, prune_jobs, serve
from pathfinder.settings import settings


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    JOBS.clear()


def wait_for(client, job_id, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        data = client.get(f"/api/scan/{job_id}").json()
        if data["state"] not in ("running", "cancelling"):
            return data
        time.sleep(0.05)
    raise AssertionError("scan did not finish")


def test_invalid_url_rejected(client):
    response = client.post("/api/scan", json={"url": "not-a-url", "paths": ["a"]})
    assert response.status_code == 422


def test_missing_wordlist(client, tmp_path):
    response = client.post(
        "/api/scan",
        json={"url": "http://127.0.0.1:9", "wordlist": str(tmp_path / "missing.txt")},
    )
    assert response.status_code == 400
    assert "wordlist" in response.json()["detail"]


def test_unknown_job(client):
    assert client.get("/api/scan/nope").status_code == 404
    assert client.delete("/api/scan/nope").status_code == 404
    assert client.get("/api/scan/nope/recent").status_code == 404


def test_scan_against_unreachable_target(client, dead_base):
    response = client.post(
        "/api/scan",
        json={"url": dead_base, "paths": ["a", "b", "# comment", ""], "timeout_seconds": 2},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2

    data = wait_for(client, body["job_id"])
    assert data["state"] == "done"
    assert data["live"]["completed"] == 2
    assert data["live"]["errors"] == 2
    assert data["live"]["end_time"] is not None
    assert data["wildcard"] is None

    assert client.get(f"/api/scan/{body['job_id']}/recent").json() == []
    csv_text = client.get(f"/api/scan/{body['job_id']}/results?format=csv").text
    assert csv_text.startswith("Path,URL,Status")
    assert client.get(f"/api/scan/{body['job_id']}/results?format=xml").status_code == 400
    assert "SCAN SUMMARY" in client.get(f"/api/scan/{body['job_id']}/summary").text


def test_cancel_marks_job(client, dead_base):
    response = client.post(
        "/api/scan",
        json={"url": dead_base, "paths": [f"p{i}" for i in range(50)], "rate_limit": 5, "timeout_seconds": 2},
    )
    job_id = response.json()["job_id"]

    assert client.delete(f"/api/scan/{job_id}").json() == {"status": "cancelling"}
    data = wait_for(client, job_id)
    assert data["state"] == "cancelled"
    assert data["live"]["completed"] == 50


def test_websocket_streams_until_done(client, dead_base):
    job_id = client.post(
        "/api/scan", json={"url": dead_base, "paths": ["a"], "timeout_seconds": 2}
    ).json()["job_id"]

    events = []
    with client.websocket_connect(f"/ws/{job_id}") as ws:
        while True:
            event = ws.receive_json()
            events.append(event)
            if event["type"] == "done":
                break

    assert events[0]["type"] == "stats"
    assert events[-1]["state"] == "done"


def test_websocket_unknown_job(client):
    with client.websocket_connect("/ws/nope") as ws:
        assert ws.receive_json() == {"type": "error", "message": "unknown job"}


def test_websocket_done_releases_job(client, dead_base):
    job_id = client.post(
        "/api/scan", json={"url": dead_base, "paths": ["a"], "timeout_seconds": 2}
    ).json()["job_id"]

    with client.websocket_connect(f"/ws/{job_id}") as ws:
        event = ws.receive_json()
        while event["type"] != "done":
            event = ws.receive_json()

    assert event["findings"] == []
    assert job_id not in JOBS
    assert client.get(f"/api/scan/{job_id}").status_code == 404


def test_prune_drops_only_expired_jobs():
    JOBS.clear()
    JOBS["old"] = {"scanner": None, "task": None, "finished_at": 100.0}
    JOBS["fresh"] = {"scanner": None, "task": None, "finished_at": 100.0 + settings.job_retention}
    JOBS["running"] = {"scanner": None, "task": None, "finished_at": None}

    assert prune_jobs(now=100.0 + settings.job_retention) == 1
    assert sorted(JOBS) == ["fresh", "running"]
    JOBS.clear()


def test_serve_uses_settings(monkeypatch):
    calls = {}
    monkeypatch.setattr("pathfinder.main.uvicorn.run", lambda app, **kw: calls.update(kw))

    serve()

    assert calls["host"] == settings.host
    assert calls["port"] == settings.port
