"""Companion API tests through FastAPI's TestClient."""

import httpx
import pytest
from fastapi.testclient import TestClient

from storage_client.main import create_app


@pytest.fixture
def client(settings, fake_backend, push_channel):
    fake_backend.listings[""] = [{"name": "b.txt", "type": "file", "timestamp": 100}, {"name": "a", "type": "dir"}]
    app = create_app(settings, transport=httpx.MockTransport(fake_backend), connector=push_channel.connector)
    with TestClient(app) as client:
        yield client


def test_view_after_startup(client):
    resp = client.get("/api/view", headers={"X-Request-ID": "req-1"})

    assert resp.status_code == 200
    assert resp.headers["X-Request-ID"] == "req-1"
    body = resp.json()
    assert body["path"] == ""
    assert [e["name"] for e in body["entries"]] == ["a", "b.txt"]


def test_navigate_and_sort(client, fake_backend):
    fake_backend.listings["docs/"] = [{"name": "x", "type": "file"}, {"name": "y", "type": "file"}]

    resp = client.post("/api/navigate", json={"locator": "#docs"})
    assert resp.status_code == 200
    assert resp.json()["parent"] == ""

    resp = client.post("/api/sort", json={"column": "name"})
    assert resp.status_code == 200
    assert resp.json()["sort"] == {"column": "name", "direction": "desc"}
    assert [e["name"] for e in client.get("/api/view").json()["entries"]] == ["y", "x"]


def test_navigate_failure_carries_backend_message(client, fake_backend):
    fake_backend.responses[("GET", "files")] = httpx.Response(403, json={"message": "Invalid path"})

    resp = client.post("/api/navigate", json={"locator": "gone"})

    assert resp.status_code == 502
    assert resp.json() == {"detail": "Invalid path", "error": "bad_gateway", "meta": {"status": 403}}
    assert [t["text"] for t in client.get("/api/view").json()["toasts"]] == ["Error: Invalid path"]


def test_refresh_unreachable_backend_is_unavailable(client, fake_backend):
    fake_backend.responses[("GET", "files")] = httpx.ConnectError("connection refused")

    resp = client.post("/api/refresh")

    assert resp.status_code == 503
    assert resp.json()["detail"] == "connection refused"


def test_sort_rejects_unknown_column(client):
    assert client.post("/api/sort", json={"column": "size"}).status_code == 422


def test_create_dir_failure_reports_message(client, fake_backend):
    fake_backend.responses[("POST", "files:create_dir")] = httpx.Response(400, json={"message": "Directory exists"})

    resp = client.post("/api/dirs", json={"name": "a"})

    assert resp.status_code == 502
    assert resp.json()["detail"] == "Directory exists"
    assert resp.json()["meta"] == {"status": 400}


def test_create_dir_returns_full_path(client, fake_backend):
    client.post("/api/navigate", json={"locator": "docs"})

    resp = client.post("/api/dirs", json={"name": "new"})

    assert resp.json() == {"success": True, "message": "Created docs/new/"}
    assert len(fake_backend.calls("POST", "files:create_dir")) == 1


def test_concurrent_upload_is_conflict(client, fake_backend):
    fake_backend.hold_uploads = True

    first = client.post("/api/uploads", files={"file": ("one.txt", b"1" * 2048, "text/plain")})
    second = client.post("/api/uploads", files={"file": ("two.txt", b"2", "text/plain")})

    assert first.status_code == 202
    assert first.json()["filename"] == "one.txt"
    assert second.status_code == 409
    assert second.json()["error"] == "conflict"

    assert client.get("/api/uploads/active").json()["filename"] == "one.txt"
    assert client.delete("/api/uploads/active").status_code == 200


def test_abort_without_upload_is_not_found(client):
    assert client.delete("/api/uploads/active").status_code == 404


def test_queue_download(client, fake_backend):
    resp = client.post("/api/downloads", json={"url": "https://example.org/a.iso"})

    assert resp.status_code == 202
    toasts = client.get("/api/view").json()["toasts"]
    assert [t["text"] for t in toasts] == ["Download queued"]


def test_save_missing_file_is_bad_gateway(client, tmp_path):
    resp = client.post("/api/files/save", json={"name": "nope.txt", "destination": str(tmp_path / "n.txt")})

    assert resp.status_code == 502
    assert resp.json()["meta"] == {"status": 404}


def test_health(client):
    body = client.get("/api/health").json()

    assert body["push_channel"] in {"connecting", "open"}
    assert body["upload_active"] is False
