"""Tests for web/app.py — FastAPI routes via TestClient.

Tests the HTTP layer: status codes, response structure, error envelope.
HOME and PROJECT_BASE_DIR point into tmp_path (see conftest).
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from discovery.service import ProjectDiscovery
from web.app import app, get_discovery

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client():
    discovery = ProjectDiscovery()
    app.dependency_overrides[get_discovery] = lambda: discovery
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def project(make_log):
    make_log("-w-app", "a.jsonl", [
        {"sessionId": "s1", "cwd": "/w/app", "timestamp": "2024-01-01T00:00:00Z",
         "message": {"role": "user", "content": "Fix bug"}},
        {"sessionId": "s2", "cwd": "/w/app", "timestamp": "2024-01-02T00:00:00Z",
         "message": {"role": "user", "content": "Add feature"}},
    ])
    return "-w-app"


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class TestProjects:
    def test_list_empty(self, client):
        resp = client.get("/api/projects")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_list(self, client, project):
        (data,) = client.get("/api/projects").json()
        assert data["identifier"] == project
        assert data["session_meta"] == {"total": 2, "has_more": False}

    def test_add_created(self, client, base_dir):
        resp = client.post("/api/projects", json={"path": "web-proj"})
        assert resp.status_code == 201
        assert resp.json()["absolute_path"] == str(base_dir / "web-proj")

    def test_add_existing_directory(self, client, base_dir):
        (base_dir / "there").mkdir(parents=True)
        resp = client.post("/api/projects", json={"path": "there", "display_name": "There"})
        assert resp.status_code == 200
        assert resp.json()["created"] is False

    def test_add_twice_conflicts(self, client, base_dir):
        client.post("/api/projects", json={"path": "dup"})
        resp = client.post("/api/projects", json={"path": "dup"})
        assert resp.status_code == 409
        assert resp.json()["code"] == "ALREADY_REGISTERED"

    def test_add_traversal(self, client, base_dir):
        resp = client.post("/api/projects", json={"path": "../../etc/passwd"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "TRAVERSAL_ATTEMPT"
        assert "error" in body

    def test_rename(self, client, project):
        resp = client.put(f"/api/projects/{project}/rename", json={"display_name": "Renamed"})
        assert resp.status_code == 200
        assert resp.json() == {"project": project, "display_name": "Renamed"}
        (data,) = client.get("/api/projects").json()
        assert data["display_name"] == "Renamed"
        assert data["is_custom_name"] is True

    def test_delete_non_empty(self, client, project):
        resp = client.delete(f"/api/projects/{project}")
        assert resp.status_code == 409
        assert resp.json()["code"] == "PROJECT_NOT_EMPTY"

    def test_delete_empty(self, client, projects_root):
        (projects_root / "-w-gone").mkdir()
        resp = client.delete("/api/projects/-w-gone")
        assert resp.status_code == 200
        assert not (projects_root / "-w-gone").exists()


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class TestSessions:
    def test_paginated(self, client, project):
        resp = client.get(f"/api/projects/{project}/sessions", params={"limit": 1, "offset": 0})
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 2
        assert body["has_more"] is True
        assert [s["id"] for s in body["sessions"]] == ["s2"]

    def test_negative_offset_rejected(self, client, project):
        resp = client.get(f"/api/projects/{project}/sessions", params={"offset": -1})
        assert resp.status_code == 422

    def test_messages(self, client, project):
        resp = client.get(f"/api/projects/{project}/sessions/s1/messages")
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 1
        assert body["messages"][0]["message"]["content"] == "Fix bug"

    def test_invalid_session_id(self, client, project):
        resp = client.get(f"/api/projects/{project}/sessions/bad%20id/messages")
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"

    def test_delete_session(self, client, project):
        resp = client.delete(f"/api/projects/{project}/sessions/s1")
        assert resp.status_code == 200
        assert resp.json()["files_rewritten"] == 1
        assert client.get(f"/api/projects/{project}/sessions").json()["total"] == 1

    def test_delete_unknown_session(self, client, project):
        resp = client.delete(f"/api/projects/{project}/sessions/nope")
        assert resp.status_code == 404
        assert resp.json()["code"] == "NOT_FOUND"
