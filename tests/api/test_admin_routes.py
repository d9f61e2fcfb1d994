"""Integration tests for admin routes (/api/admin/*)."""
from fastapi.testclient import TestClient

from typeboard.main import create_app
from tests.conftest import make_record, make_settings


class TestAdminSync:
    def test_sync_requires_token(self, client):
        resp = client.post("/api/admin/sync")
        assert resp.status_code == 401
        assert resp.json()["error"] == "Authentication required."

    def test_sync_rejects_wrong_token(self, client):
        resp = client.post("/api/admin/sync", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_sync_rebuilds_cache(self, client, ledger, admin_headers):
        ledger.seed(make_record("alice", 80, 2, 390), make_record("bob", 95, 1, 470))
        resp = client.post("/api/admin/sync", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["records"] == 2
        assert resp.json()["source"] == "ledger"
        assert [s["name"] for s in client.get("/api/scores").json()] == ["bob", "alice"]

    def test_sync_with_ledger_down_is_503_and_keeps_cache(self, client, ledger, admin_headers):
        client.post("/api/scores", json={"name": "alice", "wpm": 80, "mistakes": 2, "cpm": 390})
        ledger.unreachable = True
        resp = client.post("/api/admin/sync", headers=admin_headers)
        assert resp.status_code == 503
        assert "error" in resp.json()
        assert len(client.get("/api/scores").json()) == 1

    def test_admin_disabled_without_token(self, scores_path, ledger):
        app = create_app(make_settings(scores_path, admin_token=""), ledger=ledger)
        with TestClient(app) as c:
            resp = c.post("/api/admin/sync", headers={"Authorization": "Bearer anything"})
        assert resp.status_code == 404


class TestAdminCache:
    def test_cache_status(self, client, admin_headers, scores_path):
        client.post("/api/scores", json={"name": "alice", "wpm": 80, "mistakes": 2, "cpm": 390})
        body = client.get("/api/admin/cache", headers=admin_headers).json()
        assert body == {"mode": "cached", "path": scores_path, "entries": 1}
