"""Tests for system endpoints."""


class TestHealth:
    """Tests for GET /health."""

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_openapi_lists_rewrite_routes(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        assert "/api/v1/rewrite" in paths
        assert "/api/v1/rewrite/bullets" in paths
