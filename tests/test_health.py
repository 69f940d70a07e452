"""Tests for /health and / endpoints."""


class TestHealth:

    def test_health_returns_200(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["db"] == "ok"
        assert "uptime_seconds" in data
        assert "version" in data
        assert data["document_count"] == 0

    def test_health_counts_documents(self, client, sample_documents):
        assert client.get("/health").json()["document_count"] == len(sample_documents)

    def test_root_returns_api_info(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["name"] == "Robokache API"


class TestResponseHeaders:

    def test_response_includes_middleware_headers(self, client):
        resp = client.get("/health")
        assert "x-request-id" in resp.headers
        assert "x-response-time" in resp.headers

    def test_request_id_is_propagated(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert resp.headers["x-request-id"] == "abc123"

    def test_unsafe_request_id_is_replaced(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "bad id!"})
        assert resp.headers["x-request-id"] != "bad id!"
        assert len(resp.headers["x-request-id"]) == 16
