"""Tests for normalized error responses and probes."""
from fastapi.testclient import TestClient


def test_error_envelope_echoes_request_id(client):
    resp = client.get("/api/prompts/missing", headers={"x-request-id": "rid-123"})
    assert resp.status_code == 404
    assert resp.headers["x-request-id"] == "rid-123"
    body = resp.json()
    assert body["error"] == {"code": "not_found", "message": "Prompt missing not found", "request_id": "rid-123"}
    assert body["detail"] == "Prompt missing not found"


def test_request_id_generated_when_absent(client):
    resp = client.get("/healthz")
    assert resp.headers.get("x-request-id")


def test_unhandled_errors_are_normalized(app):
    @app.get("/boom")
    def boom():
        raise RuntimeError("kaboom")

    with TestClient(app, raise_server_exceptions=False) as c:
        resp = c.get("/boom")
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "internal_error"


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_readyz_checks_tables(client):
    body = client.get("/readyz").json()
    assert body == {"status": "ok", "db": True}
