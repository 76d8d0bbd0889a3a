"""
test_middleware.py — Tests for request/response middleware and error handlers

Verifies request ID generation, security headers, the structured error
envelope and the exception handlers registered in main.py.

Called by: pytest
Depends on: yumi/main.py (middleware, handlers), tests/conftest.py (client fixture)
"""

import asyncio
import json

from sqlalchemy.exc import IntegrityError
from starlette.requests import Request

from yumi.config import APP_VERSION
from yumi.main import (
    app,
    global_exception_handler,
    integrity_error_handler,
    validation_message,
)


def _bare_request() -> Request:
    return Request({"type": "http", "method": "GET", "path": "/x", "headers": [], "query_string": b""})


# ── Request ID & headers ─────────────────────────────────────────────


def test_request_id_header_present(client):
    """Every response should include X-Request-ID."""
    resp = client.get("/health")
    assert len(resp.headers["X-Request-ID"]) == 8  # uuid4().hex[:8]


def test_request_id_unique_per_request(client):
    id1 = client.get("/health").headers["X-Request-ID"]
    id2 = client.get("/health").headers["X-Request-ID"]
    assert id1 != id2


def test_security_headers(client):
    headers = client.get("/health").headers
    assert headers["X-Content-Type-Options"] == "nosniff"
    assert headers["X-Frame-Options"] == "DENY"
    assert headers["X-XSS-Protection"] == "1; mode=block"
    assert headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert headers["X-API-Version"] == "v1"


def test_health_returns_ok(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "version": APP_VERSION}


# ── Error envelope ───────────────────────────────────────────────────


def test_404_envelope_carries_request_id(client):
    resp = client.get("/nonexistent-route-xyz")
    assert resp.status_code == 404
    body = resp.json()
    assert body["status_code"] == 404
    assert body["request_id"] == resp.headers["X-Request-ID"]
    assert "detail" not in body


def test_validation_error_envelope(client):
    resp = client.post("/api/calculator/daily", json={"weight_kg": "mucho"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["status_code"] == 400
    assert isinstance(body["detail"], list)
    assert {"loc", "msg", "type"} <= set(body["detail"][0])


def test_validation_message_missing_field():
    errors = [{"type": "missing", "loc": ("body", "title"), "msg": "Field required"}]
    assert validation_message(errors) == "El campo 'title' es obligatorio"


def test_validation_message_value_error():
    errors = [{"type": "value_error", "loc": ("body", "name"), "msg": "Value error, El nombre es obligatorio"}]
    assert validation_message(errors) == "El nombre es obligatorio"


def test_validation_message_generic():
    errors = [{"type": "int_parsing", "loc": ("query", "page"), "msg": "Input should be a valid integer"}]
    assert validation_message(errors) == "Datos de entrada no válidos"
    assert validation_message([]) == "Datos de entrada no válidos"


def test_integrity_error_maps_to_409():
    exc = IntegrityError("INSERT INTO tags", {}, Exception("UNIQUE constraint failed"))
    resp = asyncio.run(integrity_error_handler(_bare_request(), exc))
    assert resp.status_code == 409
    assert json.loads(resp.body)["error"] == "El recurso entra en conflicto con uno existente"


def test_unhandled_error_maps_to_500():
    resp = asyncio.run(global_exception_handler(_bare_request(), RuntimeError("boom")))
    assert resp.status_code == 500
    body = json.loads(resp.body)
    assert body == {"error": "Error interno del servidor", "status_code": 500, "request_id": ""}


def test_catch_all_handler_registered():
    assert app.exception_handlers[Exception] is global_exception_handler
