# backend/tests/test_error_contract.py

from fastapi import APIRouter, FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient

from invite_gate.core.security import create_admin_token

# Import the real exception handlers (do NOT rely on FastAPI defaults)
from invite_gate.main import app as real_app
from invite_gate.main import http_exception_handler, validation_exception_handler


def _app_with_real_handlers() -> FastAPI:
    app = FastAPI()
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    return app


def test_http_exception_detail_dict_is_preserved_and_merged():
    app = _app_with_real_handlers()
    r = APIRouter()

    @r.get("/boom")
    def boom():
        raise HTTPException(
            status_code=500,
            detail={"code": "INVITATION_GENERATION_FAILED", "message": "Failed to generate invitation token: x"},
        )

    app.include_router(r, prefix="/api/v1")

    resp = TestClient(app).get("/api/v1/boom")
    assert resp.status_code == 500

    body = resp.json()
    assert body["code"] == "HTTP_500"
    assert body["message"] == "Failed to generate invitation token: x"
    assert body["detail"]["code"] == "INVITATION_GENERATION_FAILED"
    assert isinstance(body["request_id"], str) and body["request_id"]


def test_http_exception_string_detail_becomes_message():
    app = _app_with_real_handlers()

    @app.get("/nope")
    def nope():
        raise HTTPException(status_code=401, detail="Not authenticated")

    body = TestClient(app).get("/nope").json()
    assert body["code"] == "HTTP_401"
    assert body["message"] == "Not authenticated"
    assert body["detail"] == {"code": "HTTP_401", "message": "Not authenticated"}


def test_validation_errors_use_the_contract():
    client = TestClient(real_app)
    token = create_admin_token("admin@example.com", "realm-A", ["admin"])
    resp = client.get(
        "/api/v1/realms/realm-A/invitations?page=abc",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 422
    body = resp.json()
    assert {"code", "message", "request_id", "detail"} <= set(body)


def test_incoming_request_id_is_echoed():
    client = TestClient(real_app)
    resp = client.get("/api/v1/health", headers={"X-Request-ID": "trace-123"})
    assert resp.status_code == 200
    assert resp.headers["X-Request-ID"] == "trace-123"
