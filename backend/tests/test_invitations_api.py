# backend/tests/test_invitations_api.py
from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient

from invite_gate.api.deps import get_invitation_service
from invite_gate.core.security import create_admin_token
from invite_gate.db.session import get_db
from invite_gate.main import app
from invite_gate.services.invitation_store import InvitationStore
from invite_gate.services.invitations import InvitationService


def _auth(realm: str = "realm-A", roles: list[str] | None = None) -> dict:
    token = create_admin_token("admin@example.com", realm, roles if roles is not None else ["admin"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def client(SessionLocal):
    def _override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# --- Generate ----------------------------------------------------------------

def test_generate_with_expiration(client, SessionLocal):
    before = int(time.time() * 1000)
    r = client.post(
        "/api/v1/realms/realm-A/invitations/generate",
        json={"expirationTime": 3600},
        headers=_auth(),
    )
    after = int(time.time() * 1000)

    assert r.status_code == 200, r.text
    body = r.json()
    assert set(body) == {"token", "realm", "message", "expirationTime", "used"}
    assert body["realm"] == "realm-A"
    assert body["used"] is False
    assert body["message"] == "Invitation token generated successfully"
    assert before + 3600 * 1000 - 1000 <= body["expirationTime"] <= after + 3600 * 1000 + 1000

    # Committed: visible from a fresh session.
    db = SessionLocal()
    try:
        assert InvitationStore(db).find_by_token_and_realm(body["token"], "realm-A") is not None
    finally:
        db.close()


@pytest.mark.parametrize("payload", [None, {}, {"expirationTime": 0}, {"expirationTime": -5}])
def test_generate_falls_back_to_default_expiration(client, payload):
    before = int(time.time() * 1000)
    kwargs = {"json": payload} if payload is not None else {}
    r = client.post("/api/v1/realms/realm-A/invitations/generate", headers=_auth(), **kwargs)

    assert r.status_code == 200, r.text
    day_ms = 86400 * 1000
    assert r.json()["expirationTime"] >= before + day_ms - 1000


def test_generate_rejects_expiration_beyond_int_range(client, SessionLocal):
    r = client.post(
        "/api/v1/realms/realm-A/invitations/generate",
        json={"expirationTime": 10**12},
        headers=_auth(),
    )

    assert r.status_code == 422
    assert r.json()["code"] == "VALIDATION_ERROR"

    db = SessionLocal()
    try:
        assert InvitationStore(db).count_all() == 0
    finally:
        db.close()


def test_generate_requires_authentication(client):
    r = client.post("/api/v1/realms/realm-A/invitations/generate", json={})
    assert r.status_code == 401
    assert "X-Request-ID" in r.headers


def test_generate_rejects_garbage_token(client):
    r = client.post(
        "/api/v1/realms/realm-A/invitations/generate",
        json={},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert r.status_code == 401


def test_generate_forbidden_without_admin_role(client):
    r = client.post(
        "/api/v1/realms/realm-A/invitations/generate",
        json={},
        headers=_auth(roles=["viewer"]),
    )
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "FORBIDDEN_REALM_ADMIN_ONLY"


def test_generate_forbidden_for_admin_of_another_realm(client):
    r = client.post(
        "/api/v1/realms/realm-A/invitations/generate",
        json={},
        headers=_auth(realm="realm-B"),
    )
    assert r.status_code == 403


def test_generate_failure_is_a_500_with_detail(client):
    class _Broken:
        def generate(self, realm_id, expiration_seconds=None):
            raise RuntimeError("store exploded")

    app.dependency_overrides[get_invitation_service] = lambda: _Broken()

    r = client.post("/api/v1/realms/realm-A/invitations/generate", json={}, headers=_auth())

    assert r.status_code == 500
    body = r.json()
    # Top-level code is the HTTP status; the domain code lives in detail.
    assert body["code"] == "HTTP_500"
    assert body["detail"]["code"] == "INVITATION_GENERATION_FAILED"
    assert body["message"] == "Failed to generate invitation token: store exploded"
    assert body["request_id"]


# --- List --------------------------------------------------------------------

def test_list_paginates(client):
    for _ in range(25):
        r = client.post("/api/v1/realms/realm-A/invitations/generate", json={}, headers=_auth())
        assert r.status_code == 200

    r = client.get("/api/v1/realms/realm-A/invitations?page=0&size=10", headers=_auth())
    assert r.status_code == 200, r.text
    body = r.json()

    assert len(body["data"]) == 10
    assert set(body["data"][0]) == {"id", "token", "used", "realm", "createdOn", "expiresOn"}
    assert body["pagination"] == {
        "page": 0,
        "size": 10,
        "totalElements": 25,
        "totalPages": 3,
        "hasNext": True,
        "hasPrevious": False,
    }

    last = client.get("/api/v1/realms/realm-A/invitations?page=2&size=10", headers=_auth()).json()
    assert len(last["data"]) == 5
    assert last["pagination"]["hasNext"] is False
    assert last["pagination"]["hasPrevious"] is True


def test_list_defaults_and_clamps(client):
    r = client.get("/api/v1/realms/realm-A/invitations", headers=_auth())
    assert r.status_code == 200
    assert r.json()["pagination"]["size"] == 20
    assert r.json()["pagination"]["page"] == 0

    r = client.get("/api/v1/realms/realm-A/invitations?page=-4&size=1000", headers=_auth())
    assert r.json()["pagination"]["page"] == 0
    assert r.json()["pagination"]["size"] == 100


def test_list_shows_consumed_tokens_as_used(client, SessionLocal):
    token = client.post(
        "/api/v1/realms/realm-A/invitations/generate", json={}, headers=_auth()
    ).json()["token"]

    db = SessionLocal()
    try:
        assert InvitationService(InvitationStore(db)).mark_as_used(token) is True
        db.commit()
    finally:
        db.close()

    data = client.get("/api/v1/realms/realm-A/invitations", headers=_auth()).json()["data"]
    assert [item["used"] for item in data if item["token"] == token] == [True]


def test_list_forbidden_without_admin_role(client):
    r = client.get("/api/v1/realms/realm-A/invitations", headers=_auth(roles=[]))
    assert r.status_code == 403


def test_list_failure_is_a_500(client):
    class _Broken:
        def list_paginated(self, page, size):
            raise RuntimeError("db gone")

    app.dependency_overrides[get_invitation_service] = lambda: _Broken()

    r = client.get("/api/v1/realms/realm-A/invitations", headers=_auth())
    assert r.status_code == 500
    assert r.json()["detail"]["code"] == "INVITATION_LIST_FAILED"


# --- Health ------------------------------------------------------------------

def test_health_endpoints(client):
    assert client.get("/api/v1/health").json()["status"] == "ok"

    r = client.get("/api/v1/health/db")
    assert r.status_code == 200
    assert r.json()["db"] == "up"
    assert r.json()["invitations"] == 0
