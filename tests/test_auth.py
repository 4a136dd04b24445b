"""Tests for login, signup, session polling, logout and CSRF."""
from collections import defaultdict
from datetime import datetime, timedelta

import pytest
from werkzeug.security import generate_password_hash

from app.trekker import auth, create_app
from app.trekker.db import session_scope
from app.trekker.models import AuditEvent, Base, Permission, Role, User
from app.trekker.rbac import PERMISSIONS


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("ALLOW_SIGNUP", "1")
    monkeypatch.setattr(auth, "_login_attempts", defaultdict(list))

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    with session_scope(app) as s:
        r = Role(key="admin", name="Administrator")
        for key, name in PERMISSIONS.items():
            r.permissions.append(Permission(key=key, name=name))
        u = User(email="admin@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        u.roles.append(r)
        s.add_all([r, u])
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, email="admin@example.com", password="pw") -> str:
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200
    return client.get("/auth/session").json["csrf_token"]


def test_login_invalid_credentials(client, app):
    r = client.post("/auth/login", json={"email": "admin@example.com", "password": "wrong"})
    assert r.status_code == 401
    assert r.json["error"] == "Invalid credentials."

    with session_scope(app) as s:
        ev = s.query(AuditEvent).filter(AuditEvent.action == "auth.login_failed").one()
        assert ev.entity_id == "admin@example.com"


def test_login_accepts_form_and_keeps_local_redirect(client):
    r = client.post("/auth/login", data={"email": "ADMIN@example.com", "password": "pw", "redirectTo": "/dashboard/packages"})
    assert r.status_code == 200
    assert r.json["redirectTo"] == "/dashboard/packages"


def test_login_rejects_offsite_redirect(client):
    r = client.post("/auth/login", json={"email": "admin@example.com", "password": "pw", "redirectTo": "//evil.example"})
    assert r.json["redirectTo"] == "/dashboard"


def test_login_rate_limited(client):
    for _ in range(5):
        client.post("/auth/login", json={"email": "admin@example.com", "password": "nope"})
    r = client.post("/auth/login", json={"email": "admin@example.com", "password": "pw"})
    assert r.status_code == 429


def test_stale_rate_limit_entries_are_dropped(client):
    auth._login_attempts["203.0.113.7"].append(datetime.utcnow() - timedelta(hours=1))
    _login(client)
    assert dict(auth._login_attempts) == {}


def test_session_status(client):
    r = client.get("/auth/session")
    assert r.json["authenticated"] is False
    assert r.json["csrf_token"]

    _login(client)
    r = client.get("/auth/session")
    body = r.json
    assert body["authenticated"] is True
    assert body["user"]["email"] == "admin@example.com"
    assert "packages.edit" in body["user"]["permissions"]
    assert body["expires_at"].endswith("Z")


def test_signup_creates_user_and_logs_in(client, app):
    r = client.post("/auth/signup", json={"email": "New@Example.com", "password": "secret1"})
    assert r.status_code == 201
    assert r.json["requiresEmailConfirmation"] is False

    r = client.get("/auth/session")
    assert r.json["user"]["email"] == "new@example.com"
    # No role until an admin attaches one
    assert r.json["user"]["roles"] == []
    assert client.get("/api/admin/").status_code == 403


def test_signup_validation(client):
    r = client.post("/auth/signup", json={"email": "not-an-email", "password": "secret1"})
    assert r.status_code == 400
    assert r.json["error"] == "Invalid email address"

    r = client.post("/auth/signup", json={"email": "a@b.co", "password": "123"})
    assert r.status_code == 400
    assert "at least 6" in r.json["error"]

    r = client.post("/auth/signup", data="{not json", content_type="application/json")
    assert r.status_code == 400


def test_signup_duplicate_email(client):
    r = client.post("/auth/signup", json={"email": "admin@example.com", "password": "secret1"})
    assert r.status_code == 409


def test_signup_disabled(client, app):
    app.config["ALLOW_SIGNUP"] = False
    r = client.post("/auth/signup", json={"email": "x@example.com", "password": "secret1"})
    assert r.status_code == 404


def test_logout_clears_session(client):
    _login(client)
    r = client.post("/auth/logout")
    assert r.status_code == 200
    assert client.get("/auth/session").json["authenticated"] is False
    assert client.get("/api/admin/").status_code == 401


def test_admin_write_requires_csrf_token(client):
    token = _login(client)
    payload = {"question": "Is it safe?", "answer": "Yes."}

    r = client.post("/api/admin/faqs", json=payload)
    assert r.status_code == 400
    assert "CSRF" in r.json["error"]

    r = client.post("/api/admin/faqs", json=payload, headers={"X-CSRF-Token": token})
    assert r.status_code == 201


def test_anonymous_admin_write_is_unauthorized(client):
    r = client.post("/api/admin/faqs", json={"question": "Q", "answer": "A"})
    assert r.status_code == 401


def test_audit_trail_lists_logins(client):
    client.post("/auth/login", json={"email": "admin@example.com", "password": "wrong"})
    _login(client)

    r = client.get("/api/admin/audit?action=auth.login")
    actions = [e["action"] for e in r.json["events"]]
    assert actions == ["auth.login", "auth.login_failed"]

    r = client.get("/api/admin/audit?actor_email=ADMIN@")
    assert {e["action"] for e in r.json["events"]} == {"auth.login"}

    assert client.get("/api/admin/audit?date_from=yesterday").status_code == 400
