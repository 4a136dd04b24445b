from collections import defaultdict

import pytest
from werkzeug.security import generate_password_hash

from app.trekker import auth, create_app
from app.trekker.db import session_scope
from app.trekker.mailer import MailError, SmtpMailer
from app.trekker.models import AuditEvent, Base, Permission, Role, User
from app.trekker.modules.enquiries.models import PdfEnquiry
from app.trekker.rbac import PERMISSIONS


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("SITE_NAME", "Imagination Trekker")
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMTP_USER", "mailer@example.com")
    monkeypatch.setenv("SMTP_PASS", "smtp-secret")
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


@pytest.fixture()
def outbox(monkeypatch):
    sent = []

    def fake_send(self, *, to, subject, text, html=None):
        sent.append({"to": to, "subject": subject, "text": text, "html": html})

    monkeypatch.setattr(SmtpMailer, "send", fake_send)
    return sent


def _login(client) -> dict:
    client.post("/auth/login", json={"email": "admin@example.com", "password": "pw"})
    return {"X-CSRF-Token": client.get("/auth/session").json["csrf_token"]}


PDF_REQUEST = {
    "fullName": "Meera Shah",
    "whatsapp": "+91 90000 00000",
    "email": "meera@example.com",
    "pdfUrl": "https://cdn.example/packages/pdf_1.pdf",
    "packageName": "Kedarkantha",
}


def test_contact_enquiry(client):
    r = client.post(
        "/api/contact",
        json={"fullName": " Meera ", "email": "meera@example.com", "message": "Is May a good month?"},
    )
    assert r.status_code == 201
    assert r.json["success"] is True
    assert r.json["message"] == "Thank you! We'll get back to you within 24 hours."
    assert r.json["data"]["full_name"] == "Meera"
    assert r.json["data"]["phone"] is None


def test_contact_enquiry_validation(client):
    r = client.post("/api/contact", json={"fullName": "Meera", "email": "meera@example.com"})
    assert r.status_code == 400
    assert r.json["error"] == "Full name, email, and message are required"

    r = client.post("/api/contact", json={"fullName": "Meera", "email": "meera", "message": "Hi"})
    assert r.json["error"] == "Invalid email address"


def test_modal_enquiry_accepts_form_posts(client):
    r = client.post("/api/modal-enquiries", data={"fullName": "Arjun", "whatsapp": "98765", "message": "Call me"})
    assert r.status_code == 201
    assert r.json["data"]["whatsapp"] == "98765"

    r = client.post("/api/modal-enquiries", data={"fullName": "Arjun", "message": "Call me"})
    assert r.status_code == 400
    assert r.json["error"] == "Full name, WhatsApp number, and message are required"


def test_send_pdf_link_emails_and_records(client, app, outbox):
    r = client.post("/api/send-pdf-link", json=PDF_REQUEST)
    assert r.status_code == 200
    assert r.json["success"] is True

    assert len(outbox) == 1
    mail = outbox[0]
    assert mail["to"] == "meera@example.com"
    assert mail["subject"] == "Your Package Document for Kedarkantha - Imagination Trekker"
    assert PDF_REQUEST["pdfUrl"] in mail["html"]
    assert "Hi Meera Shah" in mail["text"]

    with session_scope(app) as s:
        row = s.query(PdfEnquiry).one()
        assert row.package_name == "Kedarkantha"


def test_send_pdf_link_rejects_non_http_urls(client, outbox):
    r = client.post("/api/send-pdf-link", json={**PDF_REQUEST, "pdfUrl": "javascript:alert(1)"})
    assert r.status_code == 400
    assert outbox == []


def test_send_pdf_link_mail_failure_records_nothing(client, app, monkeypatch):
    def failing(self, **kwargs):
        raise MailError("connection refused")

    monkeypatch.setattr(SmtpMailer, "send", failing)
    r = client.post("/api/send-pdf-link", json=PDF_REQUEST)
    assert r.status_code == 500
    assert r.json["error"] == "Failed to send email. Please try again."

    with session_scope(app) as s:
        assert s.query(PdfEnquiry).count() == 0


def test_send_pdf_link_without_smtp(client, app):
    app.config["SMTP_HOST"] = ""
    r = client.post("/api/send-pdf-link", json=PDF_REQUEST)
    assert r.status_code == 500
    assert r.json["error"] == "Email service is not configured. Please contact support."


def test_admin_list_search_and_paginate(client):
    for n in range(3):
        client.post("/api/contact", json={"fullName": f"Guest {n}", "email": f"g{n}@example.com", "message": "Hello"})
    client.post("/api/contact", json={"fullName": "Priya", "email": "priya@example.com", "message": "Group booking"})

    h = _login(client)
    r = client.get("/api/admin/contact-enquiries?page=1&pageSize=2", headers=h)
    assert r.status_code == 200
    assert [e["full_name"] for e in r.json["data"]] == ["Priya", "Guest 2"]
    assert r.json["pagination"]["total"] == 4
    assert r.json["pagination"]["totalPages"] == 2

    r = client.get("/api/admin/contact-enquiries?search=group")
    assert [e["full_name"] for e in r.json["data"]] == ["Priya"]

    assert client.get("/api/admin/contact-enquiries?pageSize=500").status_code == 400


def test_admin_delete_enquiry(client, app):
    r = client.post("/api/modal-enquiries", json={"fullName": "Arjun", "whatsapp": "98765", "message": "Hi"})
    eid = r.json["data"]["id"]

    h = _login(client)
    r = client.delete(f"/api/admin/modal-enquiries/{eid}", headers=h)
    assert r.json == {"success": True}
    assert client.get("/api/admin/modal-enquiries").json["data"] == []
    assert client.delete(f"/api/admin/modal-enquiries/{eid}", headers=h).status_code == 404

    with session_scope(app) as s:
        assert s.query(AuditEvent).filter(AuditEvent.action == "modal-enquiries.delete").count() == 1


def test_enquiries_are_private(client):
    assert client.get("/api/admin/pdf-enquiries").status_code == 401
