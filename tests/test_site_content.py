import urllib.request
from collections import defaultdict

import pytest
from werkzeug.security import generate_password_hash

from app.trekker import auth, create_app
from app.trekker.db import session_scope
from app.trekker.media import CloudinaryClient
from app.trekker.models import AuditEvent, Base, Permission, Role, User
from app.trekker.rbac import PERMISSIONS


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")
    monkeypatch.setenv("CLOUDINARY_API_KEY", "key")
    monkeypatch.setenv("CLOUDINARY_API_SECRET", "secret")
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
def destroyed(monkeypatch):
    """Records hosted deletes instead of calling the CDN."""
    calls = []

    def fake_post_form(self, url, fields, *, retries=2):
        calls.append((url, fields["public_id"]))
        return {"result": "ok"}

    monkeypatch.setattr(CloudinaryClient, "post_form", fake_post_form)
    return calls


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client) -> dict:
    client.post("/auth/login", json={"email": "admin@example.com", "password": "pw"})
    return {"X-CSRF-Token": client.get("/auth/session").json["csrf_token"]}


def test_faq_crud_and_public_order(client, app):
    h = _login(client)
    r = client.post("/api/admin/faqs", json={"question": "Second?", "answer": "<p>B</p>", "display_order": 2}, headers=h)
    assert r.status_code == 201
    r = client.post("/api/admin/faqs", json={"question": "First?", "answer": "<p>A</p>", "display_order": 1}, headers=h)
    first_id = r.json["data"]["id"]

    r = client.get("/api/faqs")
    assert [f["question"] for f in r.json["faqs"]] == ["First?", "Second?"]

    r = client.patch(f"/api/admin/faqs/{first_id}", json={"question": "Renamed?"}, headers=h)
    assert r.status_code == 200
    assert r.json["data"]["question"] == "Renamed?"
    assert r.json["data"]["answer"] == "<p>A</p>"

    r = client.delete(f"/api/admin/faqs/{first_id}", headers=h)
    assert r.json == {"success": True, "hostedCleanup": True}
    assert client.get(f"/api/admin/faqs/{first_id}").status_code == 404

    with session_scope(app) as s:
        actions = {e.action for e in s.query(AuditEvent).all()}
    assert {"faqs.create", "faqs.edit", "faqs.delete"} <= actions


def test_new_faq_goes_to_the_end(client):
    h = _login(client)
    client.post("/api/admin/faqs", json={"question": "A", "answer": "a", "display_order": 4}, headers=h)
    r = client.post("/api/admin/faqs", json={"question": "B", "answer": "b"}, headers=h)
    assert r.json["data"]["display_order"] == 5


def test_faq_requires_answer_text(client):
    h = _login(client)
    r = client.post("/api/admin/faqs", json={"question": "Q", "answer": "<p> </p>"}, headers=h)
    assert r.status_code == 400
    assert "Answer is required." in r.json["errors"]


def test_faq_answer_list_paragraphs_are_unwrapped(client):
    h = _login(client)
    r = client.post(
        "/api/admin/faqs",
        json={"question": "Q", "answer": "<ul><li><p>One</p></li><li><p>Two</p><p>more</p></li></ul>"},
        headers=h,
    )
    assert r.json["data"]["answer"] == "<ul><li>One</li><li>Two<br>more</li></ul>"


def test_testimonial_rating_bounds(client):
    h = _login(client)
    base = {"name": "Asha", "title": "Great trip", "description": "Loved it", "location": "Pune"}
    r = client.post("/api/admin/testimonials", json={**base, "rating": 6}, headers=h)
    assert r.status_code == 400
    assert "Rating must be at most 5." in r.json["errors"]

    r = client.post("/api/admin/testimonials", json=base, headers=h)
    assert r.status_code == 201
    assert r.json["data"]["rating"] == 5
    assert client.get("/api/testimonials").json["testimonials"][0]["name"] == "Asha"


def test_inactive_banners_hidden_from_public(client):
    h = _login(client)
    client.post("/api/admin/offer-banners", json={"image_url": "https://cdn.example/a.jpg", "alt_title": "Live"}, headers=h)
    client.post(
        "/api/admin/offer-banners",
        json={"image_url": "https://cdn.example/b.jpg", "alt_title": "Off", "is_active": False},
        headers=h,
    )

    banners = client.get("/api/offer-banners").json["banners"]
    assert [b["alt_title"] for b in banners] == ["Live"]
    assert "is_active" not in banners[0]
    assert len(client.get("/api/admin/offer-banners").json["data"]) == 2


def test_banner_image_url_must_be_a_link(client):
    h = _login(client)
    r = client.post("/api/admin/offer-banners", json={"image_url": "javascript:alert(1)"}, headers=h)
    assert r.status_code == 400


def test_marquee_texts_public_envelope(client):
    h = _login(client)
    client.post("/api/admin/banner-marquee-texts", json={"text": "Monsoon treks open"}, headers=h)
    texts = client.get("/api/banner-marquee-texts").json["texts"]
    assert texts[0]["text"] == "Monsoon treks open"
    assert texts[0]["sort_order"] == 1


def test_recognition_delete_removes_hosted_image(client, destroyed):
    h = _login(client)
    r = client.post(
        "/api/admin/recognitions",
        json={"image_url": "https://cdn.example/r.jpg", "title": "Award", "cloudinary_public_id": "rec_1"},
        headers=h,
    )
    rid = r.json["data"]["id"]
    r = client.delete(f"/api/admin/recognitions/{rid}", headers=h)
    assert r.json["hostedCleanup"] is True
    assert destroyed == [("https://api.cloudinary.com/v1_1/demo/image/destroy", "rec_1")]


def test_replaced_banner_image_is_cleaned_up(client, destroyed):
    h = _login(client)
    r = client.post(
        "/api/admin/offer-banners",
        json={"image_url": "https://cdn.example/a.jpg", "cloudinary_public_id": "old_id"},
        headers=h,
    )
    bid = r.json["data"]["id"]
    client.put(
        f"/api/admin/offer-banners/{bid}",
        json={"image_url": "https://cdn.example/b.jpg", "cloudinary_public_id": "new_id"},
        headers=h,
    )
    assert [pid for _, pid in destroyed] == ["old_id"]


def test_hosted_cleanup_failure_still_deletes_row(client, monkeypatch):
    def failing(self, url, fields, *, retries=2):
        return {"result": "not found"}

    monkeypatch.setattr(CloudinaryClient, "post_form", failing)
    h = _login(client)
    r = client.post(
        "/api/admin/gallery",
        json={"image_url": "https://cdn.example/g.jpg", "image_path": "gallery_1"},
        headers=h,
    )
    gid = r.json["data"]["id"]
    r = client.delete(f"/api/admin/gallery/{gid}", headers=h)
    assert r.status_code == 200
    assert r.json == {"success": True, "hostedCleanup": False}
    assert client.get("/api/gallery").json["images"] == []


def test_hosted_cleanup_timeout_still_deletes_row(client, monkeypatch):
    calls = []

    def hanging(req, timeout=None):
        calls.append(req.full_url)
        raise TimeoutError("timed out")

    monkeypatch.setattr(urllib.request, "urlopen", hanging)
    monkeypatch.setattr("app.trekker.media.time.sleep", lambda seconds: None)
    h = _login(client)
    r = client.post(
        "/api/admin/gallery",
        json={"image_url": "https://cdn.example/g.jpg", "image_path": "gallery_1"},
        headers=h,
    )
    gid = r.json["data"]["id"]
    r = client.delete(f"/api/admin/gallery/{gid}", headers=h)
    assert r.status_code == 200
    assert r.json == {"success": True, "hostedCleanup": False}
    assert len(calls) == 3
    assert client.get("/api/gallery").json["images"] == []


def test_gallery_reorder_and_pagination(client):
    h = _login(client)
    ids = []
    for n in range(3):
        r = client.post("/api/admin/gallery", json={"image_url": f"https://cdn.example/{n}.jpg"}, headers=h)
        ids.append(r.json["data"]["id"])

    r = client.put(
        "/api/admin/gallery/reorder",
        json={"order": [{"id": ids[2], "display_order": 1}, {"id": ids[0], "display_order": 3}]},
        headers=h,
    )
    assert r.json == {"success": True, "updated": 2}

    r = client.get("/api/gallery?page=1&pageSize=2")
    body = r.json
    assert [i["id"] for i in body["images"]] == [ids[2], ids[1]]
    assert body["pagination"]["total"] == 3
    assert body["pagination"]["hasNextPage"] is True

    assert client.get("/api/gallery?page=0").status_code == 400


def test_gallery_reorder_unknown_id_changes_nothing(client):
    h = _login(client)
    r = client.post("/api/admin/gallery", json={"image_url": "https://cdn.example/0.jpg"}, headers=h)
    gid = r.json["data"]["id"]
    r = client.put(
        "/api/admin/gallery/reorder",
        json=[{"id": gid, "display_order": 9}, {"id": 999, "display_order": 1}],
        headers=h,
    )
    assert r.status_code == 400
    assert "Unknown id: 999" in r.json["errors"]
    assert client.get(f"/api/admin/gallery/{gid}").json["data"]["display_order"] == 1


def test_policies_return_latest_document(client):
    assert client.get("/api/privacy-policy").json == {"policy": None}

    h = _login(client)
    for title in ("Old privacy", "New privacy"):
        client.post(
            "/api/admin/privacy-policy",
            json={"main_title": title, "main_content": "<p>We respect your data.</p>"},
            headers=h,
        )
    client.post("/api/admin/terms-and-conditions", json={"main_title": "Terms", "main_content": "<p>T</p>"}, headers=h)

    assert client.get("/api/privacy-policy").json["policy"]["main_title"] == "New privacy"
    assert client.get("/api/terms-and-conditions").json["terms"]["main_title"] == "Terms"
    assert client.get("/api/cancellation-policy").json["policy"] is None
    assert len(client.get("/api/admin/privacy-policy").json["data"]) == 2


def test_policy_kinds_do_not_leak_across_endpoints(client):
    h = _login(client)
    r = client.post("/api/admin/terms-and-conditions", json={"main_title": "Terms", "main_content": "<p>T</p>"}, headers=h)
    tid = r.json["data"]["id"]
    assert client.get(f"/api/admin/privacy-policy/{tid}").status_code == 404


def test_content_edit_permission_required(client, app):
    with session_scope(app) as s:
        viewer = Role(key="viewer", name="Viewer")
        viewer.permissions.append(s.query(Permission).filter(Permission.key == "admin.view").one())
        u = User(email="viewer@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        u.roles.append(viewer)
        s.add_all([viewer, u])

    client.post("/auth/login", json={"email": "viewer@example.com", "password": "pw"})
    token = client.get("/auth/session").json["csrf_token"]
    assert client.get("/api/admin/faqs").status_code == 200
    r = client.post("/api/admin/faqs", json={"question": "Q", "answer": "A"}, headers={"X-CSRF-Token": token})
    assert r.status_code == 403
    assert r.json["missing_permission"] == "content.edit"
