import io
import json
import urllib.error
import urllib.request
from collections import defaultdict

import pytest
from werkzeug.security import generate_password_hash

from app.trekker import auth, create_app
from app.trekker.db import session_scope
from app.trekker.media import CloudinaryClient, MediaError, sign_params
from app.trekker.models import AuditEvent, Base, Permission, Role, User
from app.trekker.rbac import PERMISSIONS

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.delenv("STORAGE_PUBLIC_BASE_URL", raising=False)
    monkeypatch.delenv("CLOUDINARY_UPLOAD_PRESET", raising=False)
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
def client(app):
    return app.test_client()


@pytest.fixture()
def cdn(monkeypatch):
    """Fake CDN: records posted forms and answers like the upload API."""
    posts = []

    def fake_post_form(self, url, fields, *, retries=2):
        posts.append((url, fields))
        if url.endswith("/destroy"):
            return {"result": "ok"}
        public_id = fields["public_id"]
        if fields.get("folder"):
            public_id = f"{fields['folder']}/{public_id}"
        return {"secure_url": f"https://res.example/{public_id}", "public_id": public_id}

    monkeypatch.setattr(CloudinaryClient, "post_form", fake_post_form)
    monkeypatch.setattr(CloudinaryClient, "is_publicly_reachable", lambda self, url: True)
    return posts


def _login(client) -> dict:
    client.post("/auth/login", json={"email": "admin@example.com", "password": "pw"})
    return {"X-CSRF-Token": client.get("/auth/session").json["csrf_token"]}


def _file(data: bytes, name: str, mimetype: str) -> dict:
    return {"file": (io.BytesIO(data), name, mimetype)}


def test_image_upload(client, app, cdn):
    h = _login(client)
    r = client.post("/api/admin/media/image", data=_file(PNG, "a.png", "image/png"), headers=h)
    assert r.status_code == 200
    assert r.json["publicId"].startswith("gallery_")
    assert r.json["url"] == f"https://res.example/{r.json['publicId']}"

    url, fields = cdn[0]
    assert url == "https://api.cloudinary.com/v1_1/demo/image/upload"
    assert fields["file"].startswith("data:image/png;base64,")
    assert fields["api_key"] == "key"
    assert fields["signature"] == sign_params({"public_id": fields["public_id"], "timestamp": fields["timestamp"]}, "secret")

    with session_scope(app) as s:
        assert s.query(AuditEvent).filter(AuditEvent.action == "media.image_upload").count() == 1


def test_image_upload_rejects_bad_input(client, cdn):
    h = _login(client)
    r = client.post("/api/admin/media/image", data={}, headers=h)
    assert r.status_code == 400
    assert r.json["error"] == "No file provided"

    r = client.post("/api/admin/media/image", data=_file(b"%PDF-1.4", "a.pdf", "application/pdf"), headers=h)
    assert r.json["error"] == "File must be an image"
    assert cdn == []


def test_image_upload_cdn_failure(client, monkeypatch):
    def failing(self, url, fields, *, retries=2):
        raise MediaError("Invalid cloud_name demo")

    monkeypatch.setattr(CloudinaryClient, "post_form", failing)
    h = _login(client)
    r = client.post("/api/admin/media/image", data=_file(PNG, "a.png", "image/png"), headers=h)
    assert r.status_code == 500
    assert r.json["error"] == "Invalid cloud_name demo"


def test_pdf_upload_reports_blocked_delivery(client, cdn, monkeypatch):
    monkeypatch.setattr(CloudinaryClient, "is_publicly_reachable", lambda self, url: False)
    h = _login(client)
    r = client.post("/api/admin/media/pdf", data=_file(b"%PDF-1.4 doc", "trek.pdf", "application/pdf"), headers=h)
    assert r.status_code == 200
    assert r.json["publicId"].startswith("packages/pdf_")
    assert r.json["deliveryBlocked"] is True
    assert cdn[0][0] == "https://api.cloudinary.com/v1_1/demo/raw/upload"

    r = client.post("/api/admin/media/pdf", data=_file(PNG, "a.png", "image/png"), headers=h)
    assert r.status_code == 400
    assert r.json["error"] == "File must be a PDF"


def test_pdf_signature(client):
    h = _login(client)
    r = client.get("/api/admin/media/pdf-signature", headers=h)
    body = r.json
    assert body["cloudName"] == "demo"
    assert body["folder"] == "packages"
    expected = sign_params({"folder": "packages", "public_id": body["publicId"], "timestamp": body["timestamp"]}, "secret")
    assert body["signature"] == expected


def test_pdf_signature_without_credentials(client, app):
    app.config["CLOUDINARY_API_SECRET"] = ""
    h = _login(client)
    r = client.get("/api/admin/media/pdf-signature", headers=h)
    assert r.status_code == 500


def test_delete_hosted_asset(client, cdn):
    h = _login(client)
    r = client.post("/api/admin/media/delete", json={"publicId": "packages/pdf_1", "resourceType": "raw"}, headers=h)
    assert r.json == {"success": True}
    assert cdn[0][0] == "https://api.cloudinary.com/v1_1/demo/raw/destroy"

    r = client.post("/api/admin/media/delete", json={"resourceType": "raw"}, headers=h)
    assert r.status_code == 400
    assert r.json["error"] == "Public ID is required"


def test_delete_hosted_asset_failure(client, monkeypatch):
    monkeypatch.setattr(CloudinaryClient, "post_form", lambda self, url, fields, retries=2: {"result": "not found"})
    h = _login(client)
    r = client.post("/api/admin/media/delete", json={"publicId": "gone"}, headers=h)
    assert r.status_code == 500
    assert r.json["error"] == "Failed to delete image"


def test_generic_upload_to_local_storage(client, tmp_path):
    h = _login(client)
    data = {**_file(PNG, "Photo.PNG", "image/png"), "bucket": "avatars", "folder": "team/2026"}
    r = client.post("/api/admin/uploads", data=data, headers=h)
    assert r.status_code == 200
    body = r.json
    assert body["bucket"] == "avatars"
    assert body["fileName"].endswith(".png")
    assert body["path"] == f"team/2026/{body['fileName']}"
    assert body["url"] == f"/media/avatars/{body['path']}"
    assert (tmp_path / "storage" / "avatars" / "team" / "2026" / body["fileName"]).read_bytes() == PNG

    r = client.get(body["url"])
    assert r.status_code == 200
    assert r.data == PNG
    assert r.mimetype == "image/png"


def test_generic_upload_validation(client):
    h = _login(client)
    r = client.post("/api/admin/uploads", data={**_file(PNG, "a.png", "image/png"), "folder": "../etc"}, headers=h)
    assert r.json["error"] == "Invalid folder name."

    r = client.post("/api/admin/uploads", data=_file(b"GIF89a", "a.svg", "image/svg+xml"), headers=h)
    assert r.json["error"] == "Invalid file type. Only JPEG, PNG, WebP, and GIF images are allowed."

    big = b"\x00" * (5 * 1024 * 1024 + 1)
    r = client.post("/api/admin/uploads", data=_file(big, "big.jpg", "image/jpeg"), headers=h)
    assert r.status_code == 400
    assert r.json["error"] == "File size too large. Maximum size is 5MB"


def test_generic_upload_s3_misconfigured(client, app):
    app.config["STORAGE_BACKEND"] = "s3"
    app.config["S3_BUCKET"] = ""
    h = _login(client)
    r = client.post("/api/admin/uploads", data=_file(PNG, "a.png", "image/png"), headers=h)
    assert r.status_code == 500
    assert "S3_BUCKET" in r.json["error"]


def test_missing_local_file_is_404(client):
    assert client.get("/media/uploads/nothing.png").status_code == 404


def test_uploads_need_media_permission(client):
    r = client.post("/api/admin/media/image", data=_file(PNG, "a.png", "image/png"))
    assert r.status_code == 401


class _Response(io.BytesIO):
    status = 200


def _json_response(body: dict) -> _Response:
    return _Response(json.dumps(body).encode("utf-8"))


def _http_error(code: int, body: bytes = b"") -> urllib.error.HTTPError:
    return urllib.error.HTTPError("https://api.example", code, "error", {}, io.BytesIO(body))


@pytest.fixture()
def wire(monkeypatch):
    """Scripted urlopen: each call pops the next outcome (a response or an exception)."""
    state = {"outcomes": [], "requests": [], "sleeps": []}

    def fake_urlopen(req, timeout=None):
        state["requests"].append(req)
        outcome = state["outcomes"].pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    monkeypatch.setattr("app.trekker.media.time.sleep", state["sleeps"].append)
    return state


def _client() -> CloudinaryClient:
    return CloudinaryClient(cloud_name="demo", api_key="key", api_secret="secret")


def test_client_retries_after_rate_limit(wire):
    wire["outcomes"] = [_http_error(429), _json_response({"result": "ok"})]
    _client().destroy("gallery_1")
    assert wire["sleeps"] == [2]
    req = wire["requests"][-1]
    assert req.full_url == "https://api.cloudinary.com/v1_1/demo/image/destroy"
    assert b"public_id=gallery_1" in req.data


def test_client_retries_connection_errors(wire):
    wire["outcomes"] = [
        urllib.error.URLError("refused"),
        TimeoutError("timed out"),
        _json_response({"secure_url": "https://res.example/p.png", "public_id": "p"}),
    ]
    result = _client().upload_image(PNG, "image/png", public_id="p")
    assert result.url == "https://res.example/p.png"
    assert wire["sleeps"] == [1, 2]


def test_client_gives_up_after_retries(wire):
    wire["outcomes"] = [TimeoutError("timed out")] * 3
    with pytest.raises(MediaError, match="failed after retries"):
        _client().destroy("gallery_1")
    assert len(wire["requests"]) == 3


def test_client_reports_cdn_error_message(wire):
    wire["outcomes"] = [_http_error(401, b'{"error": {"message": "Invalid Signature"}}')]
    with pytest.raises(MediaError, match="^Invalid Signature$"):
        _client().destroy("gallery_1")


def test_client_reports_plain_http_error(wire):
    wire["outcomes"] = [_http_error(502, b"bad gateway")]
    with pytest.raises(MediaError, match="HTTP 502 from media service: bad gateway"):
        _client().destroy("gallery_1")


def test_destroy_requires_ok_result(wire):
    wire["outcomes"] = [_json_response({"result": "not found"})]
    with pytest.raises(MediaError, match="not found"):
        _client().destroy("packages/pdf_1", "raw")
    assert wire["requests"][0].full_url.endswith("/raw/destroy")
