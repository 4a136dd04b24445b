from sqlalchemy import create_engine
from werkzeug.security import check_password_hash, generate_password_hash

from app.trekker.models import Base, Role, User
from app.trekker.rbac import PERMISSIONS
from scripts.attach_admin_role import attach_admin_role
from scripts.init_db import seed_only, session_scope


def _db(tmp_path) -> str:
    url = f"sqlite:///{tmp_path/'seed.db'}"
    engine = create_engine(url, future=True)
    Base.metadata.create_all(bind=engine)
    engine.dispose()
    return url


def test_seed_is_idempotent(tmp_path, monkeypatch):
    url = _db(tmp_path)
    monkeypatch.setenv("ADMIN_EMAIL", "Owner@Example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "first")
    seed_only(database_url=url)

    monkeypatch.setenv("ADMIN_PASSWORD", "second")
    seed_only(database_url=url)

    with session_scope(url) as s:
        admin = s.query(Role).filter(Role.key == "admin").one()
        assert sorted(p.key for p in admin.permissions) == sorted(PERMISSIONS)
        user = s.query(User).filter(User.email == "owner@example.com").one()
        assert [r.key for r in user.roles] == ["admin"]
        # Existing passwords are never overwritten
        assert check_password_hash(user.password_hash, "first")


def test_attach_admin_role(tmp_path, monkeypatch):
    url = _db(tmp_path)
    monkeypatch.setenv("ADMIN_EMAIL", "owner@example.com")
    assert attach_admin_role("editor@example.com", database_url=url) == "User not found: editor@example.com"

    with session_scope(url) as s:
        s.add(User(email="editor@example.com", password_hash=generate_password_hash("pw"), is_active=True))
    assert attach_admin_role("editor@example.com", database_url=url) == "Admin role not found. Run python scripts/init_db.py first."

    seed_only(database_url=url)

    assert attach_admin_role("Editor@example.com", database_url=url) == "Admin role attached to Editor@example.com"
    assert attach_admin_role("editor@example.com", database_url=url) == "User already has admin role: editor@example.com"
