#!/usr/bin/env python3
"""
Seed the dashboard permissions, the admin role and the first admin account.

Safe to re-run: missing rows are added, permission names are refreshed and an
existing admin password is left alone.

Usage:
  ADMIN_EMAIL=owner@example.com ADMIN_PASSWORD=... python scripts/init_db.py
"""
from __future__ import annotations

import os
import sys
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from werkzeug.security import generate_password_hash

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.trekker.models import Permission, Role, User  # noqa: E402
from app.trekker.rbac import PERMISSIONS  # noqa: E402

DEFAULT_ADMIN_EMAIL = "admin@imaginationtrekker.com"


def resolve_database_url(explicit: str | None = None) -> str:
    return (explicit or os.environ.get("DATABASE_URL") or "sqlite:///trekker.db").strip()


@contextmanager
def session_scope(db_url: str) -> Generator[Session, None, None]:
    engine = create_engine(db_url, future=True, pool_pre_ping=True)
    s = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()


def seed_permissions(s: Session) -> list[Permission]:
    existing = {p.key: p for p in s.query(Permission).all()}
    perms = []
    for key, name in PERMISSIONS.items():
        p = existing.get(key)
        if p is None:
            p = Permission(key=key, name=name)
            s.add(p)
        else:
            p.name = name
        perms.append(p)
    return perms


def seed_admin_role(s: Session, perms: list[Permission]) -> Role:
    role = s.query(Role).filter(Role.key == "admin").one_or_none()
    if role is None:
        role = Role(key="admin", name="Administrator")
        s.add(role)
    for p in perms:
        if p not in role.permissions:
            role.permissions.append(p)
    return role


def seed_admin_user(s: Session, role: Role, email: str, password: str) -> User:
    user = s.query(User).filter(User.email == email).one_or_none()
    if user is None:
        user = User(email=email, password_hash=generate_password_hash(password), is_active=True)
        s.add(user)
    if role not in user.roles:
        user.roles.append(role)
    return user


def seed_only(*, database_url: str | None = None) -> None:
    email = (os.environ.get("ADMIN_EMAIL") or DEFAULT_ADMIN_EMAIL).strip().lower()
    password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    with session_scope(resolve_database_url(database_url)) as s:
        role = seed_admin_role(s, seed_permissions(s))
        seed_admin_user(s, role, email, password)

    print(f"Seeded {len(PERMISSIONS)} permissions, admin role and admin user {email}.")


if __name__ == "__main__":
    seed_only()
