#!/usr/bin/env python3
"""
Give an existing account the admin role. Accounts created through
/auth/signup start without a role and cannot open the dashboard until this
has been run for them.

Usage:
  python scripts/attach_admin_role.py --email editor@example.com
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.trekker.models import Role, User  # noqa: E402
from scripts.init_db import resolve_database_url, session_scope  # noqa: E402


def attach_admin_role(email: str, *, database_url: str | None = None) -> str:
    """Returns a one-line outcome for the console."""
    with session_scope(resolve_database_url(database_url)) as s:
        user = s.query(User).filter(User.email == email.strip().lower()).one_or_none()
        if user is None:
            return f"User not found: {email}"
        role = s.query(Role).filter(Role.key == "admin").one_or_none()
        if role is None:
            return "Admin role not found. Run python scripts/init_db.py first."
        if role in user.roles:
            return f"User already has admin role: {email}"
        user.roles.append(role)
    return f"Admin role attached to {email}"


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--email", required=True, help="email of the account to promote")
    print(attach_admin_role(parser.parse_args().email))


if __name__ == "__main__":
    main()
