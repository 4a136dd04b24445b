"""
Session CSRF token for the admin dashboard.

The token is handed out by GET /auth/session and must come back on every
state-changing request of a logged-in user. Anonymous public submissions
(enquiry forms, the package filter store) and the auth endpoints carry none.
"""
from __future__ import annotations

import secrets

from flask import Request, g, request, session

from app.trekker.utils import json_error

CSRF_SESSION_KEY = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"
CSRF_EXEMPT_BLUEPRINTS = ("auth", "enquiries_public", "packages_public")
UNSAFE_METHODS = ("POST", "PUT", "PATCH", "DELETE")


def ensure_csrf_token() -> str:
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_SESSION_KEY] = token
    return token


def submitted_csrf_token(req: Request) -> str | None:
    """Header first, then a csrf_token form field or JSON key."""
    token = req.headers.get(CSRF_HEADER) or req.form.get(CSRF_SESSION_KEY)
    if not token and req.is_json:
        body = req.get_json(silent=True)
        if isinstance(body, dict):
            token = body.get(CSRF_SESSION_KEY)
    return token


def validate_csrf(req: Request) -> bool:
    token = submitted_csrf_token(req)
    expected = session.get(CSRF_SESSION_KEY)
    return bool(token and expected and secrets.compare_digest(str(token), str(expected)))


def csrf_protect():
    """before_request hook; runs after the current user is loaded."""
    if getattr(g, "current_user", None) is None or request.method not in UNSAFE_METHODS:
        return None
    if (request.blueprint or "") in CSRF_EXEMPT_BLUEPRINTS:
        return None
    if not validate_csrf(request):
        return json_error("CSRF token missing or invalid.", 400)
    return None
