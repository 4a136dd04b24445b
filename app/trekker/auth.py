from __future__ import annotations

import re
import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, jsonify, request, session
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from app.trekker.audit import record_event
from app.trekker.db import db_session
from app.trekker.models import User
from app.trekker.security import ensure_csrf_token
from app.trekker.utils import json_error, request_payload

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds

MIN_PASSWORD_LENGTH = 6
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    for key in list(_login_attempts):
        recent = [t for t in _login_attempts[key] if t > cutoff]
        if recent:
            _login_attempts[key] = recent
        else:
            del _login_attempts[key]
    return len(_login_attempts.get(ip, ())) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def _safe_redirect(target: str | None) -> str:
    # Only local paths, to avoid open redirects.
    target = (target or "").strip()
    if target.startswith("/") and not target.startswith("//"):
        return target
    return "/dashboard"


def _start_session(user: User) -> None:
    session.clear()
    session.permanent = True
    session["user_id"] = user.id
    session["login_at"] = datetime.utcnow().isoformat()
    ensure_csrf_token()


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/static/", "/health", "/healthz")):
        g.current_user = None
        return

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    try:
        s = db_session()
        user = s.get(User, int(user_id))
        if not user or not user.is_active:
            session.pop("user_id", None)
            g.current_user = None
            return
        g.current_user = user
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        session.pop("user_id", None)
        g.current_user = None


def validate_credentials(email: str, password: str) -> list[str]:
    errors = []
    if not email or not password:
        errors.append("Email and password are required")
        return errors
    if not EMAIL_RE.match(email):
        errors.append("Invalid email address")
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return errors


@bp.post("/login")
def login_post():
    payload = request_payload()
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        return json_error("Too many login attempts. Please wait 5 minutes.", 429)

    _record_attempt(ip)

    try:
        s = db_session()
        user = s.query(User).filter(User.email == email).one_or_none()
        if not user or not user.is_active or not check_password_hash(user.password_hash, password):
            record_event(
                s,
                actor=None,
                action="auth.login_failed",
                entity_type="User",
                entity_id=email,
                reason="Invalid credentials",
                metadata={"email": email},
            )
            s.commit()
            return json_error("Invalid credentials.", 401)

        _start_session(user)
        user.last_login_at = datetime.utcnow()
        _login_attempts.pop(ip, None)
        record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
        s.commit()
        return jsonify({"redirectTo": _safe_redirect(payload.get("redirectTo"))})
    except Exception:
        current_app.logger.exception("Login POST crashed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
        raise


@bp.post("/signup")
def signup_post():
    if not current_app.config.get("ALLOW_SIGNUP", True):
        return json_error("Signups are disabled.", 404)

    if request.is_json and not isinstance(request.get_json(silent=True), dict):
        return json_error("Invalid request body. Please provide valid JSON.", 400)

    payload = request_payload()
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    errors = validate_credentials(email, password)
    if errors:
        return json_error(errors[0], 400, errors=errors)

    s = db_session()
    if s.query(User).filter(User.email == email).one_or_none():
        return json_error("An account with this email already exists.", 409)

    user = User(email=email, password_hash=generate_password_hash(password), is_active=True)
    s.add(user)
    try:
        s.flush()
    except IntegrityError:
        s.rollback()
        return json_error("An account with this email already exists.", 409)

    record_event(s, actor=user, action="auth.signup", entity_type="User", entity_id=str(user.id))
    _start_session(user)
    user.last_login_at = datetime.utcnow()
    s.commit()
    current_app.logger.info("New account created (user_id=%s)", user.id)
    return jsonify({"redirectTo": _safe_redirect(payload.get("redirectTo")), "requiresEmailConfirmation": False}), 201


@bp.route("/logout", methods=["GET", "POST"])
def logout():
    s = db_session()
    user = getattr(g, "current_user", None)
    if user:
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.clear()
    return jsonify({"ok": True, "redirectTo": "/login"})


@bp.get("/session")
def session_status():
    """
    Polled by the dashboard to detect an expired login. Also hands out the
    CSRF token the dashboard sends back on writes.
    """
    user: User | None = getattr(g, "current_user", None)
    token = ensure_csrf_token()
    if not user:
        return jsonify({"authenticated": False, "user": None, "expires_at": None, "csrf_token": token})

    lifetime = current_app.permanent_session_lifetime
    expires_at = datetime.utcnow() + lifetime
    return jsonify(
        {
            "authenticated": True,
            "user": {
                "id": user.id,
                "email": user.email,
                "roles": sorted(r.key for r in (user.roles or [])),
                "permissions": user.permission_keys(),
            },
            "expires_at": expires_at.isoformat() + "Z",
            "csrf_token": token,
        }
    )
