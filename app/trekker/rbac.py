from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, g

from app.trekker.models import User
from app.trekker.utils import json_error


# Permission keys seeded by scripts/init_db.py; the admin role holds all of them.
PERMISSIONS: dict[str, str] = {
    "admin.view": "Admin: view dashboard",
    "content.edit": "Site content: edit",
    "packages.edit": "Packages: edit",
    "enquiries.view": "Enquiries: view",
    "media.upload": "Media: upload and delete",
    "audit.view": "Audit trail: view",
}


def user_has_permission(user: User | None, permission_key: str) -> bool:
    if not user or not user.is_active:
        return False
    for role in user.roles:
        for perm in role.permissions:
            if perm.key == permission_key:
                return True
    return False


def require_login(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: User | None = getattr(g, "current_user", None)
        if not user or not user.is_active:
            return json_error("Unauthorized", 401)
        return fn(*args, **kwargs)

    return wrapped


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # Unauthenticated -> 401 so the dashboard can send the user to login.
            if not user or not user.is_active:
                return json_error("Unauthorized", 401)
            # Authenticated but unauthorized -> 403
            if not user_has_permission(user, permission_key):
                g.missing_permission = permission_key
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
