from __future__ import annotations

from flask import Blueprint, abort, current_app, g, jsonify, request

from app.trekker.db import db_session
from app.trekker.media import cleanup_hosted_asset, media_from_config
from app.trekker.models import User
from app.trekker.modules.packages.models import Package
from app.trekker.modules.packages.service import (
    DuplicateSlug,
    create_package,
    delete_package,
    serialize,
    update_package,
    validate_package,
)
from app.trekker.rbac import require_permission
from app.trekker.utils import json_error, validation_error

bp = Blueprint("packages", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _json_body() -> dict | None:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else None


def _cleanup(assets: list[tuple[str, str]]) -> bool:
    if not assets:
        return True
    media = media_from_config(current_app.config)
    results = [cleanup_hosted_asset(media, public_id, resource_type) for public_id, resource_type in assets]
    return all(results)


@bp.get("/packages")
@require_permission("admin.view")
def packages_list():
    s = db_session()
    rows = s.query(Package).order_by(Package.created_at.desc(), Package.id.desc()).all()
    return jsonify({"data": [serialize(p) for p in rows]})


@bp.post("/packages")
@require_permission("packages.edit")
def packages_create():
    s = db_session()
    payload = _json_body()
    if payload is None:
        return json_error("Invalid JSON body.", 400)
    values, errors = validate_package(payload)
    if errors:
        return validation_error(errors)
    try:
        pkg = create_package(s, values, _current_user())
    except DuplicateSlug as e:
        s.rollback()
        return json_error(str(e), 409, slug=e.slug)
    s.commit()
    current_app.logger.info("Package created (id=%s slug=%s)", pkg.id, pkg.slug)
    return jsonify({"data": serialize(pkg)}), 201


@bp.get("/packages/<int:package_id>")
@require_permission("admin.view")
def packages_detail(package_id: int):
    pkg = db_session().get(Package, package_id)
    if pkg is None:
        abort(404)
    return jsonify({"data": serialize(pkg)})


@bp.route("/packages/<int:package_id>", methods=["PUT", "PATCH"])
@require_permission("packages.edit")
def packages_update(package_id: int):
    s = db_session()
    pkg = s.get(Package, package_id)
    if pkg is None:
        abort(404)
    payload = _json_body()
    if payload is None:
        return json_error("Invalid JSON body.", 400)
    values, errors = validate_package(payload, partial=request.method == "PATCH")
    if errors:
        return validation_error(errors)
    try:
        stale = update_package(s, pkg, values, _current_user())
    except DuplicateSlug as e:
        s.rollback()
        return json_error(str(e), 409, slug=e.slug)
    s.commit()
    _cleanup(stale)
    return jsonify({"data": serialize(pkg)})


@bp.delete("/packages/<int:package_id>")
@require_permission("packages.edit")
def packages_delete(package_id: int):
    s = db_session()
    pkg = s.get(Package, package_id)
    if pkg is None:
        abort(404)
    assets = delete_package(s, pkg, _current_user())
    s.commit()
    hosted_ok = _cleanup(assets)
    if not hosted_ok:
        current_app.logger.warning("Package %s deleted but some hosted files were not removed", package_id)
    return jsonify({"success": True, "hostedCleanup": hosted_ok})
