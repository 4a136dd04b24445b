from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request, session
from sqlalchemy.exc import SQLAlchemyError

from app.trekker.db import db_session
from app.trekker.modules.packages.service import (
    SearchParams,
    get_by_slug,
    read_filters,
    reset_filters,
    search_packages,
    serialize,
    update_filters,
)
from app.trekker.utils import json_error, validation_error

bp = Blueprint("packages_public", __name__)


@bp.get("/packages")
def packages_search():
    params = SearchParams.from_args(request.args)
    try:
        result = search_packages(db_session(), params)
    except SQLAlchemyError as e:
        current_app.logger.exception("Error fetching packages")
        return json_error("Failed to fetch packages", 500, details=str(e))
    return jsonify(result)


# ---------- Search filter store (registered before /packages/<slug>) ----------
@bp.get("/packages/filters")
def filters_get():
    return jsonify(read_filters(session))


@bp.put("/packages/filters")
def filters_put():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return json_error("Invalid JSON body.", 400)
    filters, errors = update_filters(session, body)
    if errors:
        return validation_error(errors)
    return jsonify(filters)


@bp.delete("/packages/filters")
def filters_reset():
    return jsonify(reset_filters(session))


@bp.get("/packages/<slug>")
def package_detail(slug: str):
    pkg = get_by_slug(db_session(), slug)
    if pkg is None:
        return json_error("Package not found.", 404)
    return jsonify({"package": serialize(pkg)})
