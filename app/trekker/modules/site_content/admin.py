from __future__ import annotations

from flask import Blueprint, abort, current_app, g, jsonify, request

from app.trekker.db import db_session
from app.trekker.media import media_from_config
from app.trekker.models import User
from app.trekker.modules.site_content.service import (
    CONTENT_TYPES,
    GALLERY,
    ContentType,
    cleanup_image,
    create_item,
    delete_item,
    get_item,
    list_items,
    reorder_items,
    serialize,
    update_item,
    validate_payload,
)
from app.trekker.rbac import require_permission
from app.trekker.utils import json_error, request_payload, validation_error

bp = Blueprint("site_content", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _get_or_404(s, ct: ContentType, item_id: int):
    item = get_item(s, ct, item_id)
    if item is None:
        abort(404)
    return item


# ---------- Gallery reorder (registered before the generic /<id> rules) ----------
@bp.put("/gallery/reorder")
@require_permission("content.edit")
def gallery_reorder():
    s = db_session()
    body = request.get_json(silent=True)
    order = body.get("order") if isinstance(body, dict) else body
    if not isinstance(order, list) or not order:
        return json_error("Body must be a non-empty list of {id, display_order}.", 400)

    count, errors = reorder_items(s, GALLERY, order, _current_user())
    if errors:
        s.rollback()
        return validation_error(errors)
    s.commit()
    return jsonify({"success": True, "updated": count})


def _register(ct: ContentType) -> None:
    name = ct.key.replace("-", "_")

    @require_permission("admin.view")
    def list_view():
        s = db_session()
        items = list_items(s, ct)
        return jsonify({"data": [serialize(ct, i) for i in items]})

    @require_permission("content.edit")
    def create_view():
        s = db_session()
        values, errors = validate_payload(ct, request_payload())
        if errors:
            return validation_error(errors)
        item = create_item(s, ct, values, _current_user())
        s.commit()
        current_app.logger.info("%s created (id=%s)", ct.entity, item.id)
        return jsonify({"data": serialize(ct, item)}), 201

    @require_permission("admin.view")
    def detail_view(item_id: int):
        s = db_session()
        return jsonify({"data": serialize(ct, _get_or_404(s, ct, item_id))})

    @require_permission("content.edit")
    def update_view(item_id: int):
        s = db_session()
        item = _get_or_404(s, ct, item_id)
        values, errors = validate_payload(ct, request_payload(), partial=True)
        if errors:
            return validation_error(errors)
        stale_image = update_item(s, ct, item, values, _current_user())
        s.commit()
        if stale_image:
            cleanup_image(media_from_config(current_app.config), stale_image)
        return jsonify({"data": serialize(ct, item)})

    @require_permission("content.edit")
    def delete_view(item_id: int):
        s = db_session()
        item = _get_or_404(s, ct, item_id)
        image_id = delete_item(s, ct, item, _current_user())
        s.commit()
        hosted_ok = True
        if image_id:
            hosted_ok = cleanup_image(media_from_config(current_app.config), image_id)
            if not hosted_ok:
                current_app.logger.warning("%s %s deleted but hosted image %s was not removed", ct.entity, item_id, image_id)
        return jsonify({"success": True, "hostedCleanup": hosted_ok})

    bp.add_url_rule(f"/{ct.key}", endpoint=f"{name}_list", view_func=list_view, methods=["GET"])
    bp.add_url_rule(f"/{ct.key}", endpoint=f"{name}_create", view_func=create_view, methods=["POST"])
    bp.add_url_rule(f"/{ct.key}/<int:item_id>", endpoint=f"{name}_detail", view_func=detail_view, methods=["GET"])
    bp.add_url_rule(
        f"/{ct.key}/<int:item_id>", endpoint=f"{name}_update", view_func=update_view, methods=["PUT", "PATCH"]
    )
    bp.add_url_rule(f"/{ct.key}/<int:item_id>", endpoint=f"{name}_delete", view_func=delete_view, methods=["DELETE"])


for _ct in CONTENT_TYPES:
    _register(_ct)
