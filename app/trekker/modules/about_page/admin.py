from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from app.trekker.db import db_session
from app.trekker.media import cleanup_hosted_asset, media_from_config
from app.trekker.models import User
from app.trekker.modules.about_page.models import AboutPage, AboutPageGalleryImage
from app.trekker.modules.about_page.service import (
    GALLERY_FIELDS,
    add_gallery_image,
    delete_gallery_image,
    latest_about_page,
    latest_why_choose_us,
    list_gallery,
    set_gallery_order,
    upsert_about_page,
    upsert_why_choose_us,
    validate_about_page,
    validate_why_choose_us,
)
from app.trekker.rbac import require_permission
from app.trekker.utils import json_error, parse_int, request_payload, validation_error
from app.trekker.validation import parse_fields

bp = Blueprint("about_page", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/about-page")
@require_permission("admin.view")
def about_page_get():
    page = latest_about_page(db_session())
    return jsonify({"aboutPage": page.to_dict() if page else None})


@bp.put("/about-page")
@require_permission("content.edit")
def about_page_save():
    s = db_session()
    values, errors = validate_about_page(request_payload())
    if errors:
        return validation_error(errors)
    page = upsert_about_page(s, values, _current_user())
    s.commit()
    return jsonify({"aboutPage": page.to_dict()})


@bp.get("/home-why-choose-us")
@require_permission("admin.view")
def why_choose_us_get():
    row = latest_why_choose_us(db_session())
    return jsonify({"data": row.to_dict() if row else {"image_url": None, "items": []}})


@bp.put("/home-why-choose-us")
@require_permission("content.edit")
def why_choose_us_save():
    s = db_session()
    values, errors = validate_why_choose_us(request_payload())
    if errors:
        return validation_error(errors)
    row = upsert_why_choose_us(s, values, _current_user())
    s.commit()
    return jsonify({"data": row.to_dict()})


# ---------- Letters gallery ----------
@bp.get("/about-page-gallery")
@require_permission("admin.view")
def gallery_list():
    images = list_gallery(db_session(), request.args.get("section_type"))
    return jsonify({"data": [i.to_dict() for i in images]})


@bp.post("/about-page-gallery")
@require_permission("content.edit")
def gallery_create():
    s = db_session()
    values, errors = parse_fields(GALLERY_FIELDS, request_payload())
    if errors:
        return validation_error(errors)
    if values.get("about_page_id") and s.get(AboutPage, values["about_page_id"]) is None:
        return json_error(f"about_page_id {values['about_page_id']} does not match an about page.", 404)
    img = add_gallery_image(s, values, _current_user())
    s.commit()
    return jsonify({"data": img.to_dict()}), 201


@bp.put("/about-page-gallery")
@require_permission("content.edit")
def gallery_update():
    s = db_session()
    payload = request_payload()
    img_id = parse_int(payload.get("id"))
    if not img_id:
        return json_error("id is required", 400)
    img = s.get(AboutPageGalleryImage, img_id)
    if img is None:
        return json_error("Gallery image not found.", 404)
    if "display_order" in payload:
        errors = set_gallery_order(s, img, payload.get("display_order"), _current_user())
        if errors:
            return validation_error(errors)
    s.commit()
    return jsonify({"data": img.to_dict()})


@bp.delete("/about-page-gallery")
@require_permission("content.edit")
def gallery_delete():
    s = db_session()
    img_id = parse_int(request.args.get("id"))
    if not img_id:
        return json_error("id is required", 400)
    img = s.get(AboutPageGalleryImage, img_id)
    if img is None:
        return json_error("Gallery image not found.", 404)

    public_id = delete_gallery_image(s, img, _current_user())
    s.commit()
    hosted_ok = cleanup_hosted_asset(media_from_config(current_app.config), public_id, "image")
    if not hosted_ok:
        current_app.logger.warning("About gallery image %s deleted but hosted image %s was not removed", img_id, public_id)
    return jsonify({"success": True, "hostedCleanup": hosted_ok})
