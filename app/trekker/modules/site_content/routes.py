"""Public read endpoints for the home page, gallery and policy pages."""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from app.trekker.db import db_session
from app.trekker.modules.site_content.service import (
    FAQS,
    GALLERY,
    MARQUEE_TEXTS,
    OFFER_BANNERS,
    POLICY_TYPES,
    RECOGNITIONS,
    TESTIMONIALS,
    ContentType,
    latest_item,
    list_items,
    serialize,
)
from app.trekker.modules.site_content.models import GalleryImage
from app.trekker.utils import json_error, page_request_from_args, pagination_meta

bp = Blueprint("site_content_public", __name__)


def _public_list(ct: ContentType, envelope: str):
    s = db_session()
    try:
        items = list_items(s, ct, public=True)
    except SQLAlchemyError as e:
        current_app.logger.exception("Error fetching %s", ct.key)
        return json_error(f"Failed to fetch {ct.key.replace('-', ' ')}", 500, details=str(e), **{envelope: []})
    return jsonify({envelope: [serialize(ct, i, public=True) for i in items]})


@bp.get("/faqs")
def faqs():
    return _public_list(FAQS, "faqs")


@bp.get("/testimonials")
def testimonials():
    return _public_list(TESTIMONIALS, "testimonials")


@bp.get("/offer-banners")
def offer_banners():
    return _public_list(OFFER_BANNERS, "banners")


@bp.get("/banner-marquee-texts")
def banner_marquee_texts():
    return _public_list(MARQUEE_TEXTS, "texts")


@bp.get("/recognitions")
def recognitions():
    return _public_list(RECOGNITIONS, "recognitions")


@bp.get("/gallery")
def gallery():
    """All images, or one page of them when ?page= is given."""
    if "page" not in request.args:
        return _public_list(GALLERY, "images")

    pr, err = page_request_from_args(default_size=12)
    if err:
        return json_error(err, 400)
    s = db_session()
    q = s.query(GalleryImage)
    total = q.count()
    items = q.order_by(*GALLERY.ordering()).offset(pr.offset).limit(pr.page_size).all()
    return jsonify({"images": [serialize(GALLERY, i, public=True) for i in items], "pagination": pagination_meta(pr, total)})


def _latest_policy(kind: str, envelope: str):
    s = db_session()
    ct = POLICY_TYPES[kind]
    try:
        doc = latest_item(s, ct)
    except SQLAlchemyError as e:
        current_app.logger.exception("Error fetching %s", ct.key)
        return json_error(f"Failed to fetch {ct.key.replace('-', ' ')}", 500, details=str(e))
    return jsonify({envelope: serialize(ct, doc, public=True) if doc else None})


@bp.get("/privacy-policy")
def privacy_policy():
    return _latest_policy("privacy", "policy")


@bp.get("/terms-and-conditions")
def terms_and_conditions():
    return _latest_policy("terms", "terms")


@bp.get("/cancellation-policy")
def cancellation_policy():
    return _latest_policy("cancellation", "policy")
