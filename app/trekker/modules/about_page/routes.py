"""Public reads for the about page and the home page "why choose us" block."""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from app.trekker.db import db_session
from app.trekker.modules.about_page.service import latest_about_page, latest_why_choose_us, list_gallery
from app.trekker.utils import json_error

bp = Blueprint("about_page_public", __name__)


@bp.get("/about-page")
def about_page():
    try:
        page = latest_about_page(db_session())
    except SQLAlchemyError as e:
        current_app.logger.exception("Error fetching about page")
        return json_error("Failed to fetch about page", 500, details=str(e))
    return jsonify({"aboutPage": page.to_dict() if page else None})


@bp.get("/home-why-choose-us")
def home_why_choose_us():
    try:
        row = latest_why_choose_us(db_session())
    except SQLAlchemyError as e:
        current_app.logger.exception("Error fetching home why choose us")
        return json_error("Failed to fetch", 500, details=str(e))
    return jsonify({"data": row.to_dict() if row else {"image_url": None, "items": []}})


@bp.get("/about-page-gallery")
def about_page_gallery():
    """Letter images as a bare list, optionally for one section_type."""
    try:
        images = list_gallery(db_session(), request.args.get("section_type"))
    except SQLAlchemyError as e:
        current_app.logger.exception("Error fetching about page gallery")
        return json_error(str(e), 500)
    return jsonify([i.to_dict() for i in images])
