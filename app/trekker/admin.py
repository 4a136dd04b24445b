from datetime import datetime, time, timedelta

from flask import Blueprint, current_app, g, jsonify, request

from app.trekker.db import db_session, ping
from app.trekker.models import AuditEvent, User
from app.trekker.modules.about_page.models import AboutPageGalleryImage
from app.trekker.modules.enquiries.models import ContactEnquiry, ModalEnquiry, PdfEnquiry
from app.trekker.modules.packages.models import Package
from app.trekker.modules.site_content.models import (
    BannerMarqueeText,
    Faq,
    GalleryImage,
    OfferBanner,
    Recognition,
    Testimonial,
)
from app.trekker.rbac import require_login, require_permission
from app.trekker.storage import missing_s3_settings
from app.trekker.utils import json_error, parse_date

bp = Blueprint("admin", __name__)

# Dashboard tiles: resource key -> model
_COUNTED = {
    "packages": Package,
    "faqs": Faq,
    "testimonials": Testimonial,
    "gallery": GalleryImage,
    "offerBanners": OfferBanner,
    "bannerMarqueeTexts": BannerMarqueeText,
    "recognitions": Recognition,
    "aboutPageGallery": AboutPageGalleryImage,
    "contactEnquiries": ContactEnquiry,
    "modalEnquiries": ModalEnquiry,
    "pdfEnquiries": PdfEnquiry,
}


@bp.get("/")
@require_permission("admin.view")
def index():
    s = db_session()
    config = current_app.config
    status = {
        "env": (config.get("ENV") or "development").strip().lower(),
        "db_connected": False,
        "db_error": None,
        "storage_backend": (config.get("STORAGE_BACKEND") or "local").strip().lower(),
        "storage_configured": True,
        "storage_error": None,
        "media_configured": bool(config.get("CLOUDINARY_CLOUD_NAME"))
        and bool(config.get("CLOUDINARY_UPLOAD_PRESET") or (config.get("CLOUDINARY_API_KEY") and config.get("CLOUDINARY_API_SECRET"))),
        "mail_configured": bool(config.get("SMTP_HOST") and config.get("SMTP_USER") and config.get("SMTP_PASS")),
    }

    status["db_error"] = ping(s)
    status["db_connected"] = status["db_error"] is None

    # Storage config (no network calls)
    if status["storage_backend"] == "s3":
        missing = missing_s3_settings(config)
        status["storage_configured"] = not missing
        if missing:
            status["storage_error"] = f"Missing: {', '.join(missing)}"

    counts: dict[str, int] = {}
    if status["db_connected"]:
        for key, model in _COUNTED.items():
            counts[key] = s.query(model).count()

    return jsonify({"counts": counts, "systemStatus": status})


@bp.get("/me")
@require_login
def me():
    user: User = g.current_user
    return jsonify(
        {
            "user": user.to_dict(),
            "roles": sorted({r.key for r in (user.roles or [])}),
            "permissions": user.permission_keys(),
        }
    )


@bp.get("/audit")
@require_permission("audit.view")
def audit_list():
    """
    Last 200 audit events with simple filters:
    - action (contains)
    - actor_email (contains)
    - date range (YYYY-MM-DD, inclusive)
    """
    s = db_session()
    action = (request.args.get("action") or "").strip()
    actor_email = (request.args.get("actor_email") or "").strip()
    raw_from = (request.args.get("date_from") or "").strip()
    raw_to = (request.args.get("date_to") or "").strip()
    date_from = parse_date(raw_from)
    date_to = parse_date(raw_to)

    if raw_from and not date_from:
        return json_error("date_from must be YYYY-MM-DD", 400)
    if raw_to and not date_to:
        return json_error("date_to must be YYYY-MM-DD", 400)

    q = s.query(AuditEvent)
    if action:
        q = q.filter(AuditEvent.action.like(f"%{action}%"))
    if actor_email:
        q = q.filter(AuditEvent.actor_user_email.like(f"%{actor_email.lower()}%"))
    if date_from:
        q = q.filter(AuditEvent.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        # inclusive end-date (treat as whole day)
        q = q.filter(AuditEvent.created_at < datetime.combine(date_to + timedelta(days=1), time.min))

    events = q.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(200).all()
    return jsonify({"events": [e.to_dict() for e in events]})
