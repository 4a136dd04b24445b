import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, g, request, session
from werkzeug.exceptions import HTTPException

from app.trekker.config import load_config
from app.trekker.db import init_db, teardown_db_session
from app.trekker.routes import bp as routes_bp
from app.trekker.auth import bp as auth_bp, load_current_user
from app.trekker.admin import bp as admin_bp
from app.trekker.modules.site_content.routes import bp as site_content_public_bp
from app.trekker.modules.site_content.admin import bp as site_content_bp
from app.trekker.modules.about_page.routes import bp as about_page_public_bp
from app.trekker.modules.about_page.admin import bp as about_page_bp
from app.trekker.modules.packages.routes import bp as packages_public_bp
from app.trekker.modules.packages.admin import bp as packages_bp
from app.trekker.modules.enquiries.routes import bp as enquiries_public_bp
from app.trekker.modules.enquiries.admin import bp as enquiries_bp
from app.trekker.modules.media.admin import bp as media_bp
from app.trekker.security import csrf_protect, ensure_csrf_token
from app.trekker.utils import json_error

_UNTRACKED_PATHS = ("/health", "/healthz", "/media/")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=int(app.config.get("SESSION_LIFETIME_HOURS") or 8))
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True
    app.json.sort_keys = False

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    # Storage / media / mail configuration (log loudly, requests answer 500 with details)
    if app.config.get("STORAGE_BACKEND") == "s3":
        from app.trekker.storage import missing_s3_settings

        missing_s3 = missing_s3_settings(app.config)
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))
    if not app.config.get("CLOUDINARY_CLOUD_NAME"):
        app.logger.error("MEDIA CONFIG ERROR: CLOUDINARY_CLOUD_NAME is not set; image/PDF uploads will fail.")
    elif not (app.config.get("CLOUDINARY_UPLOAD_PRESET") or (app.config.get("CLOUDINARY_API_KEY") and app.config.get("CLOUDINARY_API_SECRET"))):
        app.logger.error("MEDIA CONFIG ERROR: set CLOUDINARY_UPLOAD_PRESET or CLOUDINARY_API_KEY/CLOUDINARY_API_SECRET.")
    if not (app.config.get("SMTP_HOST") and app.config.get("SMTP_USER") and app.config.get("SMTP_PASS")):
        app.logger.warning("SMTP not configured; /api/send-pdf-link will answer 500.")

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(site_content_public_bp, url_prefix="/api")
    app.register_blueprint(about_page_public_bp, url_prefix="/api")
    app.register_blueprint(packages_public_bp, url_prefix="/api")
    app.register_blueprint(enquiries_public_bp, url_prefix="/api")
    app.register_blueprint(site_content_bp, url_prefix="/api/admin")
    app.register_blueprint(about_page_bp, url_prefix="/api/admin")
    app.register_blueprint(packages_bp, url_prefix="/api/admin")
    app.register_blueprint(enquiries_bp, url_prefix="/api/admin")
    app.register_blueprint(media_bp, url_prefix="/api/admin")

    def _load_user_wrapper():
        if request.path.startswith(_UNTRACKED_PATHS):
            g.current_user = None
            return None
        load_current_user()
        if g.current_user is not None:
            session.permanent = True
            ensure_csrf_token()
        return None

    app.before_request(_load_user_wrapper)
    app.before_request(csrf_protect)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        if e.code == 403:
            missing = getattr(g, "missing_permission", None)
            if missing:
                app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
            return json_error("Forbidden", 403, missing_permission=missing)
        if e.code == 413:
            return json_error("File too large. Maximum upload size is 50MB.", 413)
        messages = {400: "Bad request", 401: "Unauthorized", 404: "Not found", 405: "Method not allowed"}
        return json_error(messages.get(e.code or 500, e.name), e.code or 500)

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return json_error("Internal server error", 500)

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
