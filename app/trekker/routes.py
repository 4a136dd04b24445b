import mimetypes

from flask import Blueprint, abort, current_app, send_file

from app.trekker.storage import LocalStorage, StorageError, storage_from_config

bp = Blueprint("routes", __name__)


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for container probes. No DB access, minimal overhead.
    """
    return "ok", 200


@bp.get("/media/<path:key>")
def media_file(key: str):
    """Serves uploads from the local storage backend (S3 objects are served by the bucket)."""
    storage = storage_from_config(current_app.config)
    if not isinstance(storage, LocalStorage):
        abort(404)
    try:
        if not storage.exists(key):
            abort(404)
        fobj = storage.open(key)
    except StorageError:
        abort(404)
    mimetype = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return send_file(fobj, mimetype=mimetype, max_age=3600)
