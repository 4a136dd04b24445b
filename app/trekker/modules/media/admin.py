"""
Upload proxies used by the dashboard forms.

Images and PDFs go to the hosted CDN; /uploads writes to the object store
(local disk or S3) configured by STORAGE_BACKEND.
"""
from __future__ import annotations

import time

from flask import Blueprint, current_app, g, jsonify, request

from app.trekker.audit import record_event
from app.trekker.db import db_session
from app.trekker.media import (
    PDF_FOLDER,
    MediaError,
    MediaNotConfigured,
    media_from_config,
    random_suffix,
)
from app.trekker.rbac import require_permission
from app.trekker.storage import (
    DEFAULT_BUCKET,
    StorageError,
    missing_s3_settings,
    object_key,
    storage_from_config,
    valid_segment,
)
from app.trekker.utils import json_error, request_payload

bp = Blueprint("media", __name__)

MAX_IMAGE_BYTES = 10 * 1024 * 1024
MAX_PDF_BYTES = 50 * 1024 * 1024
MAX_UPLOAD_BYTES = 5 * 1024 * 1024
UPLOAD_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif")


def _read_upload():
    f = request.files.get("file")
    if not f:
        return None, None, json_error("No file provided", 400)
    data = f.read()
    if not data:
        return None, None, json_error("No file provided", 400)
    return f, data, None


def _audit(action: str, entity_id: str, **metadata) -> None:
    s = db_session()
    record_event(s, actor=g.current_user, action=action, entity_type="Media", entity_id=entity_id, metadata=metadata)
    s.commit()


@bp.post("/media/image")
@require_permission("media.upload")
def upload_image():
    f, data, err = _read_upload()
    if err:
        return err
    content_type = (f.mimetype or "").lower()
    if not content_type.startswith("image/"):
        return json_error("File must be an image", 400)
    if len(data) > MAX_IMAGE_BYTES:
        return json_error("File size must be less than 10MB", 400)

    public_id = f"gallery_{int(time.time() * 1000)}_{random_suffix()}"
    try:
        result = media_from_config(current_app.config).upload_image(data, content_type, public_id=public_id)
    except MediaError as e:
        current_app.logger.error("Image upload failed (public_id=%s): %s", public_id, e)
        return json_error(str(e) or "Failed to upload image", 500)

    _audit("media.image_upload", result.public_id, size=len(data), content_type=content_type)
    return jsonify({"url": result.url, "publicId": result.public_id})


@bp.post("/media/pdf")
@require_permission("media.upload")
def upload_pdf():
    f, data, err = _read_upload()
    if err:
        return err
    if (f.mimetype or "").lower() != "application/pdf":
        return json_error("File must be a PDF", 400)
    if len(data) > MAX_PDF_BYTES:
        return json_error("File size must be less than 50MB", 400)

    media = media_from_config(current_app.config)
    public_id = f"pdf_{int(time.time())}_{random_suffix()}"
    try:
        result = media.upload_raw(data, "application/pdf", public_id=public_id, folder=PDF_FOLDER)
    except MediaError as e:
        current_app.logger.error("PDF upload failed (public_id=%s): %s", public_id, e)
        return json_error(str(e) or "Failed to upload PDF", 500)

    # Accounts with PDF delivery disabled accept the upload but refuse to serve it.
    delivery_blocked = not media.is_publicly_reachable(result.url)
    if delivery_blocked:
        current_app.logger.warning("Uploaded PDF %s is not publicly reachable", result.public_id)

    _audit("media.pdf_upload", result.public_id, size=len(data), delivery_blocked=delivery_blocked)
    return jsonify({"url": result.url, "publicId": result.public_id, "deliveryBlocked": delivery_blocked})


@bp.get("/media/pdf-signature")
@require_permission("media.upload")
def pdf_signature():
    public_id = f"pdf_{int(time.time())}_{random_suffix()}"
    try:
        params = media_from_config(current_app.config).upload_signature(public_id=public_id, folder=PDF_FOLDER)
    except MediaNotConfigured as e:
        return json_error(str(e), 500)
    return jsonify(params)


@bp.post("/media/delete")
@require_permission("media.upload")
def delete_asset():
    payload = request_payload()
    public_id = (payload.get("publicId") or "").strip() if isinstance(payload.get("publicId"), str) else ""
    if not public_id:
        return json_error("Public ID is required", 400)
    resource_type = "raw" if payload.get("resourceType") == "raw" else "image"
    try:
        media_from_config(current_app.config).destroy(public_id, resource_type)
    except MediaError as e:
        current_app.logger.error("Hosted %s delete failed (public_id=%s): %s", resource_type, public_id, e)
        return json_error(f"Failed to delete {resource_type}", 500)

    _audit("media.delete", public_id, resource_type=resource_type)
    return jsonify({"success": True})


@bp.post("/uploads")
@require_permission("media.upload")
def upload_file():
    f, data, err = _read_upload()
    if err:
        return err
    bucket = (request.form.get("bucket") or DEFAULT_BUCKET).strip()
    folder = (request.form.get("folder") or "").strip().strip("/")
    if not valid_segment(bucket):
        return json_error("Invalid bucket name.", 400)
    if folder and not all(valid_segment(part) for part in folder.split("/")):
        return json_error("Invalid folder name.", 400)

    content_type = (f.mimetype or "").lower()
    if content_type not in UPLOAD_TYPES:
        return json_error("Invalid file type. Only JPEG, PNG, WebP, and GIF images are allowed.", 400)
    if len(data) > MAX_UPLOAD_BYTES:
        return json_error("File size too large. Maximum size is 5MB", 400)

    config = current_app.config
    if (config.get("STORAGE_BACKEND") or "local").lower() == "s3":
        missing = missing_s3_settings(config)
        if missing:
            return json_error("Storage is not configured: " + ", ".join(missing), 500)

    ext = (f.filename or "").rsplit(".", 1)[-1].lower() if "." in (f.filename or "") else "jpg"
    if not valid_segment(ext):
        ext = "jpg"
    file_name = f"{int(time.time() * 1000)}-{random_suffix()}.{ext}"
    key, path = object_key(bucket, folder, file_name)

    storage = storage_from_config(config)
    try:
        storage.put_bytes(key, data, content_type=content_type)
    except StorageError as e:
        current_app.logger.error("Upload failed (key=%s): %s", key, e)
        return json_error(f"Failed to upload file: {e}", 500)

    _audit("media.file_upload", key, size=len(data), content_type=content_type)
    return jsonify({"success": True, "url": storage.public_url(key), "path": path, "bucket": bucket, "fileName": file_name})
