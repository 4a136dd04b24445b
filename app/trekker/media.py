"""
Client for the hosted image/PDF CDN (Cloudinary upload API).
"""
from __future__ import annotations

import base64
import hashlib
import http.client
import json
import logging
import secrets
import string
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

RESOURCE_TYPES = ("image", "raw")
PDF_FOLDER = "packages"

_ALPHABET = string.ascii_lowercase + string.digits


class MediaError(RuntimeError):
    pass


class MediaNotConfigured(MediaError):
    pass


class MediaRateLimited(MediaError):
    pass


def random_suffix(length: int = 13) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """sha1 hex of "k1=v1&k2=v2..." (keys sorted) followed by the API secret."""
    payload = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return hashlib.sha1((payload + api_secret).encode("utf-8")).hexdigest()


def data_uri(data: bytes, content_type: str) -> str:
    return f"data:{content_type};base64," + base64.b64encode(data).decode("ascii")


@dataclass(frozen=True)
class UploadResult:
    url: str
    public_id: str


@dataclass(frozen=True)
class CloudinaryClient:
    cloud_name: str
    api_key: str = ""
    api_secret: str = ""
    upload_preset: str = ""
    base_url: str = "https://api.cloudinary.com/v1_1"
    timeout_seconds: int = 60

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)

    def _endpoint(self, resource_type: str, action: str) -> str:
        if not self.cloud_name:
            raise MediaNotConfigured("Cloudinary cloud name is not configured")
        return f"{self.base_url.rstrip('/')}/{self.cloud_name}/{resource_type}/{action}"

    def post_form(self, url: str, fields: dict[str, Any], *, retries: int = 2) -> dict[str, Any]:
        body = urllib.parse.urlencode({k: v for k, v in fields.items() if v is not None}).encode("utf-8")
        last_err: Exception | None = None
        for attempt in range(retries + 1):
            try:
                req = urllib.request.Request(url, data=body, method="POST")
                req.add_header("Content-Type", "application/x-www-form-urlencoded")
                req.add_header("Accept", "application/json")
                with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                    raw = resp.read()
                try:
                    return json.loads(raw.decode("utf-8"))
                except ValueError as e:
                    raise MediaError("Invalid JSON from media service") from e
            except urllib.error.HTTPError as e:
                if e.code == 429:
                    time.sleep(min(2 * (attempt + 1), 10))
                    last_err = MediaRateLimited("Rate limited (429)")
                    continue
                raise MediaError(self._error_message(e)) from e
            except (OSError, http.client.HTTPException) as e:
                # URLError, timeouts and dropped connections
                last_err = e
                time.sleep(min(1 * (attempt + 1), 5))
                continue
        raise MediaError(f"Media request failed after retries: {last_err}")

    @staticmethod
    def _error_message(e: urllib.error.HTTPError) -> str:
        try:
            body = e.read().decode("utf-8", errors="ignore")
        except Exception:
            body = ""
        try:
            msg = (json.loads(body).get("error") or {}).get("message")
        except (ValueError, AttributeError):
            msg = None
        return msg or f"HTTP {e.code} from media service: {body[:300]}"

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        if not self.has_credentials:
            raise MediaNotConfigured("Cloudinary API credentials are not configured")
        signed = dict(params)
        signed["signature"] = sign_params(params, self.api_secret)
        signed["api_key"] = self.api_key
        return signed

    def upload_image(self, data: bytes, content_type: str, *, public_id: str) -> UploadResult:
        """Unsigned upload through the configured preset, or a signed upload when there is no preset."""
        fields: dict[str, Any] = {"file": data_uri(data, content_type)}
        if self.upload_preset:
            fields.update({"upload_preset": self.upload_preset, "public_id": public_id})
        else:
            fields.update(self._signed({"public_id": public_id, "timestamp": str(int(time.time()))}))
        j = self.post_form(self._endpoint("image", "upload"), fields)
        return UploadResult(url=j.get("secure_url") or j.get("url") or "", public_id=j.get("public_id") or public_id)

    def upload_raw(self, data: bytes, content_type: str, *, public_id: str, folder: str = PDF_FOLDER) -> UploadResult:
        params = {"folder": folder, "public_id": public_id, "timestamp": str(int(time.time()))}
        fields: dict[str, Any] = {"file": data_uri(data, content_type)}
        fields.update(self._signed(params))
        j = self.post_form(self._endpoint("raw", "upload"), fields)
        return UploadResult(url=j.get("secure_url") or j.get("url") or "", public_id=j.get("public_id") or public_id)

    def upload_signature(self, *, public_id: str, folder: str = PDF_FOLDER) -> dict[str, Any]:
        """Parameters a browser needs to upload a PDF straight to the CDN."""
        if not self.cloud_name:
            raise MediaNotConfigured("Cloudinary cloud name is not configured")
        timestamp = str(int(time.time()))
        params = {"folder": folder, "public_id": public_id, "timestamp": timestamp}
        signed = self._signed(params)
        return {
            "cloudName": self.cloud_name,
            "apiKey": self.api_key,
            "signature": signed["signature"],
            "timestamp": timestamp,
            "publicId": public_id,
            "folder": folder,
        }

    def destroy(self, public_id: str, resource_type: str = "image") -> None:
        resource = resource_type if resource_type in RESOURCE_TYPES else "image"
        fields = self._signed({"public_id": public_id, "timestamp": str(int(time.time()))})
        j = self.post_form(self._endpoint(resource, "destroy"), fields)
        if j.get("result") != "ok":
            raise MediaError(f"Failed to delete {resource} {public_id}: {j.get('result')}")

    def is_publicly_reachable(self, url: str) -> bool:
        try:
            req = urllib.request.Request(url, method="HEAD")
            with urllib.request.urlopen(req, timeout=15) as resp:
                return 200 <= resp.status < 400
        except Exception:
            return False


def media_from_config(config: dict) -> CloudinaryClient:
    return CloudinaryClient(
        cloud_name=(config.get("CLOUDINARY_CLOUD_NAME") or "").strip(),
        api_key=(config.get("CLOUDINARY_API_KEY") or "").strip(),
        api_secret=(config.get("CLOUDINARY_API_SECRET") or "").strip(),
        upload_preset=(config.get("CLOUDINARY_UPLOAD_PRESET") or "").strip(),
    )


def cleanup_hosted_asset(client: CloudinaryClient, public_id: str | None, resource_type: str = "image") -> bool:
    """
    Best-effort removal of a hosted asset after its row is gone. Failures are
    logged and reported as False; the caller carries on.
    """
    if not public_id:
        return True
    try:
        client.destroy(public_id, resource_type)
        return True
    except MediaError as e:
        logger.error("Hosted %s cleanup failed (public_id=%s): %s", resource_type, public_id, e)
        return False
