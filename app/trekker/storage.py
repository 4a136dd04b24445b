"""
Object store behind POST /api/admin/uploads.

Objects are addressed as "<bucket>/<folder>/<file name>". The bucket is the
first key segment: a directory under ./storage for the local backend, a key
prefix inside S3_BUCKET for the S3 backend.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError

DEFAULT_BUCKET = "uploads"
S3_REQUIRED_SETTINGS = ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class StorageError(RuntimeError):
    pass


def valid_segment(segment: str) -> bool:
    return bool(_SEGMENT_RE.match(segment))


def object_key(bucket: str, folder: str, file_name: str) -> tuple[str, str]:
    """(key, path) where path is the part below the bucket."""
    path = f"{folder}/{file_name}" if folder else file_name
    return f"{bucket}/{path}", path


class Storage:
    public_base_url: str = ""

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def public_url(self, key: str) -> str:
        """STORAGE_PUBLIC_BASE_URL + key, or the app's own /media/ route."""
        base = (self.public_base_url or "").rstrip("/")
        return f"{base}/{key.lstrip('/')}" if base else f"/media/{key.lstrip('/')}"


@dataclass(frozen=True)
class LocalStorage(Storage):
    root: Path
    public_base_url: str = ""

    def _path(self, key: str) -> Path:
        root = self.root.resolve()
        p = (root / key.lstrip("/").replace("\\", "/")).resolve()
        if root not in p.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return p

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        p = self._path(key)
        if p.exists():
            raise StorageError(f"Object already exists: {key}")
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def open(self, key: str) -> BinaryIO:
        return self._path(key).open("rb")


@dataclass(frozen=True)
class S3Storage(Storage):
    endpoint: str
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str = ""

    def _client(self):
        return boto3.client(
            "s3",
            endpoint_url=f"https://{self.endpoint}" if self.endpoint else None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        # Uploaded site images are served straight from the bucket.
        extra: dict[str, object] = {"ACL": "public-read", "CacheControl": "max-age=3600"}
        if content_type:
            extra["ContentType"] = content_type
        try:
            self._client().put_object(Bucket=self.bucket, Key=key, Body=data, **extra)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"S3 upload failed for {key}: {e}") from e

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return super().public_url(key)
        host = self.endpoint or f"s3.{self.region}.amazonaws.com"
        return f"https://{self.bucket}.{host}/{key.lstrip('/')}"


def missing_s3_settings(config: dict) -> list[str]:
    return [k for k in S3_REQUIRED_SETTINGS if not config.get(k)]


def storage_from_config(config: dict) -> Storage:
    backend = (config.get("STORAGE_BACKEND") or "local").strip().lower()
    public_base_url = (config.get("STORAGE_PUBLIC_BASE_URL") or "").strip()
    if backend == "s3":
        return S3Storage(
            endpoint=(config.get("S3_ENDPOINT") or "").strip(),
            region=(config.get("S3_REGION") or "nyc3").strip(),
            bucket=(config.get("S3_BUCKET") or "").strip(),
            access_key_id=(config.get("S3_ACCESS_KEY_ID") or "").strip(),
            secret_access_key=(config.get("S3_SECRET_ACCESS_KEY") or "").strip(),
            public_base_url=public_base_url,
        )
    return LocalStorage(root=Path(os.getcwd()) / "storage", public_base_url=public_base_url)
