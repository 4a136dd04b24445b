import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    session_lifetime_hours: int
    allow_signup: bool
    site_name: str
    site_url: str

    storage_backend: str
    storage_public_base_url: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str

    cloudinary_cloud_name: str
    cloudinary_api_key: str
    cloudinary_api_secret: str
    cloudinary_upload_preset: str

    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_pass: str
    smtp_from: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getint(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///trekker.db"),
        session_lifetime_hours=_getint("SESSION_LIFETIME_HOURS", 8),
        allow_signup=_getenv("ALLOW_SIGNUP", "1") not in ("0", "false", "no"),
        site_name=_getenv("SITE_NAME", "Imagination Trekker"),
        site_url=_getenv("SITE_URL", "http://localhost:5000"),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        storage_public_base_url=_getenv("STORAGE_PUBLIC_BASE_URL", ""),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "nyc3"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        cloudinary_cloud_name=_getenv("CLOUDINARY_CLOUD_NAME", ""),
        cloudinary_api_key=_getenv("CLOUDINARY_API_KEY", ""),
        cloudinary_api_secret=_getenv("CLOUDINARY_API_SECRET", ""),
        cloudinary_upload_preset=_getenv("CLOUDINARY_UPLOAD_PRESET", ""),
        smtp_host=_getenv("SMTP_HOST", ""),
        smtp_port=_getint("SMTP_PORT", 587),
        smtp_user=_getenv("SMTP_USER", ""),
        smtp_pass=_getenv("SMTP_PASS", ""),
        smtp_from=_getenv("SMTP_FROM", ""),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "SESSION_LIFETIME_HOURS": s.session_lifetime_hours,
        "ALLOW_SIGNUP": s.allow_signup,
        "SITE_NAME": s.site_name,
        "SITE_URL": s.site_url,
        "STORAGE_BACKEND": s.storage_backend,
        "STORAGE_PUBLIC_BASE_URL": s.storage_public_base_url,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        "CLOUDINARY_CLOUD_NAME": s.cloudinary_cloud_name,
        "CLOUDINARY_API_KEY": s.cloudinary_api_key,
        "CLOUDINARY_API_SECRET": s.cloudinary_api_secret,
        "CLOUDINARY_UPLOAD_PRESET": s.cloudinary_upload_preset,
        "SMTP_HOST": s.smtp_host,
        "SMTP_PORT": s.smtp_port,
        "SMTP_USER": s.smtp_user,
        "SMTP_PASS": s.smtp_pass,
        "SMTP_FROM": s.smtp_from,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # largest single upload is a package PDF (50MB) plus form overhead
        "MAX_CONTENT_LENGTH": 52 * 1024 * 1024,
    }
