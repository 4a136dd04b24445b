from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Any

from flask import jsonify, request


def json_error(message: str, status: int, **extra: Any):
    """JSON error body used by every handler: {"error": message, ...}."""
    body: dict[str, Any] = {"error": message}
    body.update(extra)
    return jsonify(body), status


def validation_error(errors: list[str]):
    return json_error(" ".join(errors), 400, errors=errors)


def request_payload() -> dict[str, Any]:
    """Body of a JSON request, or the submitted form as a plain dict."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return {k: v for k, v in request.form.items()}


def clean_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def parse_int(value: Any, default: int | None = None) -> int | None:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def parse_float(value: Any, default: float | None = None) -> float | None:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return default
    try:
        return float(str(value).strip())
    except ValueError:
        return default


def parse_bool(value: Any, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def parse_date(s: str | None) -> date | None:
    """Parse YYYY-MM-DD; None for empty or malformed input."""
    s = (s or "").strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        return None


@dataclass(frozen=True)
class PageRequest:
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def page_request_from_args(default_size: int = 10, max_size: int = 100) -> tuple[PageRequest | None, str | None]:
    """Read ?page=&pageSize= and validate the ranges."""
    page = parse_int(request.args.get("page"), 1)
    page_size = parse_int(request.args.get("pageSize"), default_size)
    if page is None or page < 1:
        return None, "Page number must be greater than 0"
    if page_size is None or page_size < 1 or page_size > max_size:
        return None, f"Page size must be between 1 and {max_size}"
    return PageRequest(page=page, page_size=page_size), None


def total_pages(total: int, page_size: int) -> int:
    if total <= 0 or page_size <= 0:
        return 0
    return math.ceil(total / page_size)


def pagination_meta(pr: PageRequest, total: int) -> dict[str, Any]:
    pages = total_pages(total, pr.page_size)
    return {
        "page": pr.page,
        "pageSize": pr.page_size,
        "total": total,
        "totalPages": pages,
        "hasNextPage": pr.page < pages,
        "hasPreviousPage": pr.page > 1,
    }


def apply_changes(obj: Any, values: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """
    Assign values onto obj, returning {field: {"old", "new"}} for the fields that changed.
    """
    changes: dict[str, dict[str, Any]] = {}
    for key, new in values.items():
        old = getattr(obj, key)
        if old != new:
            changes[key] = {"old": old, "new": new}
            setattr(obj, key, new)
    return changes
