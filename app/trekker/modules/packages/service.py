"""
Package catalogue: public search, admin validation and persistence.

Search mirrors what the public packages page needs: the text query, the
difficulty filter and the sort run in the database, while duration and
effective-price filters run in memory on the matched rows (duration is
derived from the itinerary, not stored). Pagination is applied last.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_

from app.trekker.audit import record_change, record_event
from app.trekker.modules.packages.models import Package
from app.trekker.text import slugify
from app.trekker.utils import apply_changes, clean_str, parse_date, parse_float, parse_int
from app.trekker.validation import Field, parse_fields, parse_object_list

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.trekker.models import User

ITEMS_PER_PAGE = 12
DEFAULT_SORT = "date-desc"
SORTS = {
    "title-asc": (Package.package_name.asc(),),
    "title-desc": (Package.package_name.desc(),),
    "date-asc": (Package.created_at.asc(),),
    "date-desc": (Package.created_at.desc(),),
}

_DAY_RE = re.compile(r"day\s+(\d+)", re.IGNORECASE)
_FIRST_INT_RE = re.compile(r"\d+")


class DuplicateSlug(Exception):
    def __init__(self, slug: str):
        super().__init__(f'A package with the slug "{slug}" already exists.')
        self.slug = slug


PACKAGE_FIELDS = [
    Field("package_name", required=True, label="Package name", max_length=255),
    Field("package_description", kind="rich"),
    Field("thumbnail_image_url", kind="url", label="Thumbnail image URL", max_length=1024),
    Field("thumbnail_cloudinary_public_id", max_length=512),
    Field("document_url", kind="url", label="Document URL", max_length=1024),
    Field("document_cloudinary_public_id", max_length=512),
    Field("package_duration", max_length=128),
    Field("difficulty", max_length=64),
    Field("altitude", max_length=128),
    Field("departure_and_return_location", max_length=255),
    Field("departure_time", max_length=128),
    Field("trek_length", max_length=128),
    Field("base_camp", max_length=255),
    Field("inclusions", kind="rich"),
    Field("exclusions", kind="rich"),
    Field("how_to_reach", kind="rich"),
    Field("cancellation_policy", kind="rich"),
    Field("refund_policy", kind="rich"),
    Field("safety_for_trek", kind="rich"),
]

# JSON list columns: (key, label, item keys, required item keys)
_LIST_COLUMNS = (
    ("itinerary", "Itinerary", ("heading", "description"), ("heading",)),
    ("faqs", "FAQs", ("question", "answer"), ("question", "answer")),
    ("why_choose_us", "Why choose us", ("heading", "description"), ("heading",)),
)


def calculated_duration(pkg: Package) -> int:
    """
    Trek length in days: distinct "Day N" headings in the itinerary, else the
    number of itinerary entries, else the first number in package_duration.
    """
    duration = 0
    itinerary = pkg.itinerary if isinstance(pkg.itinerary, list) else []
    if itinerary:
        days = set()
        for item in itinerary:
            heading = item.get("heading") if isinstance(item, dict) else None
            if isinstance(heading, str):
                m = _DAY_RE.search(heading)
                if m:
                    days.add(m.group(1))
        duration = len(days) or len(itinerary)
    if duration:
        return duration
    m = _FIRST_INT_RE.search(pkg.package_duration or "")
    return int(m.group(0)) if m else 0


def serialize(pkg: Package) -> dict[str, Any]:
    data = pkg.to_dict()
    data["calculated_duration"] = calculated_duration(pkg)
    return data


@dataclass(frozen=True)
class SearchParams:
    page: int = 1
    search_query: str = ""
    sort_by: str = DEFAULT_SORT
    min_price: float | None = None
    max_price: float | None = None
    min_duration: int | None = None
    max_duration: int | None = None
    difficulty: str = ""

    @classmethod
    def from_args(cls, args) -> "SearchParams":
        page = parse_int(args.get("pageNumber"), 1) or 1
        sort_by = args.get("sortBy") or DEFAULT_SORT
        return cls(
            page=max(page, 1),
            search_query=(args.get("searchQuery") or "").strip(),
            sort_by=sort_by if sort_by in SORTS else DEFAULT_SORT,
            min_price=_price_bound(args.get("minPrice")),
            max_price=_price_bound(args.get("maxPrice")),
            min_duration=parse_int(args.get("minDuration")),
            max_duration=parse_int(args.get("maxDuration")),
            difficulty=(args.get("difficulty") or "").strip(),
        )


def _price_bound(raw: Any) -> float | None:
    value = parse_float(raw)
    return value if value is not None and math.isfinite(value) else None


def _in_price_range(pkg: Package, params: SearchParams) -> bool:
    price = pkg.effective_price
    if not price:
        return False
    value = float(price)
    if params.min_price is not None and value < params.min_price:
        return False
    if params.max_price is not None and value > params.max_price:
        return False
    return True


def search_packages(s: "Session", params: SearchParams) -> dict[str, Any]:
    q = s.query(Package)
    if params.search_query:
        like = f"%{params.search_query}%"
        q = q.filter(or_(Package.package_name.ilike(like), Package.package_description.ilike(like)))
    if params.difficulty:
        q = q.filter(Package.difficulty == params.difficulty)
    rows = q.order_by(*SORTS[params.sort_by], Package.id.desc()).all()

    matched = [(pkg, calculated_duration(pkg)) for pkg in rows]
    if params.min_duration is not None:
        matched = [(p, d) for p, d in matched if d >= params.min_duration]
    if params.max_duration is not None:
        matched = [(p, d) for p, d in matched if d <= params.max_duration]
    if params.min_price is not None or params.max_price is not None:
        matched = [(p, d) for p, d in matched if _in_price_range(p, params)]

    total_items = len(matched)
    total_pages = math.ceil(total_items / ITEMS_PER_PAGE)
    offset = (params.page - 1) * ITEMS_PER_PAGE
    page = matched[offset : offset + ITEMS_PER_PAGE]

    packages = []
    for pkg, duration in page:
        data = pkg.to_dict()
        data["calculated_duration"] = duration
        packages.append(data)
    return {
        "packages": packages,
        "pagination": {
            "currentPage": params.page,
            "totalPages": total_pages,
            "itemsPerPage": ITEMS_PER_PAGE,
            "totalItems": total_items,
            "hasNextPage": params.page < total_pages,
            "hasPrevPage": params.page > 1,
        },
    }


def get_by_slug(s: "Session", slug: str) -> Package | None:
    return s.query(Package).filter(Package.slug == slug).one_or_none()


# ---------- Admin ----------
def _parse_price(payload: dict[str, Any], key: str, label: str, *, required: bool) -> tuple[Decimal | None, str | None]:
    raw = payload.get(key)
    if clean_str(raw) is None:
        return None, ("Please enter a valid price." if required else None)
    value = parse_float(raw)
    if value is None or not math.isfinite(value) or value <= 0:
        return None, f"{label} must be a number greater than 0."
    return Decimal(str(value)), None


def _parse_booking_dates(raw: Any) -> tuple[list[str], list[str]]:
    if raw is None or raw == "":
        return [], []
    if not isinstance(raw, list):
        return [], ["Booking dates must be a list of dates."]
    out: list[str] = []
    errors: list[str] = []
    for v in raw:
        text = str(v).strip()
        d = parse_date(text.split("T", 1)[0] if "T" in text else text)
        if d is None:
            errors.append(f"Invalid booking date: {v!r} (expected YYYY-MM-DD).")
            continue
        if d.isoformat() not in out:
            out.append(d.isoformat())
    return out, errors


def _parse_gallery_images(raw: Any) -> tuple[list[str], list[str]]:
    if raw is None or raw == "":
        return [], []
    if not isinstance(raw, list) or not all(isinstance(u, str) for u in raw):
        return [], ["Gallery images must be a list of URLs."]
    return [u.strip() for u in raw if u.strip()], []


def validate_package(payload: dict[str, Any], *, partial: bool = False) -> tuple[dict[str, Any], list[str]]:
    """
    Column values for a create (partial=False) or an edit (partial=True).
    The slug is always derived from the package name.
    """
    values, errors = parse_fields(PACKAGE_FIELDS, payload, partial=partial)

    if not partial or "price" in payload:
        values["price"], err = _parse_price(payload, "price", "Price", required=True)
        if err:
            errors.append(err)
    if not partial or "discounted_price" in payload:
        values["discounted_price"], err = _parse_price(payload, "discounted_price", "Discounted price", required=False)
        if err:
            errors.append(err)

    for key, label, keys, required in _LIST_COLUMNS:
        if partial and key not in payload:
            continue
        items, errs = parse_object_list(payload.get(key), label, keys, required=required)
        values[key] = items
        errors.extend(errs)

    if not partial or "booking_dates" in payload:
        values["booking_dates"], errs = _parse_booking_dates(payload.get("booking_dates"))
        errors.extend(errs)
    if not partial or "gallery_images" in payload:
        values["gallery_images"], errs = _parse_gallery_images(payload.get("gallery_images"))
        errors.extend(errs)

    if values.get("package_name"):
        slug = slugify(values["package_name"])
        if not slug:
            errors.append("Package name must contain letters or numbers.")
        values["slug"] = slug
    return values, errors


def _ensure_unique_slug(s: "Session", slug: str, exclude_id: int | None = None) -> None:
    q = s.query(Package.id).filter(Package.slug == slug)
    if exclude_id is not None:
        q = q.filter(Package.id != exclude_id)
    if q.first() is not None:
        raise DuplicateSlug(slug)


def create_package(s: "Session", values: dict[str, Any], user: "User") -> Package:
    _ensure_unique_slug(s, values["slug"])
    pkg = Package(**values)
    s.add(pkg)
    s.flush()
    record_event(
        s,
        actor=user,
        action="package.create",
        entity_type="Package",
        entity_id=str(pkg.id),
        metadata={"slug": pkg.slug, "price": values.get("price")},
    )
    return pkg


def update_package(s: "Session", pkg: Package, values: dict[str, Any], user: "User") -> list[tuple[str, str]]:
    """
    Apply an edit. Returns hosted assets (public_id, resource_type) the row no
    longer references, to be removed after commit.
    """
    if "slug" in values and values["slug"] != pkg.slug:
        _ensure_unique_slug(s, values["slug"], exclude_id=pkg.id)
    old_document = pkg.document_cloudinary_public_id
    old_thumbnail = pkg.thumbnail_cloudinary_public_id

    changes = apply_changes(pkg, values)
    s.flush()
    record_change(s, actor=user, action="package.edit", row=pkg, changes=changes)

    stale: list[tuple[str, str]] = []
    if "document_cloudinary_public_id" in changes and old_document:
        stale.append((old_document, "raw"))
    if "thumbnail_cloudinary_public_id" in changes and old_thumbnail:
        stale.append((old_thumbnail, "image"))
    return stale


def delete_package(s: "Session", pkg: Package, user: "User") -> list[tuple[str, str]]:
    """Delete the row. Returns its hosted assets for cleanup after commit."""
    assets = []
    if pkg.document_cloudinary_public_id:
        assets.append((pkg.document_cloudinary_public_id, "raw"))
    if pkg.thumbnail_cloudinary_public_id:
        assets.append((pkg.thumbnail_cloudinary_public_id, "image"))
    record_event(
        s,
        actor=user,
        action="package.delete",
        entity_type="Package",
        entity_id=str(pkg.id),
        metadata={"slug": pkg.slug},
    )
    s.delete(pkg)
    s.flush()
    return assets


# ---------- Search filter store ----------
FILTER_DEFAULTS = {"searchQuery": "", "minPrice": 0, "maxPrice": 100000}
FILTER_SESSION_KEY = "search_filters"


def read_filters(session) -> dict[str, Any]:
    stored = session.get(FILTER_SESSION_KEY) or {}
    return {**FILTER_DEFAULTS, **{k: v for k, v in stored.items() if k in FILTER_DEFAULTS}}


def update_filters(session, payload: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    current = read_filters(session)
    errors: list[str] = []
    if "searchQuery" in payload:
        current["searchQuery"] = (payload.get("searchQuery") or "").strip() if isinstance(payload.get("searchQuery"), str) else ""
    for key in ("minPrice", "maxPrice"):
        if key in payload:
            value = parse_float(payload.get(key))
            if value is None or not math.isfinite(value) or value < 0:
                errors.append(f"{key} must be a number of at least 0.")
                continue
            current[key] = int(value) if value.is_integer() else value
    if not errors and current["minPrice"] > current["maxPrice"]:
        errors.append("minPrice must not be greater than maxPrice.")
    if errors:
        return read_filters(session), errors
    session[FILTER_SESSION_KEY] = current
    return current, []


def reset_filters(session) -> dict[str, Any]:
    session.pop(FILTER_SESSION_KEY, None)
    return dict(FILTER_DEFAULTS)
