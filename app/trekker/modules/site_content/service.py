from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import func

from app.trekker.audit import record_change, record_event
from app.trekker.media import cleanup_hosted_asset
from app.trekker.modules.site_content.models import (
    POLICY_KINDS,
    BannerMarqueeText,
    Faq,
    GalleryImage,
    OfferBanner,
    PolicyDocument,
    Recognition,
    Testimonial,
)
from app.trekker.utils import apply_changes
from app.trekker.validation import Field, parse_fields

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.trekker.media import CloudinaryClient
    from app.trekker.models import User


@dataclass(frozen=True)
class ContentType:
    """One admin-editable content table."""

    key: str  # URL segment under /api/admin
    model: type
    fields: list[Field]
    order_column: str | None = None  # "display_order" / "sort_order"; new rows default to max + 1
    image_id_attr: str | None = None  # column holding the hosted image public id
    public_columns: tuple[str, ...] = ()  # subset returned by public endpoints; empty means all
    active_only: bool = False  # public endpoints only show is_active rows
    scope: dict[str, Any] = field(default_factory=dict)  # fixed column values (policy kind)

    @property
    def entity(self) -> str:
        return self.model.__name__

    def ordering(self) -> list:
        m = self.model
        if self.order_column:
            return [getattr(m, self.order_column).asc(), m.created_at.desc(), m.id.asc()]
        return [m.created_at.desc(), m.id.desc()]


FAQS = ContentType(
    key="faqs",
    model=Faq,
    fields=[
        Field("question", required=True),
        Field("answer", kind="rich", required=True),
        Field("display_order", kind="int", min_value=0),
    ],
    order_column="display_order",
)

TESTIMONIALS = ContentType(
    key="testimonials",
    model=Testimonial,
    fields=[
        Field("name", required=True, max_length=255),
        Field("title", required=True, max_length=255),
        Field("description", required=True),
        Field("location", required=True, max_length=255),
        Field("rating", kind="int", required=True, min_value=1, max_value=5, default=5),
    ],
)

GALLERY = ContentType(
    key="gallery",
    model=GalleryImage,
    fields=[
        Field("image_url", kind="url", required=True, label="Image URL", max_length=1024),
        Field("image_path", max_length=512),
        Field("title", max_length=255),
        Field("alt_text", max_length=255),
        Field("display_order", kind="int", min_value=0),
    ],
    order_column="display_order",
    image_id_attr="image_path",
)

OFFER_BANNERS = ContentType(
    key="offer-banners",
    model=OfferBanner,
    fields=[
        Field("image_url", kind="url", required=True, label="Image URL", max_length=1024),
        Field("cloudinary_public_id", max_length=512),
        Field("alt_title", max_length=255),
        Field("link_url", kind="url", label="Link URL", max_length=1024),
        Field("sort_order", kind="int", min_value=0),
        Field("is_active", kind="bool", default=True),
    ],
    order_column="sort_order",
    image_id_attr="cloudinary_public_id",
    public_columns=("id", "image_url", "alt_title", "link_url", "sort_order"),
    active_only=True,
)

MARQUEE_TEXTS = ContentType(
    key="banner-marquee-texts",
    model=BannerMarqueeText,
    fields=[
        Field("text", required=True, max_length=512),
        Field("link_url", kind="url", label="Link URL", max_length=1024),
        Field("sort_order", kind="int", min_value=0),
        Field("is_active", kind="bool", default=True),
    ],
    order_column="sort_order",
    public_columns=("id", "text", "link_url", "sort_order"),
    active_only=True,
)

RECOGNITIONS = ContentType(
    key="recognitions",
    model=Recognition,
    fields=[
        Field("image_url", kind="url", required=True, label="Image URL", max_length=1024),
        Field("cloudinary_public_id", max_length=512),
        Field("title", required=True, max_length=255),
        Field("link_url", kind="url", label="Link URL", max_length=1024),
        Field("sort_order", kind="int", min_value=0),
        Field("is_active", kind="bool", default=True),
    ],
    order_column="sort_order",
    image_id_attr="cloudinary_public_id",
    public_columns=("id", "image_url", "title", "link_url", "sort_order"),
    active_only=True,
)

_POLICY_FIELDS = [
    Field("main_title", required=True, max_length=255),
    Field("subtitle", max_length=512),
    Field("main_content", kind="rich", required=True),
]

_POLICY_PATHS = {"privacy": "privacy-policy", "terms": "terms-and-conditions", "cancellation": "cancellation-policy"}

POLICY_TYPES = {
    kind: ContentType(key=_POLICY_PATHS[kind], model=PolicyDocument, fields=_POLICY_FIELDS, scope={"kind": kind})
    for kind in POLICY_KINDS
}

CONTENT_TYPES: list[ContentType] = [
    FAQS,
    TESTIMONIALS,
    GALLERY,
    OFFER_BANNERS,
    MARQUEE_TEXTS,
    RECOGNITIONS,
    *POLICY_TYPES.values(),
]


def _scoped(s: "Session", ct: ContentType):
    q = s.query(ct.model)
    for col, value in ct.scope.items():
        q = q.filter(getattr(ct.model, col) == value)
    return q


def list_items(s: "Session", ct: ContentType, *, public: bool = False) -> list:
    q = _scoped(s, ct)
    if public and ct.active_only:
        q = q.filter(ct.model.is_active.is_(True))
    return q.order_by(*ct.ordering()).all()


def get_item(s: "Session", ct: ContentType, item_id: int):
    return _scoped(s, ct).filter(ct.model.id == item_id).one_or_none()


def latest_item(s: "Session", ct: ContentType):
    m = ct.model
    return _scoped(s, ct).order_by(m.created_at.desc(), m.id.desc()).first()


def serialize(ct: ContentType, item, *, public: bool = False) -> dict[str, Any]:
    data = item.to_dict()
    if public and ct.public_columns:
        return {k: data[k] for k in ct.public_columns}
    return data


def next_order(s: "Session", ct: ContentType) -> int:
    col = getattr(ct.model, ct.order_column)  # type: ignore[arg-type]
    current = _scoped(s, ct).with_entities(func.max(col)).scalar()
    return (current or 0) + 1


def validate_payload(ct: ContentType, payload: dict, *, partial: bool = False) -> tuple[dict[str, Any], list[str]]:
    return parse_fields(ct.fields, payload, partial=partial)


def create_item(s: "Session", ct: ContentType, values: dict[str, Any], user: "User"):
    values = dict(values)
    if ct.order_column and values.get(ct.order_column) is None:
        values[ct.order_column] = next_order(s, ct)
    item = ct.model(**values, **ct.scope)
    s.add(item)
    s.flush()

    record_event(
        s,
        actor=user,
        action=f"{ct.key}.create",
        entity_type=ct.entity,
        entity_id=str(item.id),
        metadata={k: v for k, v in values.items() if not isinstance(v, str) or len(v) <= 200},
    )
    return item


def update_item(s: "Session", ct: ContentType, item, values: dict[str, Any], user: "User") -> str | None:
    """
    Apply values and audit the change. Returns the hosted image public id that
    the row no longer references (to clean up after commit), if any.
    """
    old_image_id = getattr(item, ct.image_id_attr) if ct.image_id_attr else None
    changes = apply_changes(item, values)
    s.flush()

    record_change(s, actor=user, action=f"{ct.key}.edit", row=item, changes=changes)
    if ct.image_id_attr and ct.image_id_attr in changes:
        return old_image_id
    return None


def delete_item(s: "Session", ct: ContentType, item, user: "User") -> str | None:
    """Delete the row. Returns its hosted image public id for cleanup after commit."""
    image_id = getattr(item, ct.image_id_attr) if ct.image_id_attr else None
    record_event(s, actor=user, action=f"{ct.key}.delete", entity_type=ct.entity, entity_id=str(item.id))
    s.delete(item)
    s.flush()
    return image_id


def cleanup_image(media: "CloudinaryClient", public_id: str | None) -> bool:
    return cleanup_hosted_asset(media, public_id, "image")


def reorder_items(s: "Session", ct: ContentType, order: list[dict], user: "User") -> tuple[int, list[str]]:
    """Apply [{id, display_order}] in one go. Unknown ids are reported, nothing is half-applied."""
    col = ct.order_column
    if not col:
        return 0, [f"{ct.key} cannot be reordered."]
    errors: list[str] = []
    updates: list[tuple[Any, int]] = []
    for entry in order:
        if not isinstance(entry, dict):
            errors.append("Each entry must be an object with id and display_order.")
            continue
        try:
            item_id = int(entry.get("id"))
            position = int(entry.get(col, entry.get("display_order")))
        except (TypeError, ValueError):
            errors.append("Each entry needs an integer id and display_order.")
            continue
        item = get_item(s, ct, item_id)
        if item is None:
            errors.append(f"Unknown id: {item_id}")
            continue
        updates.append((item, position))
    if errors:
        return 0, errors

    for item, position in updates:
        setattr(item, col, position)
    record_event(
        s,
        actor=user,
        action=f"{ct.key}.reorder",
        entity_type=ct.entity,
        metadata={"order": [[item.id, position] for item, position in updates]},
    )
    return len(updates), []
