from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func

from app.trekker.audit import record_change, record_event
from app.trekker.modules.about_page.models import (
    SECTION_TYPES,
    WHY_CHOOSE_US_ICONS,
    AboutPage,
    AboutPageGalleryImage,
    HomeWhyChooseUs,
)
from app.trekker.utils import apply_changes, parse_int
from app.trekker.validation import Field, parse_fields, parse_object_list

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.trekker.models import User


ABOUT_PAGE_FIELDS = [
    Field("about_description", kind="rich"),
    Field("our_story_image_url", kind="url", label="Our story image URL", max_length=1024),
    Field("our_mission", kind="rich"),
    Field("our_vision", kind="rich"),
    Field("appreciation_letter", kind="rich"),
    Field("recognition_association_letter", kind="rich"),
]

GALLERY_FIELDS = [
    Field("section_type", required=True, label="section_type", choices=SECTION_TYPES),
    Field("image_url", kind="url", required=True, label="image_url", max_length=1024),
    Field("cloudinary_public_id", required=True, label="cloudinary_public_id", max_length=512),
    Field("display_order", kind="int", min_value=0),
    Field("about_page_id", kind="int", min_value=1),
]


def latest_about_page(s: "Session") -> AboutPage | None:
    return s.query(AboutPage).order_by(AboutPage.updated_at.desc(), AboutPage.id.desc()).first()


def latest_why_choose_us(s: "Session") -> HomeWhyChooseUs | None:
    return s.query(HomeWhyChooseUs).order_by(HomeWhyChooseUs.updated_at.desc(), HomeWhyChooseUs.id.desc()).first()


def validate_about_page(payload: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    values, errors = parse_fields(ABOUT_PAGE_FIELDS, payload, partial=True)
    if "why_choose_us" in payload:
        items, errs = parse_object_list(
            payload.get("why_choose_us"),
            "Why choose us",
            ("icon", "title", "description"),
            required=("title",),
        )
        values["why_choose_us"] = items
        errors.extend(errs)
    if "team_members" in payload:
        members, errs = parse_object_list(
            payload.get("team_members"),
            "Team members",
            ("name", "role", "image_url", "bio"),
            required=("name",),
        )
        values["team_members"] = members
        errors.extend(errs)
    return values, errors


def validate_why_choose_us(payload: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    values, errors = parse_fields(
        [Field("image_url", kind="url", label="Image URL", max_length=1024)], payload, partial=True
    )
    if "items" in payload:
        items, errs = parse_object_list(
            payload.get("items"),
            "Items",
            ("icon", "title", "description"),
            required=("icon", "title"),
            choices={"icon": WHY_CHOOSE_US_ICONS},
        )
        values["items"] = items
        errors.extend(errs)
    return values, errors


def _upsert(s: "Session", current, model: type, values: dict[str, Any], user: "User", action: str):
    if current is None:
        current = model(**values)
        s.add(current)
        s.flush()
        changed = sorted(values)
    else:
        changed = sorted(apply_changes(current, values))
        s.flush()
    record_change(s, actor=user, action=action, row=current, changes=changed)
    return current


def upsert_about_page(s: "Session", values: dict[str, Any], user: "User") -> AboutPage:
    return _upsert(s, latest_about_page(s), AboutPage, values, user, "about_page.save")


def upsert_why_choose_us(s: "Session", values: dict[str, Any], user: "User") -> HomeWhyChooseUs:
    return _upsert(s, latest_why_choose_us(s), HomeWhyChooseUs, values, user, "home_why_choose_us.save")


# ---------- Letters gallery ----------
def list_gallery(s: "Session", section_type: str | None = None) -> list[AboutPageGalleryImage]:
    q = s.query(AboutPageGalleryImage)
    if section_type:
        q = q.filter(AboutPageGalleryImage.section_type == section_type)
    return q.order_by(AboutPageGalleryImage.display_order.asc(), AboutPageGalleryImage.id.asc()).all()


def next_gallery_order(s: "Session", section_type: str) -> int:
    current = (
        s.query(func.max(AboutPageGalleryImage.display_order))
        .filter(AboutPageGalleryImage.section_type == section_type)
        .scalar()
    )
    return (current or 0) + 1


def add_gallery_image(s: "Session", values: dict[str, Any], user: "User") -> AboutPageGalleryImage:
    values = dict(values)
    if not values.get("about_page_id"):
        first = s.query(AboutPage.id).order_by(AboutPage.id.asc()).first()
        values["about_page_id"] = first[0] if first else None
    if values.get("display_order") is None:
        values["display_order"] = next_gallery_order(s, values["section_type"])

    img = AboutPageGalleryImage(**values)
    s.add(img)
    s.flush()
    record_event(
        s,
        actor=user,
        action="about_page_gallery.create",
        entity_type="AboutPageGalleryImage",
        entity_id=str(img.id),
        metadata={"section_type": img.section_type, "public_id": img.cloudinary_public_id},
    )
    return img


def set_gallery_order(s: "Session", img: AboutPageGalleryImage, display_order: Any, user: "User") -> list[str]:
    position = parse_int(display_order)
    if position is None or position < 0:
        return ["display_order must be a whole number of at least 0."]
    old = img.display_order
    img.display_order = position
    record_event(
        s,
        actor=user,
        action="about_page_gallery.reorder",
        entity_type="AboutPageGalleryImage",
        entity_id=str(img.id),
        metadata={"old": old, "new": position},
    )
    return []


def delete_gallery_image(s: "Session", img: AboutPageGalleryImage, user: "User") -> str | None:
    """Delete the row. Returns the hosted public id to remove after commit."""
    public_id = img.cloudinary_public_id
    record_event(
        s,
        actor=user,
        action="about_page_gallery.delete",
        entity_type="AboutPageGalleryImage",
        entity_id=str(img.id),
    )
    s.delete(img)
    s.flush()
    return public_id
