from __future__ import annotations

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.trekker.models import Base, TimestampMixin

SECTION_TYPES = ("appreciation_letter", "recognition_association_letter")
WHY_CHOOSE_US_ICONS = ("itinerary", "support", "expertise", "safety")


class AboutPage(TimestampMixin, Base):
    """Single-row content of the about page; the latest updated row wins."""

    __tablename__ = "about_page"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    about_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    our_story_image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    our_mission: Mapped[str | None] = mapped_column(Text, nullable=True)
    our_vision: Mapped[str | None] = mapped_column(Text, nullable=True)
    why_choose_us: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # [{icon, title, description}]
    appreciation_letter: Mapped[str | None] = mapped_column(Text, nullable=True)
    recognition_association_letter: Mapped[str | None] = mapped_column(Text, nullable=True)
    team_members: Mapped[list] = mapped_column(JSON, nullable=False, default=list)


class AboutPageGalleryImage(TimestampMixin, Base):
    __tablename__ = "about_page_gallery"
    __table_args__ = (
        Index("idx_about_gallery_section_order", "section_type", "display_order"),
        CheckConstraint(
            "section_type IN ('appreciation_letter', 'recognition_association_letter')",
            name="ck_about_gallery_section_type",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    about_page_id: Mapped[int | None] = mapped_column(ForeignKey("about_page.id", ondelete="CASCADE"), nullable=True)
    section_type: Mapped[str] = mapped_column(String(64), nullable=False)
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    cloudinary_public_id: Mapped[str] = mapped_column(String(512), nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class HomeWhyChooseUs(TimestampMixin, Base):
    __tablename__ = "home_why_choose_us"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # [{icon, title, description}]
