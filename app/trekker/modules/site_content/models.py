from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.trekker.models import Base, TimestampMixin

POLICY_KINDS = ("privacy", "terms", "cancellation")


class Faq(TimestampMixin, Base):
    __tablename__ = "home_faq"
    __table_args__ = (Index("idx_home_faq_order", "display_order"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Testimonial(TimestampMixin, Base):
    __tablename__ = "testimonials"
    __table_args__ = (CheckConstraint("rating >= 1 AND rating <= 5", name="ck_testimonials_rating"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False, default=5)


class GalleryImage(TimestampMixin, Base):
    __tablename__ = "gallery"
    __table_args__ = (Index("idx_gallery_order", "display_order"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    image_path: Mapped[str | None] = mapped_column(String(512), nullable=True)  # hosted public id
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    alt_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class OfferBanner(TimestampMixin, Base):
    __tablename__ = "offer_banners"
    __table_args__ = (Index("idx_offer_banners_active_order", "is_active", "sort_order"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    cloudinary_public_id: Mapped[str | None] = mapped_column(String(512), nullable=True)
    alt_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    link_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class BannerMarqueeText(TimestampMixin, Base):
    __tablename__ = "banner_marquee_texts"
    __table_args__ = (Index("idx_marquee_active_order", "is_active", "sort_order"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    text: Mapped[str] = mapped_column(String(512), nullable=False)
    link_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Recognition(TimestampMixin, Base):
    __tablename__ = "recognitions"
    __table_args__ = (Index("idx_recognitions_active_order", "is_active", "sort_order"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    cloudinary_public_id: Mapped[str | None] = mapped_column(String(512), nullable=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    link_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class PolicyDocument(TimestampMixin, Base):
    """Privacy policy, terms and conditions, cancellation policy. Public pages show the latest per kind."""

    __tablename__ = "policy_documents"
    __table_args__ = (
        Index("idx_policy_documents_kind", "kind", "created_at"),
        CheckConstraint("kind IN ('privacy', 'terms', 'cancellation')", name="ck_policy_documents_kind"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    main_title: Mapped[str] = mapped_column(String(255), nullable=False)
    subtitle: Mapped[str | None] = mapped_column(String(512), nullable=True)
    main_content: Mapped[str] = mapped_column(Text, nullable=False)
