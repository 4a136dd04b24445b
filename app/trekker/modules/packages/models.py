from __future__ import annotations

from decimal import Decimal

from sqlalchemy import JSON, CheckConstraint, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.trekker.models import Base, TimestampMixin


class Package(TimestampMixin, Base):
    __tablename__ = "packages"
    __table_args__ = (
        Index("idx_packages_created_at", "created_at"),
        Index("idx_packages_difficulty", "difficulty"),
        CheckConstraint("price IS NULL OR price > 0", name="ck_packages_price_positive"),
        CheckConstraint("discounted_price IS NULL OR discounted_price > 0", name="ck_packages_discounted_price_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    package_name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    package_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    gallery_images: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # list of URLs
    thumbnail_image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    thumbnail_cloudinary_public_id: Mapped[str | None] = mapped_column(String(512), nullable=True)
    document_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    document_cloudinary_public_id: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # Trek facts (free text as entered in the dashboard)
    package_duration: Mapped[str | None] = mapped_column(String(128), nullable=True)
    difficulty: Mapped[str | None] = mapped_column(String(64), nullable=True)
    altitude: Mapped[str | None] = mapped_column(String(128), nullable=True)
    departure_and_return_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    departure_time: Mapped[str | None] = mapped_column(String(128), nullable=True)
    trek_length: Mapped[str | None] = mapped_column(String(128), nullable=True)
    base_camp: Mapped[str | None] = mapped_column(String(255), nullable=True)

    itinerary: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # [{heading, description}]
    inclusions: Mapped[str | None] = mapped_column(Text, nullable=True)
    exclusions: Mapped[str | None] = mapped_column(Text, nullable=True)
    how_to_reach: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_policy: Mapped[str | None] = mapped_column(Text, nullable=True)
    refund_policy: Mapped[str | None] = mapped_column(Text, nullable=True)
    safety_for_trek: Mapped[str | None] = mapped_column(Text, nullable=True)
    faqs: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # [{question, answer}]
    booking_dates: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # ["YYYY-MM-DD", ...]
    why_choose_us: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # [{heading, description}]

    price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    discounted_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    @property
    def effective_price(self) -> Decimal | None:
        return self.discounted_price or self.price
