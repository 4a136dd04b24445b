from __future__ import annotations

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.trekker.models import Base, TimestampMixin


class ContactEnquiry(TimestampMixin, Base):
    """Submitted from the contact page."""

    __tablename__ = "contact_enquiries"
    __table_args__ = (Index("idx_contact_enquiries_created_at", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    whatsapp: Mapped[str | None] = mapped_column(String(64), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)


class ModalEnquiry(TimestampMixin, Base):
    """Submitted from the "enquire now" modal on package pages."""

    __tablename__ = "modal_enquiries"
    __table_args__ = (Index("idx_modal_enquiries_created_at", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    whatsapp: Mapped[str] = mapped_column(String(64), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)


class PdfEnquiry(TimestampMixin, Base):
    """Recorded after a package PDF link was emailed to a visitor."""

    __tablename__ = "pdf_enquiries"
    __table_args__ = (Index("idx_pdf_enquiries_created_at", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    whatsapp: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    pdf_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    package_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
