from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_

from app.trekker.mailer import SmtpMailer, render_pdf_link_email
from app.trekker.modules.enquiries.models import ContactEnquiry, ModalEnquiry, PdfEnquiry
from app.trekker.utils import PageRequest, clean_str

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class EnquiryKind:
    key: str  # URL segment of the admin list
    model: type
    search_columns: tuple[str, ...]


CONTACT = EnquiryKind("contact-enquiries", ContactEnquiry, ("full_name", "email", "phone", "whatsapp", "message"))
MODAL = EnquiryKind("modal-enquiries", ModalEnquiry, ("full_name", "whatsapp", "message"))
PDF = EnquiryKind("pdf-enquiries", PdfEnquiry, ("full_name", "whatsapp", "email", "package_name"))
ENQUIRY_KINDS = [CONTACT, MODAL, PDF]


def _required(payload: dict[str, Any], keys: tuple[str, ...]) -> dict[str, str | None]:
    return {k: clean_str(payload.get(k)) for k in keys}


def validate_contact(payload: dict[str, Any]) -> tuple[dict[str, Any], str | None]:
    v = _required(payload, ("fullName", "email", "phone", "whatsapp", "message"))
    if not (v["fullName"] and v["email"] and v["message"]):
        return {}, "Full name, email, and message are required"
    if not EMAIL_RE.match(v["email"]):
        return {}, "Invalid email address"
    return {
        "full_name": v["fullName"],
        "email": v["email"],
        "phone": v["phone"],
        "whatsapp": v["whatsapp"],
        "message": v["message"],
    }, None


def validate_modal(payload: dict[str, Any]) -> tuple[dict[str, Any], str | None]:
    v = _required(payload, ("fullName", "whatsapp", "message"))
    if not (v["fullName"] and v["whatsapp"] and v["message"]):
        return {}, "Full name, WhatsApp number, and message are required"
    return {"full_name": v["fullName"], "whatsapp": v["whatsapp"], "message": v["message"]}, None


def validate_pdf_request(payload: dict[str, Any]) -> tuple[dict[str, Any], str | None]:
    v = _required(payload, ("fullName", "whatsapp", "email", "pdfUrl", "packageName"))
    if not (v["fullName"] and v["whatsapp"] and v["email"] and v["pdfUrl"]):
        return {}, "Name, WhatsApp number, email, and PDF URL are required"
    if not EMAIL_RE.match(v["email"]):
        return {}, "Invalid email address"
    if not v["pdfUrl"].startswith(("http://", "https://")):
        return {}, "PDF URL must be an http(s) link"
    return {
        "full_name": v["fullName"],
        "whatsapp": v["whatsapp"],
        "email": v["email"],
        "pdf_url": v["pdfUrl"],
        "package_name": v["packageName"],
    }, None


def send_pdf_link(mailer: SmtpMailer, values: dict[str, Any], *, site_name: str) -> None:
    """Email the document link. Raises MailNotConfigured / MailError."""
    subject, text, html = render_pdf_link_email(
        full_name=values["full_name"],
        pdf_url=values["pdf_url"],
        package_name=values.get("package_name"),
        site_name=site_name,
    )
    mailer.send(to=values["email"], subject=subject, text=text, html=html)


def list_enquiries(s: "Session", kind: EnquiryKind, pr: PageRequest, search: str = "") -> tuple[list, int]:
    m = kind.model
    q = s.query(m)
    search = search.strip()
    if search:
        like = f"%{search}%"
        q = q.filter(or_(*[getattr(m, c).ilike(like) for c in kind.search_columns]))
    total = q.count()
    rows = q.order_by(m.created_at.desc(), m.id.desc()).offset(pr.offset).limit(pr.page_size).all()
    return rows, total
