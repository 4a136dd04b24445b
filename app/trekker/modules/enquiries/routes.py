"""Anonymous enquiry submissions from the public site."""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from app.trekker.db import db_session
from app.trekker.mailer import MailError, MailNotConfigured, mailer_from_config
from app.trekker.modules.enquiries.models import ContactEnquiry, ModalEnquiry, PdfEnquiry
from app.trekker.modules.enquiries.service import send_pdf_link, validate_contact, validate_modal, validate_pdf_request
from app.trekker.utils import json_error, request_payload

bp = Blueprint("enquiries_public", __name__)

THANK_YOU = "Thank you! We'll get back to you within 24 hours."


def _insert(model: type, values: dict):
    s = db_session()
    row = model(**values)
    s.add(row)
    s.commit()
    return row


@bp.post("/contact")
def contact():
    values, err = validate_contact(request_payload())
    if err:
        return json_error(err, 400)
    try:
        row = _insert(ContactEnquiry, values)
    except SQLAlchemyError:
        db_session().rollback()
        current_app.logger.exception("Error inserting contact enquiry")
        return json_error("Failed to submit enquiry. Please try again.", 500)
    return jsonify({"success": True, "message": THANK_YOU, "data": row.to_dict()}), 201


@bp.post("/modal-enquiries")
def modal_enquiry():
    values, err = validate_modal(request_payload())
    if err:
        return json_error(err, 400)
    try:
        row = _insert(ModalEnquiry, values)
    except SQLAlchemyError:
        db_session().rollback()
        current_app.logger.exception("Error inserting modal enquiry")
        return json_error("Failed to submit enquiry. Please try again.", 500)
    return jsonify({"message": THANK_YOU, "data": row.to_dict()}), 201


@bp.post("/send-pdf-link")
def send_pdf_link_view():
    values, err = validate_pdf_request(request_payload())
    if err:
        return json_error(err, 400)

    mailer = mailer_from_config(current_app.config)
    try:
        send_pdf_link(mailer, values, site_name=current_app.config.get("SITE_NAME") or "Imagination Trekker")
    except MailNotConfigured:
        current_app.logger.error("SMTP not configured. Set SMTP_HOST, SMTP_USER, SMTP_PASS in .env")
        return json_error("Email service is not configured. Please contact support.", 500)
    except MailError as e:
        current_app.logger.error("Error sending PDF link email to %s: %s", values["email"], e)
        return json_error("Failed to send email. Please try again.", 500)

    # Email already sent; a failed insert is only logged.
    try:
        _insert(PdfEnquiry, values)
    except SQLAlchemyError:
        db_session().rollback()
        current_app.logger.exception("Failed to save PDF enquiry (email=%s)", values["email"])

    return jsonify({"success": True, "message": "PDF link has been sent to your email. Please check your inbox."})
