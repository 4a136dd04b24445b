from __future__ import annotations

from flask import Blueprint, abort, current_app, g, jsonify, request

from app.trekker.audit import record_event
from app.trekker.db import db_session
from app.trekker.modules.enquiries.service import ENQUIRY_KINDS, EnquiryKind, list_enquiries
from app.trekker.rbac import require_permission
from app.trekker.utils import json_error, page_request_from_args, pagination_meta

bp = Blueprint("enquiries", __name__)


def _register(kind: EnquiryKind) -> None:
    name = kind.key.replace("-", "_")

    @require_permission("enquiries.view")
    def list_view():
        pr, err = page_request_from_args(default_size=10, max_size=100)
        if err:
            return json_error(err, 400)
        rows, total = list_enquiries(db_session(), kind, pr, request.args.get("search") or "")
        return jsonify({"data": [r.to_dict() for r in rows], "pagination": pagination_meta(pr, total)})

    @require_permission("enquiries.view")
    def delete_view(item_id: int):
        s = db_session()
        row = s.get(kind.model, item_id)
        if row is None:
            abort(404)
        record_event(
            s,
            actor=g.current_user,
            action=f"{kind.key}.delete",
            entity_type=kind.model.__name__,
            entity_id=str(item_id),
        )
        s.delete(row)
        s.commit()
        current_app.logger.info("%s %s deleted", kind.model.__name__, item_id)
        return jsonify({"success": True})

    bp.add_url_rule(f"/{kind.key}", endpoint=f"{name}_list", view_func=list_view, methods=["GET"])
    bp.add_url_rule(f"/{kind.key}/<int:item_id>", endpoint=f"{name}_delete", view_func=delete_view, methods=["DELETE"])


for _kind in ENQUIRY_KINDS:
    _register(_kind)
