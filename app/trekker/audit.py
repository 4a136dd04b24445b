from __future__ import annotations

import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.trekker.models import AuditEvent, User


def _client_ip() -> str | None:
    # Behind the hosting proxy the first X-Forwarded-For hop is the browser.
    forwarded = (request.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    return forwarded or request.remote_addr


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Append one audit event to the session. The caller commits, so the event
    lands in the same transaction as the change it describes.
    """
    in_request = has_request_context()
    ev = AuditEvent(
        request_id=request_id or (getattr(g, "request_id", None) if in_request else None),
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
        client_ip=_client_ip() if in_request else None,
    )
    s.add(ev)
    return ev


def record_change(s: Session, *, actor: User | None, action: str, row: Any, changes) -> AuditEvent:
    """Edit of a content row; metadata lists the column names that changed."""
    return record_event(
        s,
        actor=actor,
        action=action,
        entity_type=type(row).__name__,
        entity_id=str(row.id),
        metadata={"changes": sorted(changes)},
    )
