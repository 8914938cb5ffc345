"""Audit trail writer."""
from __future__ import annotations

from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from ..models import AuditEvent


def add_audit_event(
    db: Session,
    *,
    action: str,
    entity_type: str,
    entity_id: str,
    user_name: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> AuditEvent:
    """Stage an audit row; it is committed together with the change it describes."""
    event = AuditEvent(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_name=user_name,
        details=details,
    )
    db.add(event)
    return event


def session_audit_recorder(db: Session) -> Callable[..., None]:
    def _record(**kwargs: Any) -> None:
        add_audit_event(db, **kwargs)

    return _record
