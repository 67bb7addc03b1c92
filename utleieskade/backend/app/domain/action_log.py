# backend/app/domain/action_log.py
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import ActionLog

log = logging.getLogger("utleieskade.action_log")

KNOWN_ACTION_TYPES = [
    "case_claimed",
    "case_cancelled",
    "case_on_hold",
    "case_released",
    "case_completed",
    "report_submitted",
    "report_deleted",
    "payout_requested",
    "admin_case_assigned",
    "admin_case_status_changed",
    "admin_case_cancelled",
    "admin_deadline_extended",
    "admin_payout_approved",
    "admin_payout_rejected",
    "admin_refund_approved",
    "admin_refund_rejected",
    "admin_user_deactivated",
    "admin_inspector_created",
    "admin_inspector_updated",
    "admin_settings_updated",
    "admin_data_deleted",
]


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def log_action(
    db: Session,
    *,
    action_type: str,
    description: str,
    inspector_id: Optional[str] = None,
    admin_id: Optional[str] = None,
    case_id: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> Optional[ActionLog]:
    """
    Best-effort audit writer.

    Call it AFTER the primary change has been committed: it commits on its own
    and a failure here only rolls back the log row. Never raises.
    """
    if not inspector_id and not admin_id:
        log.warning("cannot log action %s: inspector_id or admin_id is required", action_type)
        return None

    row = ActionLog(
        inspector_id=inspector_id or None,
        admin_id=admin_id or None,
        action_type=action_type,
        description=description,
        case_id=case_id,
        metadata_json=_dumps(metadata),
    )
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except SQLAlchemyError:
        db.rollback()
        log.exception("failed to write action log %s", action_type, extra={"case_id": case_id})
        return None

    log.info(
        "action logged: %s by %s %s",
        action_type,
        "inspector" if inspector_id else "admin",
        inspector_id or admin_id,
        extra={"case_id": case_id},
    )
    return row


def log_inspector_action(db: Session, inspector_id: str, action_type: str, description: str, **kw: Any) -> Optional[ActionLog]:
    return log_action(db, action_type=action_type, description=description, inspector_id=inspector_id, **kw)


def log_admin_action(db: Session, admin_id: str, action_type: str, description: str, **kw: Any) -> Optional[ActionLog]:
    return log_action(db, action_type=action_type, description=description, admin_id=admin_id, **kw)


def metadata_of(row: ActionLog) -> dict[str, Any]:
    if not row.metadata_json:
        return {}
    try:
        v = json.loads(row.metadata_json)
        return v if isinstance(v, dict) else {}
    except ValueError:
        return {}
