# backend/app/services/action_log_service.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..domain.action_log import KNOWN_ACTION_TYPES
from ..domain.pagination import PageParams, order_clause, paginate
from ..models import ActionLog
from .case_service import parse_datetime

LOG_SORT_COLUMNS = {
    "createdAt": ActionLog.created_at,
    "actionType": ActionLog.action_type,
    "caseId": ActionLog.case_id,
}


def list_logs(
    db: Session,
    params: PageParams,
    *,
    action_type: Optional[str] = None,
    inspector_id: Optional[str] = None,
    admin_id: Optional[str] = None,
    case_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> tuple[list[ActionLog], int]:
    stmt = select(ActionLog)
    if action_type:
        stmt = stmt.where(ActionLog.action_type == action_type.strip())
    if inspector_id:
        stmt = stmt.where(ActionLog.inspector_id == inspector_id)
    if admin_id:
        stmt = stmt.where(ActionLog.admin_id == admin_id)
    if case_id:
        stmt = stmt.where(ActionLog.case_id == case_id)
    # Unparseable dates are ignored rather than rejected.
    start = parse_datetime(start_date)
    if start is not None:
        stmt = stmt.where(ActionLog.created_at >= start)
    end = parse_datetime(end_date)
    if end is not None:
        stmt = stmt.where(ActionLog.created_at <= end)
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                ActionLog.description.ilike(like),
                ActionLog.action_type.ilike(like),
                ActionLog.case_id.ilike(like),
            )
        )
    stmt = stmt.order_by(order_clause(sort_by, sort_order, LOG_SORT_COLUMNS, "createdAt"))
    return paginate(db, stmt, params)


def action_types(db: Session) -> list[str]:
    present = set(db.scalars(select(ActionLog.action_type).distinct()).all())
    return sorted(present | set(KNOWN_ACTION_TYPES))
