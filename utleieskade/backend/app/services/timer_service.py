# backend/app/services/timer_service.py
from __future__ import annotations

from typing import Any

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..domain.clock import utcnow
from ..domain.ids import generate_unique_id
from ..models import Case, TrackingTime
from ..serializers import iso


def _assigned_case(db: Session, case_id: str, inspector_id: str) -> Case:
    case = db.scalar(select(Case).where(Case.id == case_id, Case.inspector_id == inspector_id))
    if case is None:
        raise HTTPException(status_code=404, detail="Case not found or not assigned to you")
    return case


def _active(db: Session, case_id: str, inspector_id: str) -> TrackingTime | None:
    return db.scalar(
        select(TrackingTime).where(
            TrackingTime.case_id == case_id,
            TrackingTime.inspector_id == inspector_id,
            TrackingTime.is_active.is_(True),
        )
    )


def _duration(seconds: int) -> dict[str, int]:
    minutes = seconds // 60
    return {"seconds": seconds, "minutes": minutes, "hours": minutes // 60}


def start_timer(db: Session, case_id: str, inspector_id: str) -> dict[str, Any]:
    _assigned_case(db, case_id, inspector_id)
    if _active(db, case_id, inspector_id) is not None:
        raise HTTPException(status_code=400, detail="Timer is already running for this case")

    row = TrackingTime(
        id=generate_unique_id("TIME"),
        case_id=case_id,
        inspector_id=inspector_id,
        started_at=utcnow(),
        is_active=True,
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Timer is already running for this case")
    return {"timerId": row.id, "startTime": iso(row.started_at), "isActive": True}


def stop_timer(db: Session, case_id: str, inspector_id: str) -> dict[str, Any]:
    row = _active(db, case_id, inspector_id)
    if row is None:
        raise HTTPException(status_code=404, detail="No active timer found for this case")
    row.ended_at = utcnow()
    row.is_active = False
    db.commit()
    seconds = int((row.ended_at - row.started_at).total_seconds())
    return {
        "timerId": row.id,
        "startTime": iso(row.started_at),
        "endTime": iso(row.ended_at),
        "duration": _duration(seconds),
    }


def get_timer(db: Session, case_id: str, inspector_id: str) -> dict[str, Any]:
    _assigned_case(db, case_id, inspector_id)
    rows = db.scalars(
        select(TrackingTime)
        .where(TrackingTime.case_id == case_id, TrackingTime.inspector_id == inspector_id)
        .order_by(TrackingTime.started_at.desc())
    ).all()

    now = utcnow()
    active = None
    sessions = []
    total = 0
    for r in rows:
        seconds = int(((r.ended_at or now) - r.started_at).total_seconds())
        total += seconds
        item = {
            "timerId": r.id,
            "startTime": iso(r.started_at),
            "endTime": iso(r.ended_at),
            "isActive": bool(r.is_active),
            "duration": _duration(seconds),
        }
        if r.is_active and active is None:
            active = item
        sessions.append(item)

    return {
        "activeTimer": active,
        "sessions": sessions,
        "totalSeconds": total,
        "totalMinutes": total // 60,
        "totalHours": round(total / 3600, 2),
    }
