# backend/app/services/case_service.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.clock import utcnow
from ..domain.ids import generate_unique_id
from ..domain.pagination import PageParams, order_clause, paginate
from ..domain.pdf_reports import render_assessment_report
from ..domain.statuses import (
    CaseStatus,
    TimelineEvent,
    Urgency,
    UserType,
    ensure_case_transition,
    parse_enum,
)
from ..models import (
    AssessmentItem,
    AssessmentSummary,
    Case,
    CaseTimeline,
    Damage,
    DamagePhoto,
    Property,
    Report,
    ReportPhoto,
    User,
)
from ..schemas import CaseCreateIn, ReportAssessmentIn
from .file_storage import public_url, store_file
from .payout_service import accrue_earning
from .settings_service import deadline_days, get_platform_settings

log = logging.getLogger("utleieskade.cases")

CASE_SORT_COLUMNS = {
    "createdAt": Case.created_at,
    "updatedAt": Case.updated_at,
    "caseId": Case.id,
    "caseStatus": Case.status,
    "status": Case.status,
    "caseUrgency": Case.urgency,
    "urgencyLevel": Case.urgency,
    "caseDeadline": Case.deadline,
    "caseDescription": Case.description,
}

AVAILABLE_STATUSES = (CaseStatus.open.value, CaseStatus.pending.value)


def parse_datetime(raw: Optional[str]) -> Optional[datetime]:
    """ISO-8601 date or datetime; None when absent or unparseable."""
    v = (raw or "").strip()
    if not v:
        return None
    try:
        dt = datetime.fromisoformat(v.replace("Z", "+00:00"))
    except ValueError:
        log.warning("unparseable date %r ignored", raw)
        return None
    if dt.tzinfo is not None:
        dt = (dt - (dt.utcoffset() or timedelta())).replace(tzinfo=None)
    return dt


def add_timeline(db: Session, case: Case, event: TimelineEvent, description: str) -> CaseTimeline:
    row = CaseTimeline(case_id=case.id, event_type=event.value, description=description, created_at=utcnow())
    db.add(row)
    return row


# -----------------------------------------------------------------------------
# Creation
# -----------------------------------------------------------------------------
def resolve_property(db: Session, payload: CaseCreateIn) -> Optional[Property]:
    """Reuses a property by id or case-insensitive address match, else creates one."""
    if payload.property_id:
        prop = db.get(Property, payload.property_id)
        if prop is not None:
            return prop

    address = (payload.property_address or "").strip()
    if not address:
        if payload.property_id:
            raise HTTPException(status_code=404, detail="Property not found.")
        return None

    stmt = select(Property).where(func.lower(Property.address) == address.lower())
    if payload.property_postcode:
        stmt = stmt.where(or_(Property.postcode.is_(None), Property.postcode == payload.property_postcode.strip()))
    prop = db.scalars(stmt.limit(1)).first()
    if prop is not None:
        return prop

    prop = Property(
        id=generate_unique_id("PROP"),
        address=address,
        city=(payload.property_city or "").strip() or None,
        postcode=(payload.property_postcode or "").strip() or None,
        country=(payload.property_country or "").strip() or None,
        property_type=(payload.property_type or "").strip() or None,
    )
    db.add(prop)
    db.flush()
    return prop


def build_case(db: Session, *, tenant_id: str, payload: CaseCreateIn) -> Case:
    """Stages the case with its damages and first timeline event; caller commits."""
    if not (payload.case_description or "").strip():
        raise HTTPException(status_code=400, detail="Case description is required.")

    prop = resolve_property(db, payload)
    urgency = parse_enum(Urgency, payload.case_urgency, field="caseUrgency")
    deadline = parse_datetime(payload.case_deadline)
    if deadline is None:
        deadline = utcnow() + timedelta(days=deadline_days(get_platform_settings(db), urgency))

    case = Case(
        id=generate_unique_id("CASE"),
        tenant_id=tenant_id,
        property_id=prop.id if prop else None,
        description=payload.case_description.strip(),
        urgency=urgency,
        status=CaseStatus.open.value,
        building_number=(payload.building_number or "").strip() or None,
        deadline=deadline,
    )
    db.add(case)

    for d in payload.damages:
        damage = Damage(
            case=case,
            location=d.damage_location,
            damage_type=d.damage_type,
            description=d.damage_description,
            damage_date=parse_datetime(d.damage_date) or utcnow(),
        )
        for ph in d.damage_photos:
            url = (ph.photo_url or "").strip()
            if not url:
                log.warning("damage photo without url skipped", extra={"case_id": case.id})
                continue
            damage.photos.append(DamagePhoto(photo_type=ph.photo_type or "general", photo_url=url))
        db.add(damage)

    add_timeline(db, case, TimelineEvent.case_created, "Case created by tenant")
    return case


def create_case(db: Session, *, tenant_id: str, payload: CaseCreateIn) -> Case:
    case = build_case(db, tenant_id=tenant_id, payload=payload)
    db.commit()
    db.refresh(case)
    log.info("case created", extra={"case_id": case.id, "user_id": tenant_id})
    return case


# -----------------------------------------------------------------------------
# Reads
# -----------------------------------------------------------------------------
def case_query(
    *,
    search: Optional[str] = None,
    status: Optional[str] = None,
    urgency: Optional[str] = None,
    tenant_id: Optional[str] = None,
    inspector_id: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
):
    stmt = select(Case)
    if tenant_id:
        stmt = stmt.where(Case.tenant_id == tenant_id)
    if inspector_id:
        stmt = stmt.where(Case.inspector_id == inspector_id)
    if status:
        stmt = stmt.where(Case.status == parse_enum(CaseStatus, status, field="status"))
    if urgency:
        stmt = stmt.where(Case.urgency == parse_enum(Urgency, urgency, field="urgency"))
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(Case.description.ilike(like), Case.id.ilike(like)))
    return stmt.order_by(order_clause(sort_by, sort_order, CASE_SORT_COLUMNS, "createdAt"))


def list_cases_for(db: Session, p: Principal, params: PageParams, **filters) -> tuple[list[Case], int]:
    """Role-scoped listing: tenants see their own, inspectors theirs, admins all."""
    if p.user_type in (UserType.tenant.value, UserType.landlord.value):
        filters["tenant_id"] = p.user_id
    elif p.user_type == UserType.inspector.value:
        filters["inspector_id"] = p.user_id
    return paginate(db, case_query(**filters), params)


def available_cases(db: Session, params: PageParams, *, search: Optional[str] = None, urgency: Optional[str] = None):
    stmt = select(Case).where(Case.inspector_id.is_(None), Case.status.in_(AVAILABLE_STATUSES))
    if urgency:
        stmt = stmt.where(Case.urgency == parse_enum(Urgency, urgency, field="urgency"))
    if search:
        stmt = stmt.where(Case.description.ilike(f"%{search.strip()}%"))
    return paginate(db, stmt.order_by(Case.deadline.asc(), Case.created_at.asc()), params)


def get_case_for(db: Session, p: Principal, case_id: str) -> Case:
    case = db.get(Case, str(case_id))
    if case is None:
        raise HTTPException(status_code=404, detail="Case not found.")
    if p.is_admin:
        return case
    if p.user_type in (UserType.tenant.value, UserType.landlord.value) and case.tenant_id == p.user_id:
        return case
    if p.user_type == UserType.inspector.value and case.inspector_id in (None, p.user_id):
        return case
    raise HTTPException(status_code=403, detail="You do not have access to this case")


def timeline(db: Session, case_id: str) -> list[CaseTimeline]:
    return list(
        db.scalars(
            select(CaseTimeline).where(CaseTimeline.case_id == case_id).order_by(CaseTimeline.created_at, CaseTimeline.id)
        ).all()
    )


# -----------------------------------------------------------------------------
# Transitions
# -----------------------------------------------------------------------------
def _set_status(case: Case, target: str) -> None:
    ensure_case_transition(case.status, target)
    case.status = target
    case.updated_at = utcnow()
    if target == CaseStatus.completed.value:
        case.completed_at = utcnow()


def update_status(db: Session, case: Case, raw_status: Optional[str]) -> Case:
    if not (raw_status or "").strip():
        raise HTTPException(status_code=400, detail="Status is required.")
    target = parse_enum(CaseStatus, raw_status, field="status")
    if target == CaseStatus.cancelled.value:
        raise HTTPException(status_code=400, detail="Use the cancel endpoint to cancel a case.")
    if target == case.status:
        return case

    previous = case.status
    _set_status(case, target)
    event = TimelineEvent.case_completed if target == CaseStatus.completed.value else TimelineEvent.status_change
    add_timeline(db, case, event, f"Status changed from {previous} to {target}")
    db.commit()
    db.refresh(case)
    return case


def cancel_case(db: Session, case: Case, reason: Optional[str]) -> Case:
    if not (reason or "").strip():
        raise HTTPException(status_code=400, detail="Cancellation reason is required.")
    if case.status == CaseStatus.cancelled.value:
        raise HTTPException(status_code=400, detail="Case is already cancelled.")
    _set_status(case, CaseStatus.cancelled.value)
    case.cancellation_reason = reason.strip()
    add_timeline(db, case, TimelineEvent.case_cancelled, f"Case cancelled: {case.cancellation_reason}")
    db.commit()
    db.refresh(case)
    log.info("case cancelled", extra={"case_id": case.id})
    return case


def assign_case(db: Session, case_id: str, inspector_id: Optional[str]) -> Case:
    """Admin assignment. A missing case or inspector leaves everything untouched."""
    case = db.get(Case, str(case_id))
    inspector = None
    if inspector_id:
        inspector = db.scalar(
            select(User).where(User.id == inspector_id, User.user_type == UserType.inspector.value)
        )
    if case is None or inspector is None:
        raise HTTPException(status_code=404, detail="Case or inspector not found")

    if case.inspector_id and case.inspector_id != inspector.id:
        raise HTTPException(status_code=400, detail="Case is already claimed by another inspector")
    if case.status in (CaseStatus.completed.value, CaseStatus.cancelled.value):
        raise HTTPException(status_code=400, detail=f"Cannot assign a {case.status} case")
    if case.inspector_id == inspector.id:
        return case

    case.inspector_id = inspector.id
    if case.status in AVAILABLE_STATUSES:
        _set_status(case, CaseStatus.in_progress.value)
    case.updated_at = utcnow()
    add_timeline(db, case, TimelineEvent.inspector_assigned, f"Inspector {inspector.full_name} assigned")
    db.commit()
    db.refresh(case)
    log.info("case assigned", extra={"case_id": case.id, "user_id": inspector.id})
    return case


def claim_case(db: Session, case_id: str, inspector: User) -> Case:
    """Conditional update so two inspectors cannot claim the same case."""
    case = db.get(Case, str(case_id))
    if case is None:
        raise HTTPException(status_code=404, detail="Case not found.")

    res = db.execute(
        update(Case)
        .where(Case.id == case.id, Case.inspector_id.is_(None), Case.status.in_(AVAILABLE_STATUSES))
        .values(inspector_id=inspector.id, status=CaseStatus.in_progress.value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        db.rollback()
        raise HTTPException(status_code=400, detail="Case is already claimed or no longer available")

    db.expire(case)
    add_timeline(db, case, TimelineEvent.inspector_accepted, "Case claimed by inspector")
    db.commit()
    db.refresh(case)
    return case


def _ensure_assigned(case: Case, inspector_id: str, message: str = "You are not assigned to this case") -> None:
    if case.inspector_id != inspector_id:
        raise HTTPException(status_code=403, detail=message)


def cancel_assigned_case(db: Session, case: Case, inspector_id: str, reason: Optional[str]) -> Case:
    _ensure_assigned(case, inspector_id, "You can only cancel cases that you have claimed")
    return cancel_case(db, case, reason)


def release_case(db: Session, case: Case, inspector_id: str) -> Case:
    _ensure_assigned(case, inspector_id, "You can only release cases that you have claimed")
    if case.status in (CaseStatus.in_progress.value, CaseStatus.on_hold.value):
        _set_status(case, CaseStatus.open.value)
    case.inspector_id = None
    case.updated_at = utcnow()
    add_timeline(db, case, TimelineEvent.case_released, "Case released by inspector")
    db.commit()
    db.refresh(case)
    return case


def hold_case(db: Session, case: Case, inspector_id: str, reason: Optional[str]) -> Case:
    if not (reason or "").strip():
        raise HTTPException(status_code=400, detail="Hold reason is required")
    _ensure_assigned(case, inspector_id)
    _set_status(case, CaseStatus.on_hold.value)
    add_timeline(db, case, TimelineEvent.case_on_hold, f"Case put on hold: {reason.strip()}")
    db.commit()
    db.refresh(case)
    return case


def extend_deadline(db: Session, case: Case, raw_deadline: Optional[str], reason: Optional[str] = None) -> Case:
    if not (raw_deadline or "").strip():
        raise HTTPException(status_code=400, detail="New deadline is required.")
    new_deadline = parse_datetime(raw_deadline)
    if new_deadline is None:
        raise HTTPException(status_code=400, detail="Invalid deadline date.")
    if case.deadline and new_deadline <= case.deadline:
        raise HTTPException(status_code=400, detail="New deadline must be after the current deadline.")

    case.deadline = new_deadline
    case.updated_at = utcnow()
    text = f"Deadline extended to {new_deadline.date().isoformat()}"
    if reason:
        text += f": {reason.strip()}"
    add_timeline(db, case, TimelineEvent.deadline_extended, text)
    db.commit()
    db.refresh(case)
    return case


# -----------------------------------------------------------------------------
# Assessment
# -----------------------------------------------------------------------------
def report_assessment(db: Session, inspector: User, payload: ReportAssessmentIn, *, base_url: str = "") -> Report:
    """
    Stores the assessment verbatim, completes the case and accrues the
    inspector's earning in one commit. The PDF is rendered afterwards,
    best-effort.
    """
    if not payload.case_id:
        raise HTTPException(status_code=400, detail="Case ID is required")
    if not payload.items:
        raise HTTPException(status_code=400, detail="At least one assessment item is required")
    if payload.summary is None:
        raise HTTPException(status_code=400, detail="Summary is required")

    case = db.get(Case, payload.case_id)
    if case is None:
        raise HTTPException(status_code=404, detail="Case not found.")
    _ensure_assigned(case, inspector.id)

    report = Report(
        id=generate_unique_id("RPT"),
        case_id=case.id,
        inspector_id=inspector.id,
        description=(payload.report_description or "").strip() or None,
    )
    for it in payload.items:
        report.items.append(AssessmentItem(**it.model_dump()))
    report.summary = AssessmentSummary(**payload.summary.model_dump())
    for ph in payload.photos:
        if ph.photo_url:
            report.photos.append(ReportPhoto(photo_type=ph.photo_type or "general", photo_url=ph.photo_url.strip()))
    db.add(report)

    if case.status != CaseStatus.completed.value:
        _set_status(case, CaseStatus.completed.value)
        add_timeline(db, case, TimelineEvent.case_completed, "Assessment report submitted")
    accrue_earning(db, case, inspector.id)
    db.commit()
    db.refresh(report)
    log.info("assessment reported", extra={"case_id": case.id, "user_id": inspector.id})

    attach_report_pdf(db, case, report, base_url=base_url)
    return report


def attach_report_pdf(db: Session, case: Case, report: Report, *, base_url: str = "") -> None:
    try:
        pdf = render_assessment_report(case, report)
        rel = store_file(pdf, filename=f"{report.id}.pdf", content_type="application/pdf", folder="reports")
        report.pdf_url = public_url(rel, base_url)
        db.commit()
    except Exception:
        db.rollback()
        log.exception("report pdf could not be stored", extra={"case_id": case.id})


def reports_for_inspector(db: Session, inspector_id: str) -> list[Report]:
    return list(
        db.scalars(select(Report).where(Report.inspector_id == inspector_id).order_by(Report.created_at.desc())).all()
    )


def case_totals(db: Session, **where) -> dict[str, int]:
    stmt = select(Case.status, func.count()).group_by(Case.status)
    for k, v in where.items():
        stmt = stmt.where(getattr(Case, k) == v)
    counts = {s: int(n) for s, n in db.execute(stmt).all()}
    return {s.value: counts.get(s.value, 0) for s in CaseStatus}


def own_report(db: Session, report_id: str, inspector_id: str, *, action: str = "access") -> Report:
    report = db.scalar(select(Report).where(Report.id == report_id, Report.inspector_id == inspector_id))
    if report is None:
        raise HTTPException(status_code=404, detail=f"Report not found or you don't have permission to {action} it")
    return report


def report_preview(db: Session, case_id: str, inspector_id: str) -> dict:
    case = db.get(Case, str(case_id))
    if case is None or case.inspector_id != inspector_id:
        raise HTTPException(status_code=404, detail="Case not found or not assigned to you")
    latest = max(case.reports, key=lambda r: r.created_at, default=None)
    return {"case": case, "report": latest}


def delete_report(db: Session, report_id: str, inspector_id: str) -> str:
    """Returns the case id the deleted report belonged to."""
    report = own_report(db, report_id, inspector_id, action="delete")
    case_id = report.case_id
    db.delete(report)
    db.commit()
    return case_id


def report_pdf(db: Session, report_id: str, inspector_id: str) -> bytes:
    report = own_report(db, report_id, inspector_id)
    return render_assessment_report(report.case, report)
