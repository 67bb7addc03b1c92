# backend/app/routers/cases.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_admin, require_inspector, require_tenant
from ..db import get_db
from ..domain.action_log import log_admin_action, log_inspector_action
from ..domain.pagination import page_meta, page_params
from ..domain.statuses import UserType
from ..responses import base_url, envelope
from ..schemas import (
    AssignCaseIn,
    CancelCaseIn,
    CaseCreateIn,
    CaseStatusIn,
    ExtendDeadlineIn,
    ReportAssessmentIn,
)
from ..serializers import case_detail, case_summary, report_out, timeline_out
from ..services import case_service
from ..services.ownership import must_get_case, must_get_user

router = APIRouter(prefix="/cases", tags=["cases"])


@router.post("/create-case", status_code=201)
def create_case(payload: CaseCreateIn, p: Principal = Depends(require_tenant), db: Session = Depends(get_db)):
    case = case_service.create_case(db, tenant_id=p.user_id, payload=payload)
    return envelope("Case created successfully", case_detail(case))


@router.get("/getCases")
def list_cases(
    page: int = Query(default=1),
    limit: int = Query(default=10),
    status: Optional[str] = Query(default=None),
    urgency: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    p: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    params = page_params(page, limit)
    rows, total = case_service.list_cases_for(
        db, p, params, search=search, status=status, urgency=urgency, sort_by=sort_by, sort_order=sort_order
    )
    return envelope(
        "Cases fetched successfully",
        {"totalCases": total, **page_meta(total, params), "cases": [case_summary(c) for c in rows]},
    )


@router.post("/report-assessment", status_code=201)
def report_assessment(
    payload: ReportAssessmentIn,
    request: Request,
    p: Principal = Depends(require_inspector),
    db: Session = Depends(get_db),
):
    inspector = must_get_user(db, user_id=p.user_id)
    report = case_service.report_assessment(db, inspector, payload, base_url=base_url(request))
    log_inspector_action(
        db, p.user_id, "report_submitted", f"Submitted assessment report {report.id}", case_id=report.case_id
    )
    return envelope("Assessment report submitted successfully", report_out(report))


@router.get("/{case_id}")
def get_case(case_id: str, p: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    case = case_service.get_case_for(db, p, case_id)
    return envelope("Case details fetched successfully", case_detail(case))


@router.get("/{case_id}/timeline")
def get_timeline(case_id: str, p: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    case = case_service.get_case_for(db, p, case_id)
    rows = case_service.timeline(db, case.id)
    return envelope("Case timeline fetched successfully", [timeline_out(t) for t in rows])


@router.patch("/{case_id}/status")
def update_status(
    case_id: str,
    payload: CaseStatusIn,
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    case = must_get_case(db, case_id=case_id)
    previous = case.status
    case = case_service.update_status(db, case, payload.status)
    if case.status != previous:
        log_admin_action(
            db,
            p.user_id,
            "admin_case_status_changed",
            f"Changed case status from {previous} to {case.status}",
            case_id=case.id,
            metadata={"from": previous, "to": case.status},
        )
    return envelope("Case status updated successfully", case_summary(case))


@router.patch("/{case_id}/cancel")
def cancel_case(
    case_id: str,
    payload: CancelCaseIn,
    p: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    case = case_service.get_case_for(db, p, case_id)
    if p.user_type == UserType.inspector.value:
        raise HTTPException(status_code=403, detail="Use the inspector cancel endpoint for assigned cases")
    case = case_service.cancel_case(db, case, payload.cancellation_reason)
    if p.is_admin:
        log_admin_action(
            db, p.user_id, "admin_case_cancelled", f"Cancelled case: {case.cancellation_reason}", case_id=case.id
        )
    return envelope("Case cancelled successfully", case_summary(case))


@router.patch("/{case_id}/assign")
def assign_case(
    case_id: str,
    payload: AssignCaseIn,
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    case = case_service.assign_case(db, case_id, payload.inspector_id)
    log_admin_action(
        db,
        p.user_id,
        "admin_case_assigned",
        f"Assigned case to inspector {case.inspector_id}",
        case_id=case.id,
        metadata={"inspectorId": case.inspector_id},
    )
    return envelope("Case assigned successfully", case_summary(case))


@router.patch("/{case_id}/release")
def release_case(case_id: str, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    case = case_service.release_case(db, must_get_case(db, case_id=case_id), p.user_id)
    log_inspector_action(db, p.user_id, "case_released", "Released case", case_id=case.id)
    return envelope("Case released successfully", case_summary(case))


@router.patch("/{case_id}/extend-deadline")
def extend_deadline(
    case_id: str,
    payload: ExtendDeadlineIn,
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    case = case_service.extend_deadline(db, must_get_case(db, case_id=case_id), payload.new_deadline, payload.reason)
    log_admin_action(
        db,
        p.user_id,
        "admin_deadline_extended",
        f"Extended deadline to {case.deadline.date().isoformat()}",
        case_id=case.id,
        metadata={"reason": payload.reason} if payload.reason else None,
    )
    return envelope("Case deadline extended successfully", case_summary(case))
