# backend/app/routers/inspectors.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin, require_inspector
from ..db import get_db
from ..domain.action_log import log_admin_action, log_inspector_action
from ..domain.pagination import page_meta, page_params
from ..domain.pdf_reports import render_earnings_report, render_payout_statement
from ..responses import envelope, export_response, pdf_attachment
from ..schemas import (
    CancelCaseIn,
    ChangePasswordIn,
    EarningsReportIn,
    HoldIn,
    InspectorCreateIn,
    InspectorSettingsIn,
    PayoutRequestIn,
)
from ..serializers import (
    action_log_out,
    case_detail,
    case_summary,
    expertise_out,
    money,
    payout_out,
    report_out,
    user_out,
)
from ..services import case_service, inspector_service, payout_service, timer_service
from ..services.action_log_service import list_logs
from ..services.notification_service import notify
from ..services.ownership import must_get_case, must_get_inspector, must_get_payout, must_get_user
from ..services.user_service import change_password

router = APIRouter(prefix="/inspectors", tags=["inspectors"])


def _inspector_out(u) -> dict:
    out = user_out(u)
    out["expertises"] = [expertise_out(ue.expertise) for ue in u.expertises]
    return out


# -----------------------------------------------------------------------------
# Admin
# -----------------------------------------------------------------------------
@router.post("/createInspector", status_code=201)
def create_inspector(payload: InspectorCreateIn, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    user, emailed = inspector_service.create_inspector(db, payload)
    log_admin_action(db, p.user_id, "admin_inspector_created", f"Created inspector {user.email}", metadata={"inspectorId": user.id})
    msg = "Inspector created successfully" if emailed else "Inspector created, but the welcome email could not be sent"
    return envelope(msg, {**_inspector_out(user), "emailSent": emailed})


@router.get("/allInspectors")
def all_inspectors(
    page: int = Query(default=1),
    limit: int = Query(default=10),
    search: Optional[str] = Query(default=None),
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    params = page_params(page, limit)
    rows, total = inspector_service.list_inspectors(db, params, search)
    return envelope(
        "Inspectors fetched successfully",
        {"totalInspectors": total, **page_meta(total, params), "inspectors": [_inspector_out(u) for u in rows]},
    )


@router.get("/getInspector/{inspector_id}")
def get_inspector(inspector_id: str, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    user = must_get_inspector(db, inspector_id=inspector_id)
    out = _inspector_out(user)
    out["caseTotals"] = case_service.case_totals(db, inspector_id=user.id)
    out["totalEarned"] = money(payout_service.total_earned(db, user.id))
    return envelope("Inspector fetched successfully", out)


@router.get("/export")
def export_inspectors(
    format: Optional[str] = Query(default=None),
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return export_response(
        format,
        name="inspectors",
        title="Inspectors",
        columns=inspector_service.EXPORT_COLUMNS,
        rows=inspector_service.export_rows(db),
    )


@router.patch("/deactivate/{inspector_id}")
def deactivate_inspector(inspector_id: str, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    user = inspector_service.deactivate(db, must_get_inspector(db, inspector_id=inspector_id))
    log_admin_action(db, p.user_id, "admin_user_deactivated", f"Deactivated inspector {user.email}", metadata={"userId": user.id})
    return envelope("Inspector deactivated successfully", user_out(user))


@router.get("/{inspector_id}/cases")
def inspector_cases(
    inspector_id: str,
    page: int = Query(default=1),
    limit: int = Query(default=10),
    status: Optional[str] = Query(default=None),
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = must_get_inspector(db, inspector_id=inspector_id)
    params = page_params(page, limit)
    rows, total = case_service.list_cases_for(db, p, params, inspector_id=user.id, status=status)
    return envelope(
        "Inspector cases fetched successfully",
        {"totalCases": total, **page_meta(total, params), "cases": [case_summary(c) for c in rows]},
    )


# -----------------------------------------------------------------------------
# Inspector self-service
# -----------------------------------------------------------------------------
@router.get("/dashboard")
def dashboard(p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    return envelope("Dashboard fetched successfully", inspector_service.dashboard(db, must_get_user(db, user_id=p.user_id)))


@router.get("/getCases")
def my_cases(
    page: int = Query(default=1),
    limit: int = Query(default=10),
    status: Optional[str] = Query(default=None),
    urgency: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    p: Principal = Depends(require_inspector),
    db: Session = Depends(get_db),
):
    params = page_params(page, limit)
    rows, total = case_service.list_cases_for(
        db, p, params, status=status, urgency=urgency, search=search, sort_by=sort_by, sort_order=sort_order
    )
    return envelope(
        "Cases fetched successfully",
        {"totalCases": total, **page_meta(total, params), "cases": [case_summary(c) for c in rows]},
    )


@router.get("/cases/available")
def available_cases(
    page: int = Query(default=1),
    limit: int = Query(default=10),
    urgency: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    p: Principal = Depends(require_inspector),
    db: Session = Depends(get_db),
):
    params = page_params(page, limit)
    rows, total = case_service.available_cases(db, params, search=search, urgency=urgency)
    return envelope(
        "Available cases fetched successfully",
        {"totalCases": total, **page_meta(total, params), "cases": [case_summary(c) for c in rows]},
    )


@router.post("/cases/{case_id}/claim")
def claim_case(case_id: str, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    inspector = must_get_user(db, user_id=p.user_id)
    case = case_service.claim_case(db, case_id, inspector)
    notify(
        db,
        user_id=case.tenant_id,
        title="Inspector assigned",
        message=f"{inspector.full_name} has taken on case {case.id}.",
        notification_type="case",
        case_id=case.id,
    )
    db.commit()
    log_inspector_action(db, p.user_id, "case_claimed", "Claimed case", case_id=case.id)
    return envelope("Case claimed successfully", case_summary(case))


@router.post("/cases/{case_id}/cancel")
def cancel_case(case_id: str, payload: CancelCaseIn, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    case = case_service.cancel_assigned_case(
        db, must_get_case(db, case_id=case_id), p.user_id, payload.cancellation_reason
    )
    log_inspector_action(
        db, p.user_id, "case_cancelled", f"Cancelled case: {case.cancellation_reason}", case_id=case.id
    )
    return envelope("Case cancelled successfully", case_summary(case))


@router.put("/cases/{case_id}/hold")
def hold_case(case_id: str, payload: HoldIn, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    case = case_service.hold_case(db, must_get_case(db, case_id=case_id), p.user_id, payload.hold_reason)
    log_inspector_action(
        db, p.user_id, "case_on_hold", "Put case on hold", case_id=case.id, metadata={"reason": payload.hold_reason}
    )
    return envelope("Case put on hold successfully", case_summary(case))


@router.put("/cases/{case_id}/release")
def release_case(case_id: str, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    case = case_service.release_case(db, must_get_case(db, case_id=case_id), p.user_id)
    log_inspector_action(db, p.user_id, "case_released", "Released case", case_id=case.id)
    return envelope("Case released successfully", case_summary(case))


@router.get("/cases/{case_id}/report/preview")
def report_preview(case_id: str, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    preview = case_service.report_preview(db, case_id, p.user_id)
    report = preview["report"]
    return envelope(
        "Report preview retrieved successfully",
        {"case": case_detail(preview["case"]), "report": report_out(report) if report else None},
    )


@router.post("/cases/{case_id}/timer/start")
def timer_start(case_id: str, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    return envelope("Timer started successfully", timer_service.start_timer(db, case_id, p.user_id))


@router.post("/cases/{case_id}/timer/stop")
def timer_stop(case_id: str, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    return envelope("Timer stopped successfully", timer_service.stop_timer(db, case_id, p.user_id))


@router.get("/cases/{case_id}/timer")
def timer_get(case_id: str, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    return envelope("Timer fetched successfully", timer_service.get_timer(db, case_id, p.user_id))


@router.get("/earnings")
def earnings(p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    history = payout_service.payout_history(db, p.user_id)
    return envelope(
        "Earnings fetched successfully",
        {
            "pendingBalance": money(payout_service.available_balance(db, p.user_id)),
            "totalEarned": money(payout_service.total_earned(db, p.user_id)),
            "payoutHistory": [payout_out(row) for row in history],
        },
    )


@router.post("/request-payout")
def request_payout(payload: PayoutRequestIn, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    inspector = must_get_user(db, user_id=p.user_id)
    amount = payout_service.request_payout(db, inspector, amount=payload.amount, password=payload.user_password)
    log_inspector_action(db, p.user_id, "payout_requested", f"Requested payout of {amount}", metadata={"amount": str(amount)})
    return envelope("Payout request submitted successfully", {"amount": money(amount)})


@router.post("/earnings/report")
def earnings_report(payload: EarningsReportIn, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    inspector = must_get_user(db, user_id=p.user_id)
    rows = payout_service.monthly_payouts(db, inspector.id, month=payload.month, year=payload.year)
    total = sum((r.amount for r in rows), start=0)
    pdf = render_earnings_report(inspector, rows, month=payload.month, year=payload.year, total=total)
    return pdf_attachment(pdf, f"earnings-{payload.year}-{payload.month:02d}.pdf")


@router.get("/payouts/{payment_id}/pdf")
def payout_pdf(payment_id: str, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    row = must_get_payout(db, payment_id=payment_id)
    if row.inspector_id != p.user_id:
        raise HTTPException(status_code=404, detail="Payment not found")
    inspector = must_get_user(db, user_id=p.user_id)
    return pdf_attachment(render_payout_statement(row, inspector, inspector.bank_details), f"payout-{row.id}.pdf")


@router.get("/settings")
def get_settings(p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    return envelope("Settings fetched successfully", inspector_service.get_settings(must_get_user(db, user_id=p.user_id)))


@router.put("/settings")
def put_settings(payload: InspectorSettingsIn, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    user = inspector_service.update_settings(db, must_get_user(db, user_id=p.user_id), payload)
    return envelope("Settings updated successfully", inspector_service.get_settings(user))


@router.put("/password")
def put_password(payload: ChangePasswordIn, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    change_password(
        db,
        must_get_user(db, user_id=p.user_id),
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    return envelope("Password updated successfully")


@router.delete("/delete/my-account")
def delete_my_account(p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    inspector_service.delete_own_account(db, must_get_user(db, user_id=p.user_id))
    return envelope("Account deleted successfully")


@router.get("/actions/logs")
def my_action_logs(
    page: int = Query(default=1),
    limit: int = Query(default=20),
    action_type: Optional[str] = Query(default=None, alias="actionType"),
    p: Principal = Depends(require_inspector),
    db: Session = Depends(get_db),
):
    params = page_params(page, limit)
    rows, total = list_logs(db, params, inspector_id=p.user_id, action_type=action_type)
    return envelope(
        "Action logs fetched successfully",
        {"total": total, **page_meta(total, params), "logs": [action_log_out(r) for r in rows]},
    )


@router.get("/reports")
def my_reports(p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    rows = case_service.reports_for_inspector(db, p.user_id)
    return envelope("Reports fetched successfully", [report_out(r, full=False) for r in rows])


@router.delete("/reports/{report_id}")
def delete_report(report_id: str, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    case_id = case_service.delete_report(db, report_id, p.user_id)
    log_inspector_action(db, p.user_id, "report_deleted", f"Deleted report {report_id}", case_id=case_id)
    return envelope("Report deleted successfully")


@router.get("/reports/{report_id}/pdf")
def report_pdf(report_id: str, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    return pdf_attachment(case_service.report_pdf(db, report_id, p.user_id), f"report-{report_id}.pdf")
