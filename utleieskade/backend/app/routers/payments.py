# backend/app/routers/payments.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin, require_tenant
from ..db import get_db
from ..domain.action_log import log_admin_action
from ..domain.pagination import page_meta, page_params
from ..domain.pdf_reports import render_payment_receipt, render_payout_statement
from ..responses import envelope, pdf_attachment
from ..schemas import PaymentConfirmIn, PaymentIntentIn, RejectIn
from ..serializers import case_detail, money, payment_out, payout_out, refund_out
from ..services import payment_service, payout_service
from ..services.ownership import must_get_payout, must_get_user

router = APIRouter(prefix="/payments", tags=["payments"])


# -----------------------------------------------------------------------------
# Tenant
# -----------------------------------------------------------------------------
@router.post("/create-intent")
def create_intent(payload: PaymentIntentIn, p: Principal = Depends(require_tenant), db: Session = Depends(get_db)):
    tenant = must_get_user(db, user_id=p.user_id)
    intent = payment_service.create_intent(db, tenant, amount=payload.amount, urgency=payload.case_urgency)
    return envelope(
        "Payment intent created successfully",
        {
            "clientSecret": intent.client_secret,
            "paymentIntentId": intent.id,
            "amount": money(intent.amount),
            "currency": intent.currency,
        },
    )


@router.post("/confirm", status_code=201)
def confirm(payload: PaymentConfirmIn, p: Principal = Depends(require_tenant), db: Session = Depends(get_db)):
    tenant = must_get_user(db, user_id=p.user_id)
    case, payment = payment_service.confirm_payment(db, tenant, payload)
    return envelope("Payment confirmed and case created successfully", {"case": case_detail(case), "payment": payment_out(payment)})


@router.get("/my-transactions")
def my_transactions(p: Principal = Depends(require_tenant), db: Session = Depends(get_db)):
    tx = payment_service.tenant_transactions(db, p.user_id)
    return envelope(
        "Transactions fetched successfully",
        {"payments": [payment_out(x) for x in tx["payments"]], "refunds": [refund_out(x) for x in tx["refunds"]]},
    )


@router.get("/receipt/{payment_id}")
def receipt(payment_id: str, p: Principal = Depends(require_tenant), db: Session = Depends(get_db)):
    payment = payment_service.tenant_payment_for(db, p.user_id, payment_id)
    tenant = must_get_user(db, user_id=p.user_id)
    return pdf_attachment(render_payment_receipt(payment, tenant), f"receipt-{payment.id}.pdf")


# -----------------------------------------------------------------------------
# Admin: inspector payouts
# -----------------------------------------------------------------------------
@router.get("/allPayments")
def all_payments(
    page: int = Query(default=1),
    limit: int = Query(default=10),
    search: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    params = page_params(page, limit)
    rows, total = payout_service.list_payouts(
        db, params, search=search, status=status, sort_by=sort_by, sort_order=sort_order
    )
    return envelope(
        "Payments fetched successfully",
        {
            "totalPayments": total,
            **page_meta(total, params),
            "payments": [payout_out(r, with_inspector=True) for r in rows],
        },
    )


@router.get("/getPaymentDetails/{payment_id}")
def payment_details(payment_id: str, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    row = must_get_payout(db, payment_id=payment_id)
    out = payout_out(row, with_inspector=True)
    bank = row.inspector.bank_details if row.inspector else None
    out["bankDetails"] = (
        {"bankName": bank.bank_name, "accountNumber": bank.account_number, "sortCode": bank.sort_code} if bank else None
    )
    return envelope("Payment details fetched successfully", out)


@router.patch("/approve/{payment_id}")
def approve(payment_id: str, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    row = payout_service.approve_payout(db, must_get_payout(db, payment_id=payment_id))
    log_admin_action(
        db, p.user_id, "admin_payout_approved", f"Approved payout {row.id}", case_id=row.case_id,
        metadata={"inspectorId": row.inspector_id, "amount": str(row.amount)},
    )
    return envelope("Payment approved successfully", payout_out(row))


@router.patch("/reject/{payment_id}")
def reject(payment_id: str, payload: RejectIn, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    row = payout_service.reject_payout(db, must_get_payout(db, payment_id=payment_id), payload.rejection_reason)
    log_admin_action(
        db, p.user_id, "admin_payout_rejected", f"Rejected payout {row.id}: {row.rejection_reason}", case_id=row.case_id,
        metadata={"inspectorId": row.inspector_id},
    )
    return envelope("Payment rejected successfully", payout_out(row))


@router.get("/report/{payment_id}")
def payout_report(payment_id: str, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    row = must_get_payout(db, payment_id=payment_id)
    inspector = row.inspector
    bank = inspector.bank_details if inspector else None
    return pdf_attachment(render_payout_statement(row, inspector, bank), f"payout-{row.id}.pdf")
