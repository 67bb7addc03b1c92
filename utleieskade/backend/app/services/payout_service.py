# backend/app/services/payout_service.py
"""
Inspector payout ledger.

One row per earning. Rows move:
    pending (earned) -> requested -> processed
                                  -> rejected -> requested (resubmitted) ...
The available balance is the sum of pending and rejected rows.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from ..domain.clock import utcnow
from ..domain.ids import generate_unique_id
from ..domain.pagination import PageParams, order_clause, paginate
from ..domain.statuses import PaymentStatus, PayoutStatus, parse_enum
from ..models import Case, InspectorPayment, Payment, User
from .auth_service import verify_password
from .settings_service import case_price, get_platform_settings

log = logging.getLogger("utleieskade.payouts")

CENT = Decimal("0.01")
AVAILABLE = (PayoutStatus.pending.value, PayoutStatus.rejected.value)

PAYOUT_SORT_COLUMNS = {
    "paymentDate": InspectorPayment.payment_date,
    "paymentAmount": InspectorPayment.amount,
    "amount": InspectorPayment.amount,
    "paymentStatus": InspectorPayment.status,
    "status": InspectorPayment.status,
    "requestedAt": InspectorPayment.requested_at,
    "processedAt": InspectorPayment.processed_at,
}


def earning_for_case(db: Session, case: Case) -> Decimal:
    s = get_platform_settings(db)
    paid = db.scalar(
        select(func.coalesce(func.sum(Payment.amount), 0)).where(
            Payment.case_id == case.id, Payment.status == PaymentStatus.processed.value
        )
    )
    gross = Decimal(paid or 0)
    if gross <= 0:
        gross = case_price(s, case.urgency)
    return (gross * Decimal(s.inspector_percentage) / Decimal(100)).quantize(CENT)


def accrue_earning(db: Session, case: Case, inspector_id: str) -> Optional[InspectorPayment]:
    """Adds the inspector's share for a completed case; one row per case. Caller commits."""
    exists = db.scalar(
        select(InspectorPayment.id).where(
            InspectorPayment.case_id == case.id, InspectorPayment.inspector_id == inspector_id
        )
    )
    if exists:
        return None
    row = InspectorPayment(
        id=generate_unique_id("PO"),
        inspector_id=inspector_id,
        case_id=case.id,
        amount=earning_for_case(db, case),
        status=PayoutStatus.pending.value,
        payment_date=utcnow(),
    )
    db.add(row)
    return row


def available_balance(db: Session, inspector_id: str) -> Decimal:
    v = db.scalar(
        select(func.coalesce(func.sum(InspectorPayment.amount), 0)).where(
            InspectorPayment.inspector_id == inspector_id, InspectorPayment.status.in_(AVAILABLE)
        )
    )
    return Decimal(v or 0).quantize(CENT)


def total_earned(db: Session, inspector_id: str) -> Decimal:
    v = db.scalar(
        select(func.coalesce(func.sum(InspectorPayment.amount), 0)).where(InspectorPayment.inspector_id == inspector_id)
    )
    return Decimal(v or 0).quantize(CENT)


def payout_history(db: Session, inspector_id: str) -> list[InspectorPayment]:
    return list(
        db.scalars(
            select(InspectorPayment)
            .where(InspectorPayment.inspector_id == inspector_id)
            .order_by(InspectorPayment.payment_date.desc())
        ).all()
    )


def request_payout(db: Session, inspector: User, *, amount: Decimal, password: str) -> Decimal:
    if not verify_password(password or "", inspector.password_hash):
        raise HTTPException(status_code=400, detail="Incorrect password")

    balance = available_balance(db, inspector.id)
    if balance <= 0:
        raise HTTPException(status_code=400, detail="You currently have no pending balance")

    if Decimal(amount).quantize(CENT) != balance:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Invalid payout amount requested. You can only request a payout of {balance} "
                "which is your pending balance."
            ),
        )

    # rejected rows are resubmitted; the old rejection reason no longer applies
    res = db.execute(
        update(InspectorPayment)
        .where(InspectorPayment.inspector_id == inspector.id, InspectorPayment.status.in_(AVAILABLE))
        .values(status=PayoutStatus.requested.value, rejection_reason=None, requested_at=utcnow())
        .execution_options(synchronize_session="fetch")
    )
    db.commit()
    log.info("payout requested: %s rows, %s", res.rowcount, balance, extra={"user_id": inspector.id})
    return balance


def list_payouts(
    db: Session,
    params: PageParams,
    *,
    search: Optional[str] = None,
    status: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> tuple[list[InspectorPayment], int]:
    stmt = select(InspectorPayment).join(User, User.id == InspectorPayment.inspector_id)
    if status:
        stmt = stmt.where(InspectorPayment.status == parse_enum(PayoutStatus, status, field="status"))
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                InspectorPayment.id.ilike(like),
                InspectorPayment.case_id.ilike(like),
                User.first_name.ilike(like),
                User.last_name.ilike(like),
                User.email.ilike(like),
            )
        )
    stmt = stmt.order_by(order_clause(sort_by, sort_order, PAYOUT_SORT_COLUMNS, "paymentDate"))
    return paginate(db, stmt, params)


def approve_payout(db: Session, row: InspectorPayment) -> InspectorPayment:
    if row.status != PayoutStatus.requested.value:
        raise HTTPException(status_code=400, detail=f"Only requested payouts can be approved (current: {row.status})")
    row.status = PayoutStatus.processed.value
    row.processed_at = utcnow()
    row.rejection_reason = None
    db.commit()
    db.refresh(row)
    log.info("payout approved", extra={"payment_id": row.id, "user_id": row.inspector_id})
    return row


def reject_payout(db: Session, row: InspectorPayment, reason: Optional[str]) -> InspectorPayment:
    if not (reason or "").strip():
        raise HTTPException(status_code=400, detail="Rejection reason is required.")
    if row.status != PayoutStatus.requested.value:
        raise HTTPException(status_code=400, detail=f"Only requested payouts can be rejected (current: {row.status})")
    row.status = PayoutStatus.rejected.value
    row.rejection_reason = reason.strip()
    row.processed_at = utcnow()
    db.commit()
    db.refresh(row)
    log.info("payout rejected", extra={"payment_id": row.id, "user_id": row.inspector_id})
    return row


def monthly_payouts(db: Session, inspector_id: str, *, month: int, year: int) -> list[InspectorPayment]:
    if not 1 <= int(month) <= 12:
        raise HTTPException(status_code=400, detail="Invalid month. Use a value between 1 and 12.")
    if not 2000 <= int(year) <= 2100:
        raise HTTPException(status_code=400, detail="Invalid year.")
    start = utcnow().replace(year=int(year), month=int(month), day=1, hour=0, minute=0, second=0, microsecond=0)
    end = start.replace(year=start.year + 1, month=1) if start.month == 12 else start.replace(month=start.month + 1)
    return list(
        db.scalars(
            select(InspectorPayment)
            .where(
                InspectorPayment.inspector_id == inspector_id,
                InspectorPayment.payment_date >= start,
                InspectorPayment.payment_date < end,
            )
            .order_by(InspectorPayment.payment_date.asc())
        ).all()
    )
