# backend/app/services/refund_service.py
from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..domain.clock import utcnow
from ..domain.ids import generate_unique_id
from ..domain.pagination import PageParams, order_clause, paginate
from ..domain.statuses import PaymentStatus, RefundStatus, TimelineEvent, parse_enum
from ..models import Case, Payment, Refund, User
from .case_service import add_timeline
from .settings_service import get_platform_settings

log = logging.getLogger("utleieskade.refunds")

REFUND_SORT_COLUMNS = {
    "requestDate": Refund.request_date,
    "amount": Refund.amount,
    "refundStatus": Refund.status,
    "status": Refund.status,
    "processedAt": Refund.processed_at,
}


def request_refund(db: Session, tenant: User, *, case_id: str, amount: Optional[Decimal], reason: Optional[str]) -> Refund:
    case = db.scalar(select(Case).where(Case.id == case_id, Case.tenant_id == tenant.id))
    if case is None:
        raise HTTPException(status_code=404, detail="Case not found.")

    payment = db.scalar(
        select(Payment)
        .where(Payment.case_id == case.id, Payment.status == PaymentStatus.processed.value)
        .order_by(Payment.paid_at.desc())
    )
    if payment is None:
        raise HTTPException(status_code=400, detail="No processed payment found for this case")

    s = get_platform_settings(db)
    if utcnow() - payment.paid_at > timedelta(days=int(s.refund_policy_days)):
        raise HTTPException(
            status_code=400,
            detail=f"Refunds can only be requested within {int(s.refund_policy_days)} days of payment",
        )

    already = Decimal(
        db.scalar(
            select(func.coalesce(func.sum(Refund.amount), 0)).where(
                Refund.payment_id == payment.id,
                Refund.status.in_((RefundStatus.pending.value, RefundStatus.processed.value)),
            )
        )
        or 0
    )
    remaining = Decimal(payment.amount) - already
    value = Decimal(amount if amount is not None else remaining).quantize(Decimal("0.01"))
    if value <= 0 or value > remaining:
        raise HTTPException(status_code=400, detail=f"Invalid refund amount. Maximum refundable is {remaining}")

    row = Refund(
        id=generate_unique_id("RFD"),
        case_id=case.id,
        payment_id=payment.id,
        tenant_id=tenant.id,
        amount=value,
        status=RefundStatus.pending.value,
        reason=(reason or "").strip() or None,
        request_date=utcnow(),
    )
    db.add(row)
    add_timeline(db, case, TimelineEvent.other, f"Refund of {value} requested.")
    db.commit()
    db.refresh(row)
    log.info("refund requested", extra={"case_id": case.id, "payment_id": payment.id, "user_id": tenant.id})
    return row


def list_refunds(
    db: Session,
    params: PageParams,
    *,
    search: Optional[str] = None,
    status: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> tuple[list[Refund], int]:
    stmt = select(Refund).join(Case, Case.id == Refund.case_id).join(User, User.id == Refund.tenant_id)
    if status:
        stmt = stmt.where(Refund.status == parse_enum(RefundStatus, status, field="status"))
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                Case.id.ilike(like),
                Case.description.ilike(like),
                User.first_name.ilike(like),
                User.last_name.ilike(like),
                User.email.ilike(like),
            )
        )
    stmt = stmt.order_by(order_clause(sort_by, sort_order, REFUND_SORT_COLUMNS, "requestDate"))
    return paginate(db, stmt, params)


def _decide(db: Session, row: Refund, target: RefundStatus, timeline_text: str) -> Refund:
    if row.status != RefundStatus.pending.value:
        raise HTTPException(status_code=400, detail=f"Refund has already been {row.status}")
    row.status = target.value
    row.processed_at = utcnow()
    add_timeline(db, row.case, TimelineEvent.other, timeline_text)
    db.commit()
    db.refresh(row)
    log.info("refund %s", target.value, extra={"case_id": row.case_id})
    return row


def approve_refund(db: Session, row: Refund) -> Refund:
    return _decide(db, row, RefundStatus.processed, f"Refund of {Decimal(row.amount):.2f} processed.")


def reject_refund(db: Session, row: Refund) -> Refund:
    return _decide(db, row, RefundStatus.rejected, "Refund request rejected.")
