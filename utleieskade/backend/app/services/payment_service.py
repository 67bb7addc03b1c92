# backend/app/services/payment_service.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..clients.stripe_client import PaymentIntentInfo, get_stripe_client
from ..config import settings
from ..domain.clock import utcnow
from ..domain.ids import generate_unique_id
from ..domain.statuses import PaymentStatus
from ..models import Case, Payment, Refund, User
from ..schemas import PaymentConfirmIn
from .case_service import build_case
from .settings_service import case_price, get_platform_settings

log = logging.getLogger("utleieskade.payments")

ALREADY_PROCESSED = "Payment already processed"


def intent_amount(db: Session, *, amount: Optional[Decimal], urgency: str) -> Decimal:
    if amount is None:
        amount = case_price(get_platform_settings(db), urgency)
    amount = Decimal(amount).quantize(Decimal("0.01"))
    if amount <= 0:
        raise HTTPException(status_code=400, detail="Amount must be greater than zero")
    return amount


def create_intent(db: Session, tenant: User, *, amount: Optional[Decimal], urgency: str) -> PaymentIntentInfo:
    value = intent_amount(db, amount=amount, urgency=urgency)
    intent = get_stripe_client().create_intent(amount=value, metadata={"tenantId": tenant.id, "caseUrgency": urgency})
    log.info("payment intent created: %s %s", intent.id, value, extra={"user_id": tenant.id})
    return intent


def confirm_payment(db: Session, tenant: User, payload: PaymentConfirmIn) -> tuple[Case, Payment]:
    """
    Verifies the intent with Stripe, then creates property, case and payment in
    one transaction. The unique intent id makes a second confirm fail even when
    two requests race past the pre-check.
    """
    intent_id = (payload.payment_intent_id or "").strip()
    if not intent_id:
        raise HTTPException(status_code=400, detail="Payment intent ID is required")

    if db.scalar(select(Payment.id).where(Payment.stripe_payment_intent_id == intent_id)):
        raise HTTPException(status_code=400, detail=ALREADY_PROCESSED)

    intent = get_stripe_client().retrieve_intent(intent_id)
    if intent.status != "succeeded":
        raise HTTPException(status_code=400, detail=f"Payment not successful (status: {intent.status})")
    owner = (intent.raw.get("metadata") or {}).get("tenantId")
    if owner and owner != tenant.id:
        raise HTTPException(status_code=403, detail="This payment belongs to another user")

    try:
        case = build_case(db, tenant_id=tenant.id, payload=payload)
        payment = Payment(
            id=generate_unique_id("PAY"),
            case=case,
            tenant_id=tenant.id,
            amount=intent.amount,
            currency=intent.currency or settings.stripe_currency,
            status=PaymentStatus.processed.value,
            description=f"Stripe payment {intent_id}",
            stripe_payment_intent_id=intent_id,
            paid_at=utcnow(),
        )
        db.add(payment)
        db.commit()
    except IntegrityError:
        db.rollback()
        log.warning("duplicate confirm for intent %s", intent_id, extra={"user_id": tenant.id})
        raise HTTPException(status_code=400, detail=ALREADY_PROCESSED)

    db.refresh(case)
    db.refresh(payment)
    log.info("payment confirmed", extra={"case_id": case.id, "payment_id": payment.id, "user_id": tenant.id})
    return case, payment


def tenant_payment_for(db: Session, tenant_id: str, payment_id: str) -> Payment:
    row = db.scalar(select(Payment).where(Payment.id == payment_id, Payment.tenant_id == tenant_id))
    if row is None:
        raise HTTPException(status_code=404, detail="Payment not found")
    return row


def tenant_transactions(db: Session, tenant_id: str) -> dict[str, list]:
    payments = list(
        db.scalars(select(Payment).where(Payment.tenant_id == tenant_id).order_by(Payment.paid_at.desc())).all()
    )
    refunds = list(
        db.scalars(select(Refund).where(Refund.tenant_id == tenant_id).order_by(Refund.request_date.desc())).all()
    )
    return {"payments": payments, "refunds": refunds}
