# backend/app/services/ownership.py
from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.statuses import ADMIN_TYPES, UserType
from ..models import Case, InspectorPayment, Payment, Refund, Report, User


def must_get_user(db: Session, *, user_id: str, detail: str = "User not found.") -> User:
    row = db.get(User, str(user_id))
    if not row:
        raise HTTPException(status_code=404, detail=detail)
    return row


def must_get_user_by_email(db: Session, *, email: str) -> User:
    row = db.scalar(select(User).where(User.email == (email or "").strip().lower()))
    if not row:
        raise HTTPException(status_code=404, detail="User not found.")
    return row


def must_get_inspector(db: Session, *, inspector_id: str) -> User:
    row = db.scalar(select(User).where(User.id == str(inspector_id), User.user_type == UserType.inspector.value))
    if not row:
        raise HTTPException(status_code=404, detail="Inspector not found")
    return row


def must_get_tenant(db: Session, *, tenant_id: str) -> User:
    row = db.scalar(
        select(User).where(
            User.id == str(tenant_id),
            User.user_type.in_((UserType.tenant.value, UserType.landlord.value)),
        )
    )
    if not row:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return row


def must_get_admin(db: Session, *, admin_id: str) -> User:
    row = db.scalar(select(User).where(User.id == str(admin_id), User.user_type.in_(ADMIN_TYPES)))
    if not row:
        raise HTTPException(status_code=404, detail="Admin not found")
    return row


def must_get_case(db: Session, *, case_id: str) -> Case:
    row = db.get(Case, str(case_id))
    if not row:
        raise HTTPException(status_code=404, detail="Case not found.")
    return row


def must_get_report(db: Session, *, report_id: str) -> Report:
    row = db.get(Report, str(report_id))
    if not row:
        raise HTTPException(status_code=404, detail="Report not found")
    return row


def must_get_payment(db: Session, *, payment_id: str) -> Payment:
    row = db.get(Payment, str(payment_id))
    if not row:
        raise HTTPException(status_code=404, detail="Payment not found")
    return row


def must_get_payout(db: Session, *, payment_id: str) -> InspectorPayment:
    row = db.get(InspectorPayment, str(payment_id))
    if not row:
        raise HTTPException(status_code=404, detail="Payment not found")
    return row


def must_get_refund(db: Session, *, refund_id: str) -> Refund:
    row = db.get(Refund, str(refund_id))
    if not row:
        raise HTTPException(status_code=404, detail="Refund not found")
    return row
