# backend/app/services/admin_service.py
from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..domain.clock import utcnow
from ..domain.pagination import PageParams, order_clause, paginate
from ..domain.statuses import (
    CaseStatus,
    PaymentStatus,
    PayoutStatus,
    RefundStatus,
    UserStatus,
    UserType,
    parse_enum,
)
from ..models import Case, InspectorPayment, Payment, Refund, User
from ..schemas import AdminSignupIn, AdminUpdateIn, SubAdminIn
from ..serializers import iso, money
from .auth_service import hash_password
from .email_service import send_sub_admin_email
from .user_service import create_user, ensure_email_available

log = logging.getLogger("utleieskade.admins")

ADMIN_SORT_COLUMNS = {
    "createdAt": User.created_at,
    "dateRegistered": User.created_at,
    "firstName": User.first_name,
    "lastName": User.last_name,
    "email": User.email,
    "status": User.status,
}

# Export labels; order is the column order in csv and pdf output.
DASHBOARD_KEY_MAP = OrderedDict(
    [
        ("totalUsers", "Total Users"),
        ("totalInspectors", "Total Inspectors"),
        ("totalTenants", "Total Tenants"),
        ("totalLandlords", "Total Landlords"),
        ("totalRevenue", "Total Revenue"),
        ("totalPayouts", "Total Payouts"),
        ("totalRefunds", "Total Refunds"),
        ("totalCases", "Total Cases"),
        ("totalCompleted", "Total Completed Cases"),
        ("totalCancelled", "Total Cancelled Cases"),
    ]
)


def admin_out(u: User) -> dict[str, Any]:
    return {
        "adminId": u.id,
        "firstName": u.first_name,
        "lastName": u.last_name,
        "email": u.email,
        "status": u.status,
        "userType": u.user_type,
        "dateRegistered": iso(u.created_at),
    }


def signup_admin(db: Session, payload: AdminSignupIn) -> User:
    """Bootstrap only: the first admin account. Further admins are sub-admins."""
    if db.scalar(select(User.id).where(User.user_type == UserType.admin.value).limit(1)):
        raise HTTPException(status_code=403, detail="An admin account already exists. Ask an admin to add you.")
    return create_user(
        db,
        prefix="ADMIN",
        user_type=UserType.admin.value,
        first_name=payload.user_first_name,
        last_name=payload.user_last_name,
        email=payload.user_email,
        password_hash=hash_password(payload.user_password.strip()),
        is_verified=True,
        phone=payload.user_phone,
        city=payload.user_city,
        postcode=payload.user_postcode,
        address=payload.user_address,
        country=payload.user_country,
    )


def add_sub_admin(db: Session, payload: SubAdminIn) -> User:
    user = create_user(
        db,
        prefix="ADMIN",
        user_type=UserType.sub_admin.value,
        first_name=payload.user_first_name,
        last_name=payload.user_last_name,
        email=payload.user_email,
        password_hash=hash_password(payload.user_password.strip()),
        is_verified=True,
    )
    send_sub_admin_email(user.email, user.first_name, payload.user_password.strip())
    return user


def list_sub_admins(
    db: Session,
    params: PageParams,
    *,
    search: Optional[str] = None,
    status: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> tuple[list[User], int]:
    stmt = select(User).where(User.user_type == UserType.sub_admin.value)
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(User.first_name.ilike(like), User.last_name.ilike(like), User.email.ilike(like)))
    if status:
        stmt = stmt.where(User.status == parse_enum(UserStatus, status, field="status"))
    stmt = stmt.order_by(order_clause(sort_by, sort_order, ADMIN_SORT_COLUMNS, "createdAt"))
    return paginate(db, stmt, params)


def must_get_sub_admin(db: Session, admin_id: str) -> User:
    row = db.scalar(select(User).where(User.id == admin_id, User.user_type == UserType.sub_admin.value))
    if row is None:
        raise HTTPException(status_code=404, detail="Admin not found")
    return row


def update_sub_admin(db: Session, admin_id: str, payload: AdminUpdateIn) -> User:
    row = must_get_sub_admin(db, admin_id)
    if payload.email:
        email = payload.email.strip().lower()
        ensure_email_available(db, email, exclude_user_id=row.id)
        row.email = email
    if payload.first_name:
        row.first_name = payload.first_name.strip()
    if payload.last_name:
        row.last_name = payload.last_name.strip()
    row.updated_at = utcnow()
    db.commit()
    db.refresh(row)
    return row


def delete_sub_admin(db: Session, admin_id: str) -> None:
    row = must_get_sub_admin(db, admin_id)
    db.delete(row)
    db.commit()
    log.info("sub-admin deleted", extra={"user_id": admin_id})


# -----------------------------------------------------------------------------
# Dashboard
# -----------------------------------------------------------------------------
def _sum(db: Session, col, *conds) -> Decimal:
    return Decimal(db.scalar(select(func.coalesce(func.sum(col), 0)).where(*conds)) or 0)


def _count(db: Session, model, *conds) -> int:
    return int(db.scalar(select(func.count()).select_from(model).where(*conds)) or 0)


def _month(dt: datetime) -> str:
    return dt.strftime("%Y-%m")


def _overview(db: Session) -> dict[str, list[dict[str, Any]]]:
    # Bucketed in Python so the same code runs on Postgres, MySQL and sqlite.
    users: dict[str, dict[str, Any]] = {}
    for created, utype in db.execute(select(User.created_at, User.user_type)).all():
        b = users.setdefault(_month(created), {"month": _month(created), "totalUsers": 0, "totalInspectors": 0, "totalTenants": 0})
        b["totalUsers"] += 1
        if utype == UserType.inspector.value:
            b["totalInspectors"] += 1
        elif utype in (UserType.tenant.value, UserType.landlord.value):
            b["totalTenants"] += 1

    revenue: dict[str, dict[str, Any]] = {}

    def rb(dt: datetime) -> dict[str, Any]:
        return revenue.setdefault(
            _month(dt), {"month": _month(dt), "totalRevenue": Decimal(0), "totalPayouts": Decimal(0), "totalRefunds": Decimal(0)}
        )

    for when, amount in db.execute(
        select(Payment.paid_at, Payment.amount).where(Payment.status == PaymentStatus.processed.value)
    ).all():
        rb(when)["totalRevenue"] += Decimal(amount)
    for when, amount in db.execute(
        select(InspectorPayment.processed_at, InspectorPayment.amount).where(
            InspectorPayment.status == PayoutStatus.processed.value, InspectorPayment.processed_at.is_not(None)
        )
    ).all():
        rb(when)["totalPayouts"] += Decimal(amount)
    for when, amount in db.execute(
        select(Refund.processed_at, Refund.amount).where(
            Refund.status == RefundStatus.processed.value, Refund.processed_at.is_not(None)
        )
    ).all():
        rb(when)["totalRefunds"] += Decimal(amount)

    cases: dict[str, dict[str, Any]] = {}
    for created, status in db.execute(select(Case.created_at, Case.status)).all():
        b = cases.setdefault(_month(created), {"month": _month(created), "totalCases": 0, "totalCompleted": 0, "totalCancelled": 0})
        b["totalCases"] += 1
        if status == CaseStatus.completed.value:
            b["totalCompleted"] += 1
        elif status == CaseStatus.cancelled.value:
            b["totalCancelled"] += 1

    revenue_out = [
        {k: (money(v) if isinstance(v, Decimal) else v) for k, v in revenue[m].items()} for m in sorted(revenue)
    ]
    return {
        "users": [users[m] for m in sorted(users)],
        "revenue": revenue_out,
        "cases": [cases[m] for m in sorted(cases)],
    }


def dashboard_totals(db: Session) -> dict[str, Any]:
    return {
        "totalUsers": _count(db, User),
        "totalInspectors": _count(db, User, User.user_type == UserType.inspector.value),
        "totalTenants": _count(db, User, User.user_type == UserType.tenant.value),
        "totalLandlords": _count(db, User, User.user_type == UserType.landlord.value),
        "totalRevenue": money(_sum(db, Payment.amount, Payment.status == PaymentStatus.processed.value)),
        "totalPayouts": money(_sum(db, InspectorPayment.amount, InspectorPayment.status == PayoutStatus.processed.value)),
        "totalRefunds": money(_sum(db, Refund.amount, Refund.status == RefundStatus.processed.value)),
        "totalCases": _count(db, Case),
        "totalCompleted": _count(db, Case, Case.status == CaseStatus.completed.value),
        "totalCancelled": _count(db, Case, Case.status == CaseStatus.cancelled.value),
    }


def dashboard(db: Session) -> dict[str, Any]:
    out = dashboard_totals(db)
    out["overviewGraphs"] = _overview(db)
    return out
