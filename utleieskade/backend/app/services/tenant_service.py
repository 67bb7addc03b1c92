# backend/app/services/tenant_service.py
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..domain.clock import utcnow
from ..domain.pagination import PageParams, paginate
from ..domain.statuses import CaseStatus, UserStatus, UserType, Urgency
from ..models import Case, PrivacyPolicySettings, User
from ..schemas import TenantSettingsIn

TENANT_TYPES = (UserType.tenant.value, UserType.landlord.value)
ACTIVE = (CaseStatus.open.value, CaseStatus.pending.value, CaseStatus.in_progress.value, CaseStatus.on_hold.value)

EXPORT_COLUMNS = [
    ("firstName", "First Name"),
    ("lastName", "Last Name"),
    ("email", "Email"),
    ("phone", "Phone"),
    ("city", "City"),
    ("address", "Address"),
    ("postcode", "Postcode"),
    ("userType", "Type"),
    ("casesSubmitted", "Cases Submitted"),
    ("dateRegistered", "Date Registered"),
]


def _cases_count():
    return select(func.count(Case.id)).where(Case.tenant_id == User.id).correlate(User).scalar_subquery()


def list_tenants(db: Session, params: PageParams, search: Optional[str] = None) -> tuple[list[tuple[User, int]], int]:
    stmt = select(User).where(User.user_type.in_(TENANT_TYPES))
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(User.first_name.ilike(like), User.last_name.ilike(like), User.email.ilike(like)))
    users, total = paginate(db, stmt.order_by(User.created_at.desc()), params)
    counts = cases_submitted(db, [u.id for u in users])
    return [(u, counts.get(u.id, 0)) for u in users], total


def cases_submitted(db: Session, user_ids: list[str]) -> dict[str, int]:
    if not user_ids:
        return {}
    rows = db.execute(
        select(Case.tenant_id, func.count()).where(Case.tenant_id.in_(user_ids)).group_by(Case.tenant_id)
    ).all()
    return {tid: int(n) for tid, n in rows}


def export_rows(db: Session) -> list[dict[str, Any]]:
    rows = db.execute(
        select(User, _cases_count().label("cases"))
        .where(User.user_type.in_(TENANT_TYPES))
        .order_by(User.created_at.desc())
    ).all()
    return [
        {
            "firstName": u.first_name,
            "lastName": u.last_name,
            "email": u.email,
            "phone": u.phone,
            "city": u.city,
            "address": u.address,
            "postcode": u.postcode,
            "userType": u.user_type,
            "casesSubmitted": int(n or 0),
            "dateRegistered": u.created_at,
        }
        for u, n in rows
    ]


def deactivate(db: Session, user: User) -> User:
    user.status = UserStatus.inactive.value
    user.updated_at = utcnow()
    db.commit()
    db.refresh(user)
    return user


def _count(db: Session, *conds) -> int:
    return int(db.scalar(select(func.count()).select_from(Case).where(*conds)) or 0)


def _humanize_days(days: int, when) -> str:
    if days <= 0:
        return "Today"
    if days == 1:
        return "Tomorrow"
    if days < 7:
        return f"In {days} days"
    return when.strftime("%b %d, %Y")


def dashboard(db: Session, tenant: User) -> dict[str, Any]:
    now = utcnow()
    mine = Case.tenant_id == tenant.id
    nxt = db.scalars(
        select(Case)
        .where(mine, Case.status.in_(ACTIVE), Case.deadline.is_not(None), Case.deadline >= now)
        .order_by(Case.deadline.asc())
        .limit(1)
    ).first()
    return {
        "welcomeMessage": f"Welcome back {tenant.first_name or 'User'}",
        "activeCases": {
            "count": _count(db, mine, Case.status.in_(ACTIVE)),
            "requiresAttention": _count(db, mine, Case.status.in_(ACTIVE), Case.urgency == Urgency.high.value),
        },
        "resolvedIssues": {"count": _count(db, mine, Case.status == CaseStatus.completed.value)},
        "scheduledInspections": {
            "count": _count(
                db, mine, Case.status.in_(ACTIVE), or_(Case.deadline.is_not(None), Case.inspector_id.is_not(None))
            ),
            "nextInspection": (
                _humanize_days((nxt.deadline - now).days, nxt.deadline) if nxt else "No upcoming inspections"
            ),
            "nextInspectionCaseId": nxt.id if nxt else None,
        },
    }


def get_privacy_settings(tenant: User) -> dict[str, bool]:
    p = tenant.privacy_settings
    return {
        "essentialCookies": p.essential_cookies if p else True,
        "thirdPartySharing": p.third_party_sharing if p else True,
    }


def update_privacy_settings(db: Session, tenant: User, payload: TenantSettingsIn) -> dict[str, bool]:
    p = tenant.privacy_settings or PrivacyPolicySettings(user_id=tenant.id)
    for k, v in payload.model_dump(exclude_none=True).items():
        setattr(p, k, v)
    tenant.privacy_settings = p
    db.commit()
    db.refresh(tenant)
    return get_privacy_settings(tenant)
