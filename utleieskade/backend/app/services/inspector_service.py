# backend/app/services/inspector_service.py
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from ..domain.clock import utcnow
from ..domain.pagination import PageParams, paginate
from ..domain.statuses import CaseStatus, TimelineEvent, UserStatus, UserType
from ..models import BankDetails, Case, NotificationSettings, PrivacyPolicySettings, User, UserExpertise
from ..schemas import InspectorAdminUpdateIn, InspectorCreateIn, InspectorSettingsIn
from ..serializers import expertise_out, money
from .auth_service import generate_password, hash_password
from .case_service import add_timeline
from .email_service import send_inspector_welcome_email
from .expertise_service import known_codes
from .payout_service import available_balance, total_earned
from .settings_service import scrub_personal_data
from .user_service import create_user, ensure_email_available

log = logging.getLogger("utleieskade.inspectors")

EXPORT_COLUMNS = [
    ("firstName", "First Name"),
    ("lastName", "Last Name"),
    ("email", "Email"),
    ("phone", "Phone"),
    ("city", "City"),
    ("address", "Address"),
    ("postcode", "Postcode"),
    ("country", "Country"),
    ("status", "Status"),
    ("dateRegistered", "Date Registered"),
]


def _sync_expertises(db: Session, user: User, codes: list[int]) -> None:
    wanted = set(known_codes(db, codes))
    current = {ue.expertise_code for ue in user.expertises}
    remove = current - wanted
    if remove:
        db.execute(
            delete(UserExpertise).where(UserExpertise.user_id == user.id, UserExpertise.expertise_code.in_(remove))
        )
    for code in sorted(wanted - current):
        db.add(UserExpertise(user_id=user.id, expertise_code=code))


def create_inspector(db: Session, payload: InspectorCreateIn) -> tuple[User, bool]:
    """Returns the inspector and whether the welcome mail went out."""
    codes = known_codes(db, payload.expertise_codes)
    password = generate_password()
    user = create_user(
        db,
        prefix="INSP",
        user_type=UserType.inspector.value,
        first_name=payload.user_first_name,
        last_name=payload.user_last_name,
        email=payload.user_email,
        password_hash=hash_password(password),
        is_verified=True,
        phone=payload.user_phone,
        city=payload.user_city,
        postcode=payload.user_postcode,
        address=payload.user_address,
        country=payload.user_country,
        gender=payload.user_gender,
    )
    for code in codes:
        db.add(UserExpertise(user_id=user.id, expertise_code=code))
    db.add(NotificationSettings(user_id=user.id))
    db.commit()
    db.refresh(user)
    emailed = send_inspector_welcome_email(user.email, user.first_name, password)
    return user, emailed


def update_inspector(db: Session, user: User, payload: InspectorAdminUpdateIn) -> User:
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "user_email" in data:
        email = data["user_email"].strip().lower()
        ensure_email_available(db, email, exclude_user_id=user.id)
        user.email = email
    if "user_status" in data:
        if data["user_status"] not in (UserStatus.active.value, UserStatus.inactive.value):
            raise HTTPException(status_code=400, detail="Invalid status. Allowed values: active, inactive")
        user.status = data["user_status"]
    for src, dst in (
        ("user_first_name", "first_name"),
        ("user_last_name", "last_name"),
        ("user_phone", "phone"),
        ("user_city", "city"),
        ("user_postcode", "postcode"),
        ("user_address", "address"),
        ("user_country", "country"),
    ):
        if src in data:
            setattr(user, dst, data[src].strip())
    if payload.expertise_codes is not None:
        _sync_expertises(db, user, payload.expertise_codes)
    user.updated_at = utcnow()
    db.commit()
    db.refresh(user)
    return user


def list_inspectors(db: Session, params: PageParams, search: Optional[str] = None) -> tuple[list[User], int]:
    stmt = select(User).where(User.user_type == UserType.inspector.value)
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(User.first_name.ilike(like), User.last_name.ilike(like), User.email.ilike(like)))
    return paginate(db, stmt.order_by(User.created_at.desc()), params)


def export_rows(db: Session) -> list[dict[str, Any]]:
    rows = db.scalars(
        select(User).where(User.user_type == UserType.inspector.value).order_by(User.created_at.desc())
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
            "country": u.country,
            "status": u.status,
            "dateRegistered": u.created_at,
        }
        for u in rows
    ]


def deactivate(db: Session, user: User) -> User:
    user.status = UserStatus.inactive.value
    user.updated_at = utcnow()
    db.commit()
    db.refresh(user)
    return user


def dashboard(db: Session, inspector: User) -> dict[str, Any]:
    active = db.scalar(
        select(func.count()).select_from(Case).where(
            Case.inspector_id == inspector.id,
            Case.status.in_((CaseStatus.open.value, CaseStatus.in_progress.value, CaseStatus.on_hold.value)),
        )
    )
    completed = db.scalar(
        select(func.count()).select_from(Case).where(
            Case.inspector_id == inspector.id, Case.status == CaseStatus.completed.value
        )
    )
    return {
        "welcomeMessage": f"Welcome back {inspector.first_name or 'User'}",
        "totalEarnings": money(total_earned(db, inspector.id)),
        "pendingBalance": money(available_balance(db, inspector.id)),
        "activeCases": int(active or 0),
        "completedCases": int(completed or 0),
    }


def get_settings(inspector: User) -> dict[str, Any]:
    n = inspector.notification_settings
    b = inspector.bank_details
    return {
        "account": {
            "userFirstName": inspector.first_name,
            "userLastName": inspector.last_name,
            "userEmail": inspector.email,
            "userPhone": inspector.phone,
            "userCity": inspector.city,
            "userAddress": inspector.address,
            "userPostcode": inspector.postcode,
            "userCountry": inspector.country,
            "userProfilePic": inspector.profile_pic,
            "language": "English",
            "expertises": [expertise_out(ue.expertise) for ue in inspector.expertises],
        },
        "notifications": {
            "deadlineNotifications": n.deadline_notifications if n else True,
            "newCaseAlerts": n.new_case_alerts if n else True,
            "tenantsUpdates": n.tenants_updates if n else True,
            "messageNotifications": n.message_notifications if n else True,
        },
        "payment": {
            "bankName": b.bank_name if b else None,
            "accountNumber": b.account_number if b else None,
            "sortCode": b.sort_code if b else None,
        },
        "privacySecurity": {
            "mfaEnabled": False,
            "pauseMode": inspector.status != UserStatus.active.value,
        },
    }


def update_settings(db: Session, inspector: User, payload: InspectorSettingsIn) -> User:
    if payload.notification_settings is not None:
        n = inspector.notification_settings or NotificationSettings(user_id=inspector.id)
        for k, v in payload.notification_settings.model_dump(exclude_none=True).items():
            setattr(n, k, v)
        inspector.notification_settings = n

    if payload.bank_details is not None:
        b = inspector.bank_details or BankDetails(user_id=inspector.id)
        for k, v in payload.bank_details.model_dump(exclude_none=True).items():
            setattr(b, k, v.strip())
        inspector.bank_details = b

    if payload.pause_mode is not None:
        inspector.status = UserStatus.inactive.value if payload.pause_mode else UserStatus.active.value

    if payload.expertises is not None:
        _sync_expertises(db, inspector, payload.expertises)

    for src, dst in (("user_phone", "phone"), ("user_city", "city"), ("user_address", "address"), ("user_postcode", "postcode")):
        v = getattr(payload, src)
        if v is not None:
            setattr(inspector, dst, v.strip() or None)

    inspector.updated_at = utcnow()
    db.commit()
    db.refresh(inspector)
    return inspector


def delete_own_account(db: Session, inspector: User) -> None:
    """Open work goes back to the pool; history stays, personal data does not."""
    open_cases = db.scalars(
        select(Case).where(
            Case.inspector_id == inspector.id,
            Case.status.in_((CaseStatus.in_progress.value, CaseStatus.on_hold.value, CaseStatus.open.value)),
        )
    ).all()
    for c in open_cases:
        c.inspector_id = None
        c.status = CaseStatus.open.value
        add_timeline(db, c, TimelineEvent.case_released, "Inspector account closed; case returned to the pool")
    db.execute(delete(UserExpertise).where(UserExpertise.user_id == inspector.id))
    db.execute(delete(PrivacyPolicySettings).where(PrivacyPolicySettings.user_id == inspector.id))
    scrub_personal_data(db, inspector)
    log.info("inspector account deleted; %s cases released", len(open_cases), extra={"user_id": inspector.id})
