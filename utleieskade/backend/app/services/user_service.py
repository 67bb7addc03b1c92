# backend/app/services/user_service.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.clock import utcnow
from ..domain.ids import generate_unique_id
from ..domain.statuses import ADMIN_TYPES, UserStatus, UserType
from ..models import User
from ..schemas import ProfileUpdateIn
from .auth_service import PASSWORD_RESET_MARKER, create_access_token, hash_password, verify_password

log = logging.getLogger("utleieskade.users")

_PROFILE_FIELDS = {
    "user_first_name": "first_name",
    "user_last_name": "last_name",
    "user_phone": "phone",
    "user_city": "city",
    "user_postcode": "postcode",
    "user_address": "address",
    "user_country": "country",
    "user_gender": "gender",
    "user_profile_pic": "profile_pic",
}


def _clean(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalar(select(User).where(User.email == (email or "").strip().lower()))


def ensure_email_available(db: Session, email: str, *, exclude_user_id: Optional[str] = None) -> None:
    existing = get_user_by_email(db, email)
    if existing is not None and existing.id != exclude_user_id:
        raise HTTPException(status_code=400, detail="The email already exists!")


def ensure_password_length(password: Optional[str]) -> str:
    pw = (password or "").strip()
    if len(pw) < int(settings.password_min_length):
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {int(settings.password_min_length)} characters long",
        )
    return pw


def create_user(
    db: Session,
    *,
    prefix: str,
    user_type: str,
    first_name: str,
    last_name: str,
    email: str,
    password_hash: str,
    is_verified: bool = False,
    **profile: Optional[str],
) -> User:
    """Inserts a user; the unique email index is the final arbiter for races."""
    ensure_email_available(db, email)
    user = User(
        id=generate_unique_id(prefix),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=email.strip().lower(),
        password_hash=password_hash,
        user_type=user_type,
        status=UserStatus.active.value,
        is_verified=is_verified,
        **{k: _clean(v) for k, v in profile.items()},
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="The email already exists!")
    db.refresh(user)
    log.info("user created", extra={"user_id": user.id, "user_type": user.user_type})
    return user


def issue_token(user: User) -> dict:
    return {
        "token": create_access_token(user_id=user.id, user_type=user.user_type),
        "userType": user.user_type,
        "isVerified": bool(user.is_verified),
    }


def login(db: Session, *, email: str, password: str, as_type: Optional[str]) -> User:
    if not (email or "").strip() or not password:
        raise HTTPException(status_code=400, detail="Email and password are required!")

    user = get_user_by_email(db, email)
    if user is None:
        raise HTTPException(status_code=401, detail="User with the provided email does not exist")

    if as_type:
        allowed = ADMIN_TYPES if as_type == UserType.admin.value else (as_type,)
        if user.user_type not in allowed:
            raise HTTPException(
                status_code=403,
                detail=f"Unauthorized access, {user.user_type} cannot login as {as_type}",
            )

    if user.status == UserStatus.inactive.value:
        raise HTTPException(status_code=403, detail="Account is inactive. Contact support.")

    if user.password_hash == PASSWORD_RESET_MARKER:
        raise HTTPException(status_code=400, detail="Password reset required")

    if not verify_password(password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid Password")

    log.info("user logged in", extra={"user_id": user.id, "user_type": user.user_type})
    return user


def update_profile(db: Session, user: User, payload: ProfileUpdateIn) -> User:
    data = payload.model_dump(exclude_unset=True)

    if data.get("new_password"):
        if not data.get("current_password") or not verify_password(data["current_password"], user.password_hash):
            raise HTTPException(status_code=403, detail="Current password is incorrect")
        user.password_hash = hash_password(ensure_password_length(data["new_password"]))

    for src, dst in _PROFILE_FIELDS.items():
        if src in data and data[src] is not None:
            setattr(user, dst, _clean(data[src]) if dst not in ("first_name", "last_name") else data[src].strip())

    user.updated_at = utcnow()
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: User, *, current_password: str, new_password: str) -> None:
    if not verify_password(current_password or "", user.password_hash):
        raise HTTPException(status_code=403, detail="Current password is incorrect")
    user.password_hash = hash_password(ensure_password_length(new_password))
    db.commit()


def reset_password(db: Session, user: User, *, new_password: str, elevated: bool) -> None:
    """Only reachable with the short-lived token issued by OTP verification."""
    if not elevated:
        raise HTTPException(status_code=403, detail="OTP verification is required to reset the password")
    user.password_hash = hash_password(ensure_password_length(new_password))
    user.updated_at = utcnow()
    db.commit()
    log.info("password reset", extra={"user_id": user.id})
