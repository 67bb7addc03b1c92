# backend/app/services/otp_service.py
from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import timedelta

from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.clock import utcnow
from ..domain.ids import generate_unique_id
from ..models import Otp, User
from .auth_service import create_elevated_token
from .email_service import send_otp_email

log = logging.getLogger("utleieskade.otp")


def generate_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def _hash_code(code: str) -> str:
    # keyed so a leaked table does not reveal codes by brute force alone
    return hmac.new(settings.jwt_secret.encode(), code.strip().encode(), hashlib.sha256).hexdigest()


def _current(db: Session, user_id: str) -> Otp | None:
    return db.scalar(select(Otp).where(Otp.user_id == user_id).order_by(Otp.updated_at.desc()))


def _issue(db: Session, user: User, row: Otp | None) -> str:
    code = generate_code()
    now = utcnow()
    if row is None:
        row = Otp(id=generate_unique_id("OTP"), user_id=user.id, created_at=now)
        db.add(row)
    row.code_hash = _hash_code(code)
    row.expires_at = now + timedelta(minutes=int(settings.otp_ttl_minutes))
    row.updated_at = now
    user.is_verified = False
    db.commit()
    send_otp_email(user.email, code, user.first_name)
    return code


def request_otp(db: Session, user: User) -> bool:
    """Returns False when a still-valid code exists and nothing new was sent."""
    row = _current(db, user.id)
    if row is not None and row.expires_at > utcnow():
        user.is_verified = False
        db.commit()
        return False
    _issue(db, user, row)
    log.info("otp issued", extra={"user_id": user.id})
    return True


def resend_otp(db: Session, user: User) -> None:
    row = _current(db, user.id)
    if row is not None:
        elapsed = (utcnow() - row.updated_at).total_seconds()
        if elapsed < int(settings.otp_resend_cooldown_seconds):
            raise HTTPException(status_code=400, detail="Please wait at least 1 minute before requesting a new OTP.")
    _issue(db, user, row)
    log.info("otp resent", extra={"user_id": user.id})


def verify_otp(db: Session, user: User, code: str) -> str:
    row = _current(db, user.id)
    if row is None or row.expires_at <= utcnow():
        raise HTTPException(status_code=400, detail="OTP expired or does not exist.")
    if not hmac.compare_digest(row.code_hash, _hash_code(code or "")):
        raise HTTPException(status_code=400, detail="Invalid OTP.")

    db.execute(delete(Otp).where(Otp.user_id == user.id))
    user.is_verified = True
    db.commit()
    log.info("otp verified", extra={"user_id": user.id})
    return create_elevated_token(user_id=user.id, user_type=user.user_type)


def purge_expired(db: Session) -> int:
    res = db.execute(delete(Otp).where(Otp.expires_at <= utcnow()))
    db.commit()
    return int(res.rowcount or 0)
