# backend/app/services/auth_service.py
from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import string
from datetime import timedelta
from typing import Any

import jwt

from ..config import settings
from ..domain.clock import utcnow

# Stored instead of a hash when an account must set a password before logging in.
PASSWORD_RESET_MARKER = "default"


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    iters = int(settings.pbkdf2_iterations)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
    return f"pbkdf2_sha256${iters}${base64.b64encode(salt).decode()}${base64.b64encode(dk).decode()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algo, iters_s, salt_b64, dk_b64 = stored.split("$", 3)
        if algo != "pbkdf2_sha256":
            return False
        iters = int(iters_s)
        salt = base64.b64decode(salt_b64.encode())
        dk = base64.b64decode(dk_b64.encode())
        test = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
        return hmac.compare_digest(test, dk)
    except (ValueError, TypeError):
        return False


def generate_password(length: int = 12) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def create_access_token(*, user_id: str, user_type: str | None, minutes: int | None = None, elevated: bool = False) -> str:
    now = utcnow()
    ttl = int(minutes if minutes is not None else settings.jwt_exp_minutes)
    payload: dict[str, Any] = {
        "id": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=ttl),
    }
    if user_type:
        payload["userType"] = str(user_type)
    if elevated:
        payload["elevated"] = True
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def create_elevated_token(*, user_id: str, user_type: str | None) -> str:
    """Short-lived token handed out after a successful OTP check."""
    return create_access_token(
        user_id=user_id,
        user_type=user_type,
        minutes=int(settings.jwt_elevated_exp_minutes),
        elevated=True,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
