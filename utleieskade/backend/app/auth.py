# backend/app/auth.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

import jwt
from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import get_db
from .domain.statuses import ADMIN_TYPES, UserType
from .models import User
from .services.auth_service import decode_access_token


@dataclass(frozen=True)
class Principal:
    user_id: str
    user_type: str  # admin | sub-admin | tenant | landlord | inspector
    email: str
    elevated: bool = False

    @property
    def is_admin(self) -> bool:
        return self.user_type in ADMIN_TYPES


def parse_bearer(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(
            status_code=401,
            detail="User not authorized, no token provided. Kindly login to continue",
        )
    parts = str(authorization).strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise HTTPException(status_code=401, detail="Invalid authorization format.")
    return parts[1].strip()


def verify_token(token: str) -> dict[str, Any]:
    try:
        claims = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired. Kindly login to continue")
    except jwt.PyJWTError as e:
        raise HTTPException(status_code=400, detail=f"Invalid token: {e}")
    if not claims.get("id"):
        raise HTTPException(status_code=400, detail="Invalid token: missing id")
    return claims


def principal_from_token(db: Session, token: str) -> Principal:
    """Shared by the REST dependency and the websocket handshake."""
    claims = verify_token(token)
    user = db.scalar(select(User).where(User.id == str(claims["id"])))
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return Principal(
        user_id=str(user.id),
        user_type=str(user.user_type),
        email=str(user.email),
        elevated=bool(claims.get("elevated")),
    )


def get_principal(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    return principal_from_token(db, parse_bearer(authorization))


def require_roles(*roles: str) -> Callable[..., Principal]:
    allowed = frozenset(roles)

    def _dep(p: Principal = Depends(get_principal)) -> Principal:
        if p.user_type not in allowed:
            raise HTTPException(status_code=403, detail="You do not have permission to perform this action")
        return p

    return _dep


require_admin = require_roles(*ADMIN_TYPES)
require_super_admin = require_roles(UserType.admin.value)
require_tenant = require_roles(UserType.tenant.value, UserType.landlord.value)
require_inspector = require_roles(UserType.inspector.value)
