# backend/app/cli/seed.py
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.models import Expertise
from app.schemas import AdminSignupIn
from app.services.admin_service import signup_admin
from app.services.settings_service import get_platform_settings

DEFAULT_EXPERTISES = [
    ("Plumbing", "Water damage, leaks and drainage"),
    ("Electrical", "Wiring, sockets and fixtures"),
    ("Carpentry", "Doors, floors and built-in furniture"),
    ("Painting", "Walls, ceilings and surface finish"),
    ("Appliances", "White goods and kitchen equipment"),
]


@dataclass(frozen=True)
class SeedResult:
    settings_id: str
    expertises_added: int


def _seed_expertises(db: Session) -> int:
    existing = set(db.scalars(select(Expertise.area)).all())
    added = 0
    for area, description in DEFAULT_EXPERTISES:
        if area in existing:
            continue
        db.add(Expertise(area=area, description=description))
        added += 1
    db.commit()
    return added


def create_admin(*, first_name: str, last_name: str, email: str, password: str) -> str:
    db = SessionLocal()
    try:
        payload = AdminSignupIn(
            user_first_name=first_name,
            user_last_name=last_name,
            user_email=email,
            user_password=password,
        )
        return signup_admin(db, payload).id
    finally:
        db.close()


def init_platform(*, with_expertises: bool = True) -> SeedResult:
    db = SessionLocal()
    try:
        s = get_platform_settings(db)
        added = _seed_expertises(db) if with_expertises else 0
        return SeedResult(settings_id=s.id, expertises_added=added)
    finally:
        db.close()
