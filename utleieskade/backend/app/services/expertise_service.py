# backend/app/services/expertise_service.py
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..domain.pagination import PageParams, paginate
from ..models import Expertise


def list_expertises(db: Session, params: PageParams, search: Optional[str] = None) -> tuple[list[Expertise], int]:
    stmt = select(Expertise)
    if search:
        stmt = stmt.where(Expertise.area.ilike(f"%{search.strip()}%"))
    return paginate(db, stmt.order_by(Expertise.area.asc()), params)


def _by_area(db: Session, area: str) -> Optional[Expertise]:
    return db.scalar(select(Expertise).where(func.lower(Expertise.area) == area.strip().lower()))


def must_get(db: Session, code: int) -> Expertise:
    row = db.get(Expertise, int(code))
    if row is None:
        raise HTTPException(status_code=404, detail="Expertise not found.")
    return row


def create_expertise(db: Session, area: str, description: Optional[str]) -> Expertise:
    if _by_area(db, area) is not None:
        raise HTTPException(status_code=400, detail="Expertise already exists.")
    row = Expertise(area=area.strip(), description=description)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_expertise(db: Session, code: int, area: Optional[str], description: Optional[str]) -> Expertise:
    row = must_get(db, code)
    if area is not None and area.strip():
        clash = _by_area(db, area)
        if clash is not None and clash.code != row.code:
            raise HTTPException(status_code=400, detail="Expertise already exists.")
        row.area = area.strip()
    if description is not None:
        row.description = description
    db.commit()
    db.refresh(row)
    return row


def delete_expertise(db: Session, code: int) -> None:
    row = must_get(db, code)
    db.delete(row)
    db.commit()


def known_codes(db: Session, codes: list[int]) -> list[int]:
    if not codes:
        return []
    found = set(db.scalars(select(Expertise.code).where(Expertise.code.in_(codes))).all())
    missing = [c for c in codes if c not in found]
    if missing:
        raise HTTPException(status_code=400, detail=f"Unknown expertise codes: {', '.join(map(str, missing))}")
    return list(dict.fromkeys(codes))
