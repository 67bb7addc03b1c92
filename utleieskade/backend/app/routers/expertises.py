# backend/app/routers/expertises.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_admin
from ..db import get_db
from ..domain.pagination import page_meta, page_params
from ..responses import envelope
from ..schemas import ExpertiseIn, ExpertiseUpdateIn
from ..serializers import expertise_out
from ..services import expertise_service

router = APIRouter(prefix="/expertises", tags=["expertises"])


@router.get("/getAllExpertises")
def all_expertises(
    page: int = Query(default=1),
    limit: int = Query(default=50),
    search: Optional[str] = Query(default=None),
    p: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    params = page_params(page, limit)
    rows, total = expertise_service.list_expertises(db, params, search)
    return envelope(
        "Expertises fetched successfully",
        {"totalExpertises": total, **page_meta(total, params), "expertises": [expertise_out(e) for e in rows]},
    )


@router.post("/createExpertise", status_code=201)
def create(payload: ExpertiseIn, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    row = expertise_service.create_expertise(db, payload.expertise_area, payload.expertise_description)
    return envelope("Expertise created successfully", expertise_out(row))


@router.put("/update/{expertise_code}")
def update(
    expertise_code: int,
    payload: ExpertiseUpdateIn,
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    row = expertise_service.update_expertise(db, expertise_code, payload.expertise_area, payload.expertise_description)
    return envelope("Expertise updated successfully", expertise_out(row))


@router.delete("/delete/{expertise_code}")
def delete(expertise_code: int, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    expertise_service.delete_expertise(db, expertise_code)
    return envelope("Expertise deleted successfully")
