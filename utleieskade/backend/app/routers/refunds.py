# backend/app/routers/refunds.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin, require_tenant
from ..db import get_db
from ..domain.action_log import log_admin_action
from ..domain.pagination import page_meta, page_params
from ..responses import envelope
from ..schemas import RefundRequestIn
from ..serializers import refund_out
from ..services import refund_service
from ..services.ownership import must_get_refund, must_get_user

router = APIRouter(prefix="/refunds", tags=["refunds"])


@router.post("/request", status_code=201)
def request_refund(payload: RefundRequestIn, p: Principal = Depends(require_tenant), db: Session = Depends(get_db)):
    tenant = must_get_user(db, user_id=p.user_id)
    row = refund_service.request_refund(db, tenant, case_id=payload.case_id, amount=payload.amount, reason=payload.reason)
    return envelope("Refund requested successfully", refund_out(row))


@router.get("/getRefunds")
def get_refunds(
    page: int = Query(default=1),
    limit: int = Query(default=10),
    search: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    params = page_params(page, limit)
    rows, total = refund_service.list_refunds(db, params, search=search, status=status, sort_by=sort_by, sort_order=sort_order)
    return envelope(
        "Refunds fetched successfully",
        {"totalRefunds": total, **page_meta(total, params), "refunds": [refund_out(r) for r in rows]},
    )


@router.get("/getRefund/{refund_id}")
def get_refund(refund_id: str, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return envelope("Refund fetched successfully", refund_out(must_get_refund(db, refund_id=refund_id)))


@router.patch("/approve/{refund_id}")
def approve(refund_id: str, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    row = refund_service.approve_refund(db, must_get_refund(db, refund_id=refund_id))
    log_admin_action(db, p.user_id, "admin_refund_approved", f"Approved refund {row.id}", case_id=row.case_id)
    return envelope("Refund approved successfully", refund_out(row))


@router.patch("/reject/{refund_id}")
def reject(refund_id: str, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    row = refund_service.reject_refund(db, must_get_refund(db, refund_id=refund_id))
    log_admin_action(db, p.user_id, "admin_refund_rejected", f"Rejected refund {row.id}", case_id=row.case_id)
    return envelope("Refund rejected successfully", refund_out(row))
