# backend/app/routers/tenants.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin, require_tenant
from ..db import get_db
from ..domain.action_log import log_admin_action
from ..domain.pagination import page_meta, page_params
from ..responses import envelope, export_response
from ..schemas import TenantSettingsIn
from ..serializers import case_summary, payment_out, refund_out, user_out
from ..services import case_service, tenant_service
from ..services.ownership import must_get_tenant, must_get_user
from ..services.payment_service import tenant_transactions

router = APIRouter(prefix="/tenants", tags=["tenants"])


# -----------------------------------------------------------------------------
# Admin
# -----------------------------------------------------------------------------
@router.get("/allTenants")
def all_tenants(
    page: int = Query(default=1),
    limit: int = Query(default=10),
    search: Optional[str] = Query(default=None),
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    params = page_params(page, limit)
    rows, total = tenant_service.list_tenants(db, params, search)
    return envelope(
        "Tenants fetched successfully",
        {
            "totalTenants": total,
            **page_meta(total, params),
            "tenants": [{**user_out(u), "casesSubmitted": n} for u, n in rows],
        },
    )


@router.get("/getTenant/{tenant_id}")
def get_tenant(tenant_id: str, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    user = must_get_tenant(db, tenant_id=tenant_id)
    out = user_out(user)
    out["casesSubmitted"] = tenant_service.cases_submitted(db, [user.id]).get(user.id, 0)
    out["caseTotals"] = case_service.case_totals(db, tenant_id=user.id)
    return envelope("Tenant fetched successfully", out)


@router.get("/export")
def export_tenants(
    format: Optional[str] = Query(default=None),
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return export_response(
        format,
        name="tenants",
        title="Tenants",
        columns=tenant_service.EXPORT_COLUMNS,
        rows=tenant_service.export_rows(db),
    )


@router.get("/getTransactions/{tenant_id}")
def transactions(tenant_id: str, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    user = must_get_tenant(db, tenant_id=tenant_id)
    tx = tenant_transactions(db, user.id)
    return envelope(
        "Transactions fetched successfully",
        {"payments": [payment_out(x) for x in tx["payments"]], "refunds": [refund_out(x) for x in tx["refunds"]]},
    )


@router.patch("/deactivate/{tenant_id}")
def deactivate_tenant(tenant_id: str, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    user = tenant_service.deactivate(db, must_get_tenant(db, tenant_id=tenant_id))
    log_admin_action(db, p.user_id, "admin_user_deactivated", f"Deactivated tenant {user.email}", metadata={"userId": user.id})
    return envelope("Tenant deactivated successfully", user_out(user))


# -----------------------------------------------------------------------------
# Tenant self-service
# -----------------------------------------------------------------------------
@router.get("/dashboard")
def dashboard(p: Principal = Depends(require_tenant), db: Session = Depends(get_db)):
    return envelope("Dashboard fetched successfully", tenant_service.dashboard(db, must_get_user(db, user_id=p.user_id)))


@router.get("/getCases")
def my_cases(
    page: int = Query(default=1),
    limit: int = Query(default=10),
    status: Optional[str] = Query(default=None),
    urgency: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    p: Principal = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    params = page_params(page, limit)
    rows, total = case_service.list_cases_for(
        db, p, params, status=status, urgency=urgency, search=search, sort_by=sort_by, sort_order=sort_order
    )
    return envelope(
        "Cases fetched successfully",
        {"totalCases": total, **page_meta(total, params), "cases": [case_summary(c) for c in rows]},
    )


@router.get("/settings")
def get_settings(p: Principal = Depends(require_tenant), db: Session = Depends(get_db)):
    user = must_get_user(db, user_id=p.user_id)
    return envelope("Settings fetched successfully", tenant_service.get_privacy_settings(user))


@router.put("/settings")
def put_settings(payload: TenantSettingsIn, p: Principal = Depends(require_tenant), db: Session = Depends(get_db)):
    user = must_get_user(db, user_id=p.user_id)
    return envelope("Settings updated successfully", tenant_service.update_privacy_settings(db, user, payload))
