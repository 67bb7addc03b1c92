# backend/tests/test_admin_platform.py
from __future__ import annotations

import uuid

from app.models import Notification
from conftest import PASSWORD, create_case, make_account


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["database"] == "connected"
    assert client.get("/").json()["message"] == "Utleieskade API is running"


def test_admin_signup_is_closed_once_an_admin_exists(client, admin):
    r = client.post(
        "/admins/signup",
        json={
            "userFirstName": "Second",
            "userLastName": "Admin",
            "userEmail": f"boot-{uuid.uuid4().hex[:8]}@test.local",
            "userPassword": "longenough",
        },
    )
    assert r.status_code == 403


def test_sub_admin_management_is_super_admin_only(client, admin):
    sub = make_account("sub-admin")
    body = {
        "userFirstName": "Ola",
        "userLastName": "Hansen",
        "userEmail": f"sub-{uuid.uuid4().hex[:8]}@test.local",
        "userPassword": "longenough",
    }
    assert client.post("/admins/addSubAdmin", json=body, headers=sub.headers).status_code == 403

    r = client.post("/admins/addSubAdmin", json=body, headers=admin.headers)
    assert r.status_code == 201
    new_id = r.json()["data"]["adminId"]
    assert r.json()["data"]["userType"] == "sub-admin"

    assert client.get(f"/admins/getAdmin/{new_id}", headers=sub.headers).status_code == 200
    assert client.delete(f"/admins/delete/{new_id}", headers=admin.headers).status_code == 200
    assert client.get(f"/admins/getAdmin/{new_id}", headers=admin.headers).status_code == 404


def test_non_admin_is_forbidden(client, tenant):
    assert client.get("/admins/dashboard", headers=tenant.headers).status_code == 403
    assert client.get("/settings/platform", headers=tenant.headers).status_code == 403


def test_dashboard_totals_and_export(client, admin):
    data = client.get("/admins/dashboard", headers=admin.headers).json()["data"]
    assert data["totalUsers"] >= 1
    assert set(data["overviewGraphs"]) >= {"users", "revenue", "cases"}

    csv = client.get("/admins/export-dashboard", params={"format": "csv"}, headers=admin.headers)
    assert csv.status_code == 200
    assert csv.headers["content-type"].startswith("text/csv")
    assert csv.text.splitlines()[0].startswith("Total Users")

    pdf = client.get("/admins/export-dashboard", params={"format": "pdf"}, headers=admin.headers)
    assert pdf.content.startswith(b"%PDF")

    bad = client.get("/admins/export-dashboard", params={"format": "xlsx"}, headers=admin.headers)
    assert bad.status_code == 400
    assert bad.json()["message"] == "Invalid format. Use ?format=csv or ?format=pdf"


def test_inspector_and_tenant_exports(client, admin, inspector, tenant):
    r = client.get("/inspectors/export", params={"format": "csv"}, headers=admin.headers)
    assert r.status_code == 200
    assert inspector.email in r.text

    r = client.get("/tenants/export", params={"format": "csv"}, headers=admin.headers)
    assert tenant.email in r.text


def test_create_inspector_with_expertise(client, admin):
    code = client.post(
        "/expertises/createExpertise",
        json={"expertiseArea": f"Roofing {uuid.uuid4().hex[:6]}", "expertiseDescription": "Tiles"},
        headers=admin.headers,
    ).json()["data"]["expertiseCode"]

    body = {
        "userFirstName": "Per",
        "userLastName": "Olsen",
        "userEmail": f"insp-{uuid.uuid4().hex[:8]}@test.local",
        "expertiseCodes": [code],
    }
    r = client.post("/inspectors/createInspector", json=body, headers=admin.headers)
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["userType"] == "inspector"
    assert [e["expertiseCode"] for e in data["expertises"]] == [code]

    r = client.post(
        "/inspectors/createInspector", json={**body, "expertiseCodes": [999999]}, headers=admin.headers
    )
    assert r.status_code == 400


def test_deactivated_tenant_cannot_login(client, admin):
    acct = make_account("tenant")
    assert client.patch(f"/tenants/deactivate/{acct.id}", headers=admin.headers).status_code == 200
    r = client.post("/users/login", json={"userEmail": acct.email, "userPassword": PASSWORD})
    assert r.status_code == 403


def test_platform_settings_patch_is_logged(client, admin):
    before = client.get("/settings/platform", headers=admin.headers).json()["data"]
    assert before["settingsId"] == "PLATFORM_SETTINGS"

    r = client.patch("/settings/platform", json={"dataRetentionDays": 400}, headers=admin.headers)
    assert r.status_code == 200
    assert r.json()["data"]["dataRetentionDays"] == 400
    assert r.json()["data"]["basePrice"] == before["basePrice"]

    assert client.patch("/settings/platform", json={"inspectorPercentage": 140}, headers=admin.headers).status_code == 400

    logs = client.get("/settings/data-logs", headers=admin.headers).json()["data"]
    assert any(row["actionType"] == "admin_settings_updated" and row["adminId"] == admin.id for row in logs)

    client.patch("/settings/platform", json={"dataRetentionDays": before["dataRetentionDays"]}, headers=admin.headers)


def test_data_deletion_anonymises_user(client, admin):
    acct = make_account("tenant")
    r = client.post("/settings/data-deletion", json={"userId": acct.id}, headers=admin.headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["userFirstName"] == "Deleted"
    assert data["userEmail"].endswith("@anonymized.invalid")
    assert data["userStatus"] == "inactive"

    assert client.post("/settings/data-deletion", json={"userId": admin.id}, headers=admin.headers).status_code == 400


def test_notifications_flow(client, admin, tenant):
    r = client.post(
        "/notifications/system", json={"userId": tenant.id, "title": "Hi", "message": "Welcome"}, headers=admin.headers
    )
    assert r.status_code == 201
    nid = r.json()["data"]["notificationId"]

    assert client.get("/notifications/unread-count", headers=tenant.headers).json()["data"]["count"] == 1
    assert client.patch(f"/notifications/{nid}/read", headers=tenant.headers).status_code == 200
    assert client.get("/notifications/unread-count", headers=tenant.headers).json()["data"]["count"] == 0

    other = make_account("tenant")
    assert client.patch(f"/notifications/{nid}/read", headers=other.headers).status_code == 404


def test_overdue_check_notifies_once(client, admin, tenant, db):
    case_id = create_case(client, tenant, caseDeadline="2020-01-01T00:00:00Z")["caseId"]

    client.post("/notifications/check-overdue", headers=admin.headers)
    client.post("/notifications/check-overdue", headers=admin.headers)

    rows = db.query(Notification).filter(Notification.case_id == case_id, Notification.notification_type == "overdue").all()
    assert len(rows) == 1
    assert rows[0].user_id == tenant.id


def test_overdue_check_renotifies_after_extended_deadline_passes(client, admin, tenant, db):
    case_id = create_case(client, tenant, caseDeadline="2020-01-01T00:00:00Z")["caseId"]
    client.post("/notifications/check-overdue", headers=admin.headers)

    r = client.patch(
        f"/cases/{case_id}/extend-deadline",
        json={"newDeadline": "2020-01-01T06:00:00Z", "reason": "Key pickup"},
        headers=admin.headers,
    )
    assert r.status_code == 200, r.text
    client.post("/notifications/check-overdue", headers=admin.headers)
    client.post("/notifications/check-overdue", headers=admin.headers)

    rows = db.query(Notification).filter(Notification.case_id == case_id, Notification.notification_type == "overdue").all()
    assert len(rows) == 2
    assert {"2020-01-01 00:00", "2020-01-01 06:00"} == {r.message.rsplit(" on ", 1)[1].rstrip(".") for r in rows}


def test_frequent_cancellations_flagged(client, admin, tenant):
    for _ in range(2):
        case_id = create_case(client, tenant)["caseId"]
        client.patch(f"/cases/{case_id}/cancel", json={"cancellationReason": "changed mind"}, headers=tenant.headers)

    flagged = client.post(
        "/notifications/check-cancellations", params={"threshold": 2}, headers=admin.headers
    ).json()["data"]["flaggedTenants"]
    assert tenant.id in flagged


def test_action_types_include_known_values(client, admin):
    types = client.get("/action-logs/action-types", headers=admin.headers).json()["data"]
    assert "case_claimed" in types
    assert types == sorted(types)
