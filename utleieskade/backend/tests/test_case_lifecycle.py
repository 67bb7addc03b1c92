# backend/tests/test_case_lifecycle.py
from __future__ import annotations

from sqlalchemy import func, select

from app.models import Case, CaseTimeline, InspectorPayment
from conftest import create_case, make_account


def _report_body(case_id: str) -> dict:
    return {
        "caseId": case_id,
        "reportDescription": "Cabinet floor replaced",
        "items": [
            {
                "item": "Chipboard floor",
                "quantity": "1",
                "unitPrice": "450",
                "hours": "2",
                "hourlyRate": "600",
                "sumMaterial": "450",
                "sumWork": "1200",
                "sumPost": "1650",
            }
        ],
        "summary": {
            "totalHours": "2",
            "totalSumMaterials": "450",
            "totalSumLabor": "1200",
            "sumExclVAT": "1650",
            "vat": "412.50",
            "sumInclVAT": "2062.50",
            "total": "2062.50",
        },
    }


def test_create_case_with_damages_and_timeline(client, tenant):
    data = create_case(client, tenant)
    assert data["caseId"].startswith("CASE-")
    assert data["caseStatus"] == "open"
    assert data["caseDeadline"] is not None
    assert data["property"]["propertyCity"] == "Oslo"
    assert data["damages"][0]["damagePhotos"][0]["photoUrl"] == "https://cdn.test/a.jpg"
    assert [t["eventType"] for t in data["timeline"]] == ["caseCreated"]


def test_create_case_requires_tenant_role(client, inspector):
    r = client.post("/cases/create-case", json={"caseDescription": "x"}, headers=inspector.headers)
    assert r.status_code == 403


def test_tenant_lists_only_own_cases(client, tenant):
    other = make_account("tenant")
    mine = create_case(client, tenant)
    create_case(client, other)

    r = client.get("/cases/getCases", headers=tenant.headers)
    assert r.status_code == 200
    ids = {c["caseId"] for c in r.json()["data"]["cases"]}
    assert ids == {mine["caseId"]}

    assert client.get(f"/cases/{mine['caseId']}", headers=other.headers).status_code == 403


def test_assign_to_missing_inspector_leaves_case_untouched(client, tenant, admin, db):
    case_id = create_case(client, tenant)["caseId"]

    r = client.patch(f"/cases/{case_id}/assign", json={"inspectorId": "USER-nope"}, headers=admin.headers)
    assert r.status_code == 404

    row = db.get(Case, case_id)
    assert row.inspector_id is None
    assert row.status == "open"


def test_assign_to_tenant_id_is_not_an_inspector(client, tenant, admin):
    case_id = create_case(client, tenant)["caseId"]
    r = client.patch(f"/cases/{case_id}/assign", json={"inspectorId": tenant.id}, headers=admin.headers)
    assert r.status_code == 404


def test_assign_appends_timeline_and_starts_work(client, tenant, admin, inspector):
    case_id = create_case(client, tenant)["caseId"]
    r = client.patch(f"/cases/{case_id}/assign", json={"inspectorId": inspector.id}, headers=admin.headers)
    assert r.status_code == 200
    assert r.json()["data"]["inspectorId"] == inspector.id
    assert r.json()["data"]["caseStatus"] == "in-progress"

    events = [t["eventType"] for t in client.get(f"/cases/{case_id}/timeline", headers=tenant.headers).json()["data"]]
    assert events == ["caseCreated", "inspectorAssigned"]


def test_cancel_without_reason_is_rejected(client, tenant, db):
    case_id = create_case(client, tenant)["caseId"]
    r = client.patch(f"/cases/{case_id}/cancel", json={}, headers=tenant.headers)
    assert r.status_code == 400
    assert db.get(Case, case_id).status == "open"


def test_cancel_records_exactly_one_timeline_event(client, tenant, db):
    case_id = create_case(client, tenant)["caseId"]
    r = client.patch(f"/cases/{case_id}/cancel", json={"cancellationReason": "Fixed it myself"}, headers=tenant.headers)
    assert r.status_code == 200
    assert r.json()["data"]["caseStatus"] == "cancelled"
    assert r.json()["data"]["cancellationReason"] == "Fixed it myself"

    n = db.scalar(
        select(func.count())
        .select_from(CaseTimeline)
        .where(CaseTimeline.case_id == case_id, CaseTimeline.event_type == "caseCancelled")
    )
    assert n == 1

    again = client.patch(f"/cases/{case_id}/cancel", json={"cancellationReason": "again"}, headers=tenant.headers)
    assert again.status_code == 400


def test_inspector_must_use_own_cancel_endpoint(client, tenant, inspector):
    case_id = create_case(client, tenant)["caseId"]
    r = client.patch(f"/cases/{case_id}/cancel", json={"cancellationReason": "no"}, headers=inspector.headers)
    assert r.status_code == 403


def test_status_transitions_are_validated(client, tenant, admin):
    case_id = create_case(client, tenant)["caseId"]

    r = client.patch(f"/cases/{case_id}/status", json={"status": "completed"}, headers=admin.headers)
    assert r.status_code == 400

    r = client.patch(f"/cases/{case_id}/status", json={"status": "sideways"}, headers=admin.headers)
    assert r.status_code == 400

    r = client.patch(f"/cases/{case_id}/status", json={"status": "in-progress"}, headers=admin.headers)
    assert r.status_code == 200
    r = client.patch(f"/cases/{case_id}/status", json={"status": "completed"}, headers=admin.headers)
    assert r.status_code == 200
    assert r.json()["data"]["caseCompletedDate"] is not None

    r = client.patch(f"/cases/{case_id}/status", json={"status": "open"}, headers=admin.headers)
    assert r.status_code == 400


def test_extend_deadline_must_move_forward(client, tenant, admin):
    case_id = create_case(client, tenant, caseDeadline="2030-01-10T00:00:00Z")["caseId"]
    r = client.patch(f"/cases/{case_id}/extend-deadline", json={"newDeadline": "2029-12-01"}, headers=admin.headers)
    assert r.status_code == 400

    r = client.patch(
        f"/cases/{case_id}/extend-deadline",
        json={"newDeadline": "2030-02-01", "reason": "Parts on order"},
        headers=admin.headers,
    )
    assert r.status_code == 200
    assert r.json()["data"]["caseDeadline"].startswith("2030-02-01")


def test_claim_is_exclusive(client, tenant, inspector):
    rival = make_account("inspector")
    case_id = create_case(client, tenant)["caseId"]

    r = client.post(f"/inspectors/cases/{case_id}/claim", headers=inspector.headers)
    assert r.status_code == 200
    assert r.json()["data"]["caseStatus"] == "in-progress"

    r = client.post(f"/inspectors/cases/{case_id}/claim", headers=rival.headers)
    assert r.status_code == 400

    unread = client.get("/notifications/unread-count", headers=tenant.headers).json()["data"]["count"]
    assert unread >= 1


def test_hold_and_release(client, tenant, inspector):
    case_id = create_case(client, tenant)["caseId"]
    client.post(f"/inspectors/cases/{case_id}/claim", headers=inspector.headers)

    assert client.put(f"/inspectors/cases/{case_id}/hold", json={}, headers=inspector.headers).status_code == 400
    r = client.put(f"/inspectors/cases/{case_id}/hold", json={"holdReason": "Tenant away"}, headers=inspector.headers)
    assert r.json()["data"]["caseStatus"] == "on-hold"

    r = client.put(f"/inspectors/cases/{case_id}/release", headers=inspector.headers)
    assert r.status_code == 200
    assert r.json()["data"]["inspectorId"] is None
    assert r.json()["data"]["caseStatus"] == "open"


def test_report_on_held_case_completes_it(client, tenant, inspector, db):
    case_id = create_case(client, tenant)["caseId"]
    client.post(f"/inspectors/cases/{case_id}/claim", headers=inspector.headers)
    r = client.put(f"/inspectors/cases/{case_id}/hold", json={"holdReason": "Tenant away"}, headers=inspector.headers)
    assert r.json()["data"]["caseStatus"] == "on-hold"

    r = client.post("/cases/report-assessment", json=_report_body(case_id), headers=inspector.headers)
    assert r.status_code == 201, r.text
    db.expire_all()
    assert db.get(Case, case_id).status == "completed"


def test_report_completes_case_and_accrues_earning(client, tenant, inspector, db):
    case_id = create_case(client, tenant)["caseId"]
    client.post(f"/inspectors/cases/{case_id}/claim", headers=inspector.headers)

    r = client.post("/cases/report-assessment", json=_report_body(case_id), headers=inspector.headers)
    assert r.status_code == 201, r.text
    report = r.json()["data"]
    assert report["assessmentSummary"]["sumInclVAT"] == 2062.5
    assert report["assessmentItems"][0]["item"] == "Chipboard floor"

    assert db.get(Case, case_id).status == "completed"
    rows = db.scalars(select(InspectorPayment).where(InspectorPayment.case_id == case_id)).all()
    assert len(rows) == 1
    assert rows[0].status == "pending"

    preview = client.get(f"/inspectors/cases/{case_id}/report/preview", headers=inspector.headers)
    assert preview.json()["data"]["report"]["reportId"] == report["reportId"]

    pdf = client.get(f"/inspectors/reports/{report['reportId']}/pdf", headers=inspector.headers)
    assert pdf.status_code == 200
    assert pdf.content.startswith(b"%PDF")


def test_report_by_unassigned_inspector_is_forbidden(client, tenant, inspector):
    case_id = create_case(client, tenant)["caseId"]
    r = client.post("/cases/report-assessment", json=_report_body(case_id), headers=inspector.headers)
    assert r.status_code == 403


def test_timer_start_stop(client, tenant, inspector):
    case_id = create_case(client, tenant)["caseId"]
    assert client.post(f"/inspectors/cases/{case_id}/timer/start", headers=inspector.headers).status_code == 404

    client.post(f"/inspectors/cases/{case_id}/claim", headers=inspector.headers)
    assert client.post(f"/inspectors/cases/{case_id}/timer/start", headers=inspector.headers).status_code == 200
    assert client.post(f"/inspectors/cases/{case_id}/timer/start", headers=inspector.headers).status_code == 400

    r = client.post(f"/inspectors/cases/{case_id}/timer/stop", headers=inspector.headers)
    assert r.status_code == 200
    assert r.json()["data"]["duration"]["seconds"] >= 0
