# backend/tests/test_payments_refunds.py
from __future__ import annotations

from sqlalchemy import func, select

from app.models import Case, InspectorPayment, Payment
from conftest import PASSWORD, create_case


def _confirm_body(intent_id: str) -> dict:
    return {
        "paymentIntentId": intent_id,
        "caseDescription": "Broken window in bedroom",
        "caseUrgency": "high",
        "propertyAddress": "Kirkegata 5",
        "propertyCity": "Trondheim",
    }


def test_create_intent_uses_platform_price(client, tenant, fake_stripe):
    r = client.post("/payments/create-intent", json={"caseUrgency": "high"}, headers=tenant.headers)
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    # base price 100 + haste fee 50
    assert data["amount"] == 150.0
    assert data["clientSecret"].endswith("_secret")


def test_confirm_creates_case_and_payment(client, tenant, fake_stripe):
    intent_id = fake_stripe.add(tenant_id=tenant.id)
    r = client.post("/payments/confirm", json=_confirm_body(intent_id), headers=tenant.headers)
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["payment"]["paymentStatus"] == "processed"
    assert data["payment"]["caseId"] == data["case"]["caseId"]
    assert data["case"]["caseUrgency"] == "high"


def test_double_confirm_creates_one_case_and_one_payment(client, tenant, fake_stripe, db):
    intent_id = fake_stripe.add(tenant_id=tenant.id)
    first = client.post("/payments/confirm", json=_confirm_body(intent_id), headers=tenant.headers)
    assert first.status_code == 201

    second = client.post("/payments/confirm", json=_confirm_body(intent_id), headers=tenant.headers)
    assert second.status_code == 400
    assert second.json()["message"] == "Payment already processed"

    assert db.scalar(select(func.count()).select_from(Payment).where(Payment.stripe_payment_intent_id == intent_id)) == 1
    assert db.scalar(select(func.count()).select_from(Case).where(Case.tenant_id == tenant.id)) == 1


def test_confirm_rejects_unsuccessful_intent(client, tenant, fake_stripe, db):
    intent_id = fake_stripe.add(status="requires_payment_method", tenant_id=tenant.id)
    r = client.post("/payments/confirm", json=_confirm_body(intent_id), headers=tenant.headers)
    assert r.status_code == 400
    assert db.scalar(select(func.count()).select_from(Case).where(Case.tenant_id == tenant.id)) == 0


def test_confirm_rejects_someone_elses_intent(client, tenant, fake_stripe):
    intent_id = fake_stripe.add(tenant_id="USER-someone-else")
    r = client.post("/payments/confirm", json=_confirm_body(intent_id), headers=tenant.headers)
    assert r.status_code == 403


def test_receipt_pdf_and_transactions(client, tenant, fake_stripe):
    intent_id = fake_stripe.add(tenant_id=tenant.id)
    payment_id = client.post("/payments/confirm", json=_confirm_body(intent_id), headers=tenant.headers).json()["data"][
        "payment"
    ]["paymentId"]

    tx = client.get("/payments/my-transactions", headers=tenant.headers).json()["data"]
    assert [p["paymentId"] for p in tx["payments"]] == [payment_id]

    r = client.get(f"/payments/receipt/{payment_id}", headers=tenant.headers)
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/pdf"
    assert "attachment" in r.headers["content-disposition"]


def _completed_case_with_earning(client, tenant, inspector, db) -> InspectorPayment:
    case_id = create_case(client, tenant)["caseId"]
    client.post(f"/inspectors/cases/{case_id}/claim", headers=inspector.headers)
    body = {
        "caseId": case_id,
        "items": [{"item": "Paint", "sumPost": "300"}],
        "summary": {"total": "300"},
    }
    assert client.post("/cases/report-assessment", json=body, headers=inspector.headers).status_code == 201
    return db.scalar(select(InspectorPayment).where(InspectorPayment.case_id == case_id))


def test_payout_request_reject_and_resubmit(client, tenant, inspector, admin, db):
    earning = _completed_case_with_earning(client, tenant, inspector, db)
    balance = client.get("/inspectors/earnings", headers=inspector.headers).json()["data"]["pendingBalance"]
    assert balance == float(earning.amount)

    bad = client.post(
        "/inspectors/request-payout", json={"amount": balance + 1, "userPassword": PASSWORD}, headers=inspector.headers
    )
    assert bad.status_code == 400
    wrong_pw = client.post(
        "/inspectors/request-payout", json={"amount": balance, "userPassword": "nope"}, headers=inspector.headers
    )
    assert wrong_pw.status_code == 400

    r = client.post("/inspectors/request-payout", json={"amount": balance, "userPassword": PASSWORD}, headers=inspector.headers)
    assert r.status_code == 200

    assert client.patch(f"/payments/reject/{earning.id}", json={}, headers=admin.headers).status_code == 400
    r = client.patch(f"/payments/reject/{earning.id}", json={"rejectionReason": "Wrong bank"}, headers=admin.headers)
    assert r.status_code == 200
    assert r.json()["data"]["paymentStatus"] == "rejected"
    assert r.json()["data"]["rejectionReason"] == "Wrong bank"

    r = client.post("/inspectors/request-payout", json={"amount": balance, "userPassword": PASSWORD}, headers=inspector.headers)
    assert r.status_code == 200
    db.expire_all()
    row = db.get(InspectorPayment, earning.id)
    assert row.status == "requested"
    assert row.rejection_reason is None

    r = client.patch(f"/payments/approve/{earning.id}", headers=admin.headers)
    assert r.json()["data"]["paymentStatus"] == "processed"
    assert client.patch(f"/payments/approve/{earning.id}", headers=admin.headers).status_code == 400

    pdf = client.get(f"/payments/report/{earning.id}", headers=admin.headers)
    assert pdf.status_code == 200
    assert pdf.content.startswith(b"%PDF")


def test_payout_without_balance(client, inspector):
    r = client.post("/inspectors/request-payout", json={"amount": 10, "userPassword": PASSWORD}, headers=inspector.headers)
    assert r.status_code == 400
    assert r.json()["message"] == "You currently have no pending balance"


def test_refund_request_and_decision(client, tenant, admin, fake_stripe):
    intent_id = fake_stripe.add(tenant_id=tenant.id, amount="200.00")
    case_id = client.post("/payments/confirm", json=_confirm_body(intent_id), headers=tenant.headers).json()["data"][
        "case"
    ]["caseId"]

    too_much = client.post("/refunds/request", json={"caseId": case_id, "amount": "250"}, headers=tenant.headers)
    assert too_much.status_code == 400

    r = client.post("/refunds/request", json={"caseId": case_id, "amount": "120", "reason": "Late"}, headers=tenant.headers)
    assert r.status_code == 201, r.text
    refund_id = r.json()["data"]["refundId"]

    # only 80 left to refund while the first request is pending
    assert client.post("/refunds/request", json={"caseId": case_id, "amount": "100"}, headers=tenant.headers).status_code == 400

    r = client.patch(f"/refunds/approve/{refund_id}", headers=admin.headers)
    assert r.status_code == 200
    assert r.json()["data"]["refundStatus"] == "processed"
    assert client.patch(f"/refunds/reject/{refund_id}", headers=admin.headers).status_code == 400

    logs = client.get("/action-logs", params={"actionType": "admin_refund_approved"}, headers=admin.headers).json()["data"]
    assert any(row["caseId"] == case_id for row in logs["logs"])


def test_refund_without_payment(client, tenant):
    case_id = create_case(client, tenant)["caseId"]
    r = client.post("/refunds/request", json={"caseId": case_id}, headers=tenant.headers)
    assert r.status_code == 400
