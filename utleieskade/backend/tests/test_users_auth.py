# backend/tests/test_users_auth.py
from __future__ import annotations

import uuid

import jwt

from app.config import settings
from conftest import PASSWORD, make_account


def _signup_body(email: str, **extra) -> dict:
    body = {
        "userFirstName": "Kari",
        "userLastName": "Nordmann",
        "userEmail": email,
        "userPassword": "hunter22",
        "userType": "tenant",
    }
    body.update(extra)
    return body


def test_signup_returns_token_with_role(client):
    email = f"kari-{uuid.uuid4().hex[:8]}@test.local"
    r = client.post("/users/signup", json=_signup_body(email))
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["userType"] == "tenant"
    claims = jwt.decode(data["token"], settings.jwt_secret, algorithms=["HS256"])
    assert claims["userType"] == "tenant"
    assert claims["id"].startswith("USER-")


def test_signup_duplicate_email_is_rejected(client):
    email = f"dup-{uuid.uuid4().hex[:8]}@test.local"
    assert client.post("/users/signup", json=_signup_body(email)).status_code == 201

    r = client.post("/users/signup", json=_signup_body(email.upper()))
    assert r.status_code == 400
    body = r.json()
    assert body["status"] == "error"
    assert "email" in body["message"].lower()


def test_signup_short_password_is_a_validation_error(client):
    r = client.post("/users/signup", json=_signup_body("short@test.local", userPassword="abc"))
    assert r.status_code == 400
    assert r.json()["status"] == "error"


def test_login_returns_token_for_correct_password(client):
    acct = make_account("tenant")
    r = client.post("/users/login", json={"userEmail": acct.email, "userPassword": PASSWORD})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["userType"] == "tenant"
    assert jwt.decode(data["token"], settings.jwt_secret, algorithms=["HS256"])["id"] == acct.id


def test_login_token_lives_seven_days(client):
    acct = make_account("tenant")
    token = client.post("/users/login", json={"userEmail": acct.email, "userPassword": PASSWORD}).json()["data"]["token"]
    claims = jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    assert claims["exp"] - claims["iat"] == 7 * 24 * 3600
    assert "elevated" not in claims


def test_otp_elevated_token_lives_thirty_minutes(client, monkeypatch):
    sent: dict[str, str] = {}
    monkeypatch.setattr(
        "app.services.otp_service.send_otp_email", lambda email, code, name=None: sent.update(code=code) or True
    )
    acct = make_account("tenant")
    client.post("/otp/request", json={"userEmail": acct.email})

    r = client.post("/otp/verify", json={"userEmail": acct.email, "otpCode": sent["code"]})
    assert r.status_code == 200, r.text
    claims = jwt.decode(r.json()["data"]["token"], settings.jwt_secret, algorithms=["HS256"])
    assert claims["exp"] - claims["iat"] == 30 * 60
    assert claims["elevated"] is True


def test_inactive_inspector_cannot_login(client):
    acct = make_account("inspector", status="inactive")
    r = client.post("/users/login/inspector", json={"userEmail": acct.email, "userPassword": PASSWORD})
    assert r.status_code == 403
    assert "inactive" in r.json()["message"]


def test_login_with_reset_marker_requires_password_reset(client):
    acct = make_account("inspector", password_hash="default")
    r = client.post("/users/login/inspector", json={"userEmail": acct.email, "userPassword": "default"})
    assert r.status_code == 400
    assert r.json()["message"] == "Password reset required"


def test_login_wrong_password_and_unknown_email(client):
    acct = make_account("tenant")
    assert client.post("/users/login", json={"userEmail": acct.email, "userPassword": "nope"}).status_code == 401
    assert client.post("/users/login", json={"userEmail": "ghost@test.local", "userPassword": "x"}).status_code == 401


def test_login_as_role_is_enforced(client):
    acct = make_account("tenant")
    r = client.post("/users/login/inspector", json={"userEmail": acct.email, "userPassword": PASSWORD})
    assert r.status_code == 403

    r = client.post("/users/login/wizard", json={"userEmail": acct.email, "userPassword": PASSWORD})
    assert r.status_code == 400


def test_sub_admin_can_login_as_admin(client):
    acct = make_account("sub-admin")
    r = client.post("/users/login/admin", json={"userEmail": acct.email, "userPassword": PASSWORD})
    assert r.status_code == 200
    assert r.json()["data"]["userType"] == "sub-admin"


def test_profile_requires_token(client):
    r = client.get("/users/profile")
    assert r.status_code == 401
    assert r.json() == {
        "status": "error",
        "message": "User not authorized, no token provided. Kindly login to continue",
    }

    r = client.get("/users/profile", headers={"Authorization": "Token abc"})
    assert r.status_code == 401


def test_profile_never_exposes_password_hash(client, tenant):
    r = client.get("/users/profile", headers=tenant.headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["userId"] == tenant.id
    assert not any("password" in k.lower() for k in data)


def test_profile_update(client, tenant):
    r = client.put("/users/profile", json={"userCity": "Bergen"}, headers=tenant.headers)
    assert r.status_code == 200
    assert r.json()["data"]["userCity"] == "Bergen"


def test_password_reset_requires_elevated_token(client, tenant):
    r = client.put("/users/password", json={"userPassword": "brandnew1"}, headers=tenant.headers)
    assert r.status_code == 403
