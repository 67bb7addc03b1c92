# backend/tests/test_files_otp.py
from __future__ import annotations

import asyncio
import io

import pytest

from app.config import settings
from app.routers import files as files_router
from app.services.file_storage import sanitize_file_path
from conftest import make_account

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("../../etc/passwd", "etc/passwd"),
        ("uploads/../../secret.png", "secret.png"),
        ("..\\..\\windows\\win.ini", "windows/win.ini"),
        ("/uploads/./a.png", "uploads/a.png"),
        ("", ""),
    ],
)
def test_sanitize_file_path_stays_under_root(raw, expected):
    out = sanitize_file_path(raw)
    assert out == expected
    assert ".." not in out.split("/")
    assert not out.startswith("/")


def test_upload_and_download_roundtrip(client, tenant):
    r = client.post(
        "/files/upload",
        files={"file": ("damage photo.png", io.BytesIO(PNG), "image/png")},
        headers=tenant.headers,
    )
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["filePath"].startswith("uploads/damage-photo-")
    assert data["fileUrl"].endswith(data["filePath"])

    got = client.get(f"/files/{data['filePath']}")
    assert got.status_code == 200
    assert got.content == PNG
    assert got.headers["content-type"] == "image/png"


def test_upload_rejects_non_images(client, tenant):
    r = client.post(
        "/files/upload",
        files={"file": ("notes.txt", io.BytesIO(b"hello"), "text/plain")},
        headers=tenant.headers,
    )
    assert r.status_code == 400


def test_upload_stores_off_the_event_loop(client, tenant, monkeypatch):
    seen = {}
    real_store = files_router.store_file

    def store_file(*args, **kwargs):
        try:
            asyncio.get_running_loop()
            seen["loop"] = True
        except RuntimeError:
            seen["loop"] = False
        return real_store(*args, **kwargs)

    monkeypatch.setattr(files_router, "store_file", store_file)
    r = client.post(
        "/files/upload",
        files={"file": ("a.png", io.BytesIO(PNG), "image/png")},
        headers=tenant.headers,
    )
    assert r.status_code == 201, r.text
    assert seen == {"loop": False}


def test_upload_rejects_files_over_the_limit(client, tenant, monkeypatch):
    monkeypatch.setattr(settings, "upload_max_bytes", len(PNG) - 1)
    r = client.post(
        "/files/upload",
        files={"file": ("big.png", io.BytesIO(PNG), "image/png")},
        headers=tenant.headers,
    )
    assert r.status_code == 400
    assert "too large" in r.json()["message"]


def test_upload_requires_auth(client):
    r = client.post("/files/upload", files={"file": ("a.png", io.BytesIO(PNG), "image/png")})
    assert r.status_code == 401


def test_download_traversal_cannot_escape(client):
    assert client.get("/files/..%2F..%2Fetc%2Fpasswd").status_code == 404


def test_otp_flow_issues_elevated_token(client, monkeypatch):
    sent: dict[str, str] = {}
    monkeypatch.setattr(
        "app.services.otp_service.send_otp_email", lambda email, code, name=None: sent.update(code=code) or True
    )
    acct = make_account("tenant")

    r = client.post("/otp/request", json={"userEmail": acct.email})
    assert r.status_code == 200
    assert r.json()["message"] == "OTP sent successfully"
    code = sent["code"]

    # a still-valid code is not replaced
    r = client.post("/otp/request", json={"userEmail": acct.email})
    assert r.json()["message"].startswith("An OTP has already been sent")

    # resend inside the cooldown is refused
    assert client.post("/otp/resend", json={"userEmail": acct.email}).status_code == 400

    wrong = "000000" if code != "000000" else "111111"
    assert client.post("/otp/verify", json={"userEmail": acct.email, "otpCode": wrong}).status_code == 400

    r = client.post("/otp/verify", json={"userEmail": acct.email, "otpCode": code})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["isVerified"] is True

    headers = {"Authorization": f"Bearer {data['token']}"}
    assert client.put("/users/password", json={"userPassword": "changed99"}, headers=headers).status_code == 200
    assert client.post("/users/login", json={"userEmail": acct.email, "userPassword": "changed99"}).status_code == 200

    # codes are single use
    assert client.post("/otp/verify", json={"userEmail": acct.email, "otpCode": code}).status_code == 400


def test_otp_unknown_email(client):
    assert client.post("/otp/request", json={"userEmail": "nobody@test.local"}).status_code == 404
