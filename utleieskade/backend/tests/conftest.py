# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile
import uuid
from dataclasses import dataclass
from decimal import Decimal

import pytest

_TMP = tempfile.mkdtemp(prefix="utleieskade-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TMP}/test.db")
os.environ.setdefault("UPLOADS_DIR", os.path.join(_TMP, "uploads"))
os.environ["APP_ENV"] = "test"
os.environ.setdefault("PBKDF2_ITERATIONS", "1000")
os.environ.pop("AZURE_STORAGE_CONNECTION_STRING", None)
os.environ.pop("EMAIL_HOST", None)

from fastapi.testclient import TestClient  # noqa: E402

from app import models  # noqa: E402,F401
from app.clients.stripe_client import PaymentIntentInfo  # noqa: E402
from app.db import Base, SessionLocal, engine  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models import User  # noqa: E402
from app.services.auth_service import create_access_token, hash_password  # noqa: E402
from app.domain.ids import generate_unique_id  # noqa: E402

Base.metadata.create_all(bind=engine)

PASSWORD = "secret123"


@dataclass(frozen=True)
class Account:
    id: str
    email: str
    user_type: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def make_account(user_type: str = "tenant", **fields) -> Account:
    email = fields.pop("email", None) or f"{user_type}-{uuid.uuid4().hex[:10]}@test.local"
    db = SessionLocal()
    try:
        u = User(
            id=generate_unique_id("USER"),
            first_name=fields.pop("first_name", user_type.title()),
            last_name=fields.pop("last_name", "Test"),
            email=email,
            password_hash=fields.pop("password_hash", None) or hash_password(PASSWORD),
            user_type=user_type,
            status=fields.pop("status", "active"),
            is_verified=True,
            **fields,
        )
        db.add(u)
        db.commit()
        return Account(
            id=u.id,
            email=email,
            user_type=user_type,
            token=create_access_token(user_id=u.id, user_type=user_type),
        )
    finally:
        db.close()


@pytest.fixture(scope="session")
def client() -> TestClient:
    return TestClient(create_app())


@pytest.fixture
def tenant() -> Account:
    return make_account("tenant")


@pytest.fixture
def inspector() -> Account:
    return make_account("inspector")


@pytest.fixture
def admin() -> Account:
    return make_account("admin")


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


def create_case(client: TestClient, tenant: Account, **overrides) -> dict:
    body = {
        "caseDescription": "Water leak under the kitchen sink",
        "caseUrgency": "moderate",
        "propertyAddress": f"{uuid.uuid4().hex[:6]} Storgata 1",
        "propertyCity": "Oslo",
        "propertyPostcode": "0155",
        "damages": [
            {
                "damageLocation": "Kitchen",
                "damageType": "Water",
                "damageDescription": "Swollen cabinet floor",
                "damagePhotos": [{"photoType": "overview", "photoUrl": "https://cdn.test/a.jpg"}],
            }
        ],
    }
    body.update(overrides)
    r = client.post("/cases/create-case", json=body, headers=tenant.headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


class FakeStripe:
    """Stands in for the payment provider; intents are keyed by id."""

    def __init__(self) -> None:
        self.intents: dict[str, PaymentIntentInfo] = {}

    def add(self, *, status: str = "succeeded", amount: str = "150.00", tenant_id: str | None = None) -> str:
        intent_id = f"pi_{uuid.uuid4().hex[:16]}"
        self.intents[intent_id] = PaymentIntentInfo(
            id=intent_id,
            status=status,
            amount=Decimal(amount),
            currency="nok",
            client_secret=f"{intent_id}_secret",
            raw={"id": intent_id, "metadata": {"tenantId": tenant_id} if tenant_id else {}},
        )
        return intent_id

    def create_intent(self, *, amount, metadata=None) -> PaymentIntentInfo:
        intent_id = self.add(status="requires_payment_method", amount=str(amount), tenant_id=(metadata or {}).get("tenantId"))
        return self.intents[intent_id]

    def retrieve_intent(self, intent_id: str) -> PaymentIntentInfo:
        return self.intents[intent_id]


@pytest.fixture
def fake_stripe(monkeypatch) -> FakeStripe:
    fake = FakeStripe()
    monkeypatch.setattr("app.services.payment_service.get_stripe_client", lambda: fake)
    return fake
