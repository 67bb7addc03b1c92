# backend/app/clients/stripe_client.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

import stripe
from fastapi import HTTPException

from ..config import settings

log = logging.getLogger("utleieskade.stripe")


@dataclass(frozen=True)
class PaymentIntentInfo:
    id: str
    status: str
    amount: Decimal  # major units
    currency: str
    client_secret: Optional[str]
    raw: dict[str, Any]


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _info(intent: Any) -> PaymentIntentInfo:
    return PaymentIntentInfo(
        id=str(intent["id"]),
        status=str(intent["status"]),
        amount=(Decimal(int(intent["amount"])) / 100).quantize(Decimal("0.01")),
        currency=str(intent.get("currency") or settings.stripe_currency),
        client_secret=intent.get("client_secret"),
        raw=dict(intent),
    )


class StripeClient:
    def __init__(self) -> None:
        self.api_key = settings.stripe_secret_key
        self.currency = settings.stripe_currency

    def enabled(self) -> bool:
        return bool(self.api_key)

    def _require_key(self) -> str:
        if not self.api_key:
            raise HTTPException(status_code=500, detail="Payment provider is not configured")
        return str(self.api_key)

    def create_intent(self, *, amount: Decimal, metadata: Optional[dict[str, str]] = None) -> PaymentIntentInfo:
        key = self._require_key()
        try:
            intent = stripe.PaymentIntent.create(
                amount=to_minor_units(amount),
                currency=self.currency,
                automatic_payment_methods={"enabled": True},
                metadata=metadata or {},
                api_key=key,
            )
        except stripe.StripeError as e:
            log.warning("stripe create intent failed: %s", e)
            raise HTTPException(status_code=502, detail=f"Payment provider error: {e.user_message or str(e)}")
        return _info(intent)

    def retrieve_intent(self, intent_id: str) -> PaymentIntentInfo:
        key = self._require_key()
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=key)
        except stripe.InvalidRequestError:
            raise HTTPException(status_code=400, detail="Invalid payment intent")
        except stripe.StripeError as e:
            log.warning("stripe retrieve intent failed: %s", e)
            raise HTTPException(status_code=502, detail=f"Payment provider error: {e.user_message or str(e)}")
        return _info(intent)


def get_stripe_client() -> StripeClient:
    return StripeClient()
