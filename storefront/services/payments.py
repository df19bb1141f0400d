"""Payment session creators.

A session creator turns a priced checkout into a hosted payment page and
returns where to send the customer. Two implementations exist:

- StripeSessionCreator: Stripe Checkout, meant to run with a test-mode key
- MockSessionCreator: local stand-in used in development and tests
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Protocol

import stripe

from storefront.config import Settings
from storefront.constants import PAYMENT_MOCK, PAYMENT_PROVIDERS, PAYMENT_STRIPE
from storefront.errors import PaymentError
from storefront.models import CheckoutResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentSession:
    id: str
    url: str


class PaymentSessionCreator(Protocol):
    def create_session(self, result: CheckoutResult, order_id: int) -> PaymentSession:
        ...


def to_line_items(result: CheckoutResult, currency: str) -> List[Dict[str, Any]]:
    return [
        {
            "price_data": {
                "currency": currency,
                "product_data": {"name": item.name},
                "unit_amount": item.unit_cost,
            },
            "quantity": item.qty,
        }
        for item in result.line_items
    ]


class StripeSessionCreator:
    def __init__(self, api_key: str, success_url: str, cancel_url: str, currency: str = "usd"):
        if not api_key:
            raise RuntimeError("STRIPE_API_KEY is empty. Set STRIPE_API_KEY in .env")
        self.api_key = api_key
        self.success_url = success_url
        self.cancel_url = cancel_url
        self.currency = currency

    def create_session(self, result: CheckoutResult, order_id: int) -> PaymentSession:
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                line_items=to_line_items(result, self.currency),
                payment_method_types=["card"],
                mode="payment",
                success_url=self.success_url,
                cancel_url=self.cancel_url,
                client_reference_id=str(order_id),
            )
        except stripe.StripeError as e:
            logger.warning("stripe session failed order=%s: %s", order_id, e)
            raise PaymentError(f"Stripe: {e.user_message or e}") from e

        logger.info("stripe session created order=%s session=%s", order_id, session.id)
        return PaymentSession(id=session.id, url=session.url)


class MockSessionCreator:
    def __init__(self, success_url: str, currency: str = "usd", fail: bool = False):
        self.success_url = success_url
        self.currency = currency
        self.fail = fail
        self.sessions: List[Dict[str, Any]] = []

    def create_session(self, result: CheckoutResult, order_id: int) -> PaymentSession:
        if self.fail:
            raise PaymentError("Mock payment provider is unavailable")

        session_id = f"mock_{uuid.uuid4().hex}"
        self.sessions.append(
            {"id": session_id, "order_id": order_id, "total": result.total, "line_items": to_line_items(result, self.currency)}
        )
        logger.info("mock session created order=%s session=%s", order_id, session_id)
        return PaymentSession(id=session_id, url=f"{self.success_url}?session_id={session_id}")


def build_payment_creator(s: Settings) -> PaymentSessionCreator:
    if s.payment_provider == PAYMENT_STRIPE:
        return StripeSessionCreator(s.stripe_api_key, s.success_url, s.cancel_url, s.currency)
    if s.payment_provider == PAYMENT_MOCK:
        return MockSessionCreator(s.success_url, s.currency)
    raise RuntimeError(
        f"Unknown PAYMENT_PROVIDER={s.payment_provider!r}. Use one of: {', '.join(sorted(PAYMENT_PROVIDERS))}"
    )
