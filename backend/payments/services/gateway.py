from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from urllib.parse import urlencode
from uuid import uuid4

from django.conf import settings
from django.urls import reverse

logger = logging.getLogger(__name__)


@dataclass
class GatewaySessionStub:
    """
    Lightweight stand-in for stripe.checkout.Session when running in stub mode.

    Tests and local development do not hit Stripe; the preview URL lets the
    frontend walk through the payment callbacks as if Stripe redirected back.
    """

    id: str
    url: str


# Stripe charges these in whole units; everything else is in cents.
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
        "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
    }
)

# Stripe substitutes the literal placeholder when redirecting back.
CHECKOUT_SESSION_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"


def amount_to_minor_units(amount: Decimal, currency: Optional[str] = None) -> int:
    currency = (currency or settings.PAYMENT_CURRENCY).lower()
    factor = 1 if currency in ZERO_DECIMAL_CURRENCIES else 100
    return int((Decimal(amount) * factor).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_callback_url(outcome: str, transaction_id: str) -> str:
    path = reverse(f"payment-{outcome}")
    query = urlencode({"transaction_id": transaction_id})
    return f"{settings.BACKEND_URL.rstrip('/')}{path}?{query}"


def build_success_url(transaction_id: str) -> str:
    return f"{build_callback_url('success', transaction_id)}&session_id={CHECKOUT_SESSION_PLACEHOLDER}"


def build_preview_url(*, transaction_id: str, amount: Decimal, session_id: str) -> str:
    query = urlencode(
        {
            "transaction": transaction_id,
            "amount": amount_to_minor_units(amount, settings.PAYMENT_CURRENCY),
            "session": session_id,
        }
    )
    return f"{settings.FRONTEND_URL.rstrip('/')}/payments/preview?{query}"


def _stub_gateway_session(*, transaction_id: str, amount: Decimal) -> GatewaySessionStub:
    session_id = f"cs_test_{uuid4().hex}"
    return GatewaySessionStub(
        id=session_id,
        url=build_preview_url(transaction_id=transaction_id, amount=amount, session_id=session_id),
    )


def _get_stripe_api_key() -> Optional[str]:
    key = getattr(settings, "STRIPE_SECRET_KEY", "")
    return key or None


def _should_use_stub() -> bool:
    if getattr(settings, "STRIPE_USE_STUB", False):
        return True
    return _get_stripe_api_key() is None


def create_gateway_session(
    *,
    address: str,
    email: str,
    phone_number: str,
    name: str,
    amount: Decimal,
    transaction_id: str,
):
    """
    Open a hosted checkout session for one payment.

    Returns an object exposing `id` and `url`; `url` is where the customer is
    redirected to pay. Stripe errors propagate to the caller.
    """

    if _should_use_stub():
        return _stub_gateway_session(transaction_id=transaction_id, amount=amount)

    import stripe

    stripe.api_key = _get_stripe_api_key()
    session_kwargs = {}
    if email:
        session_kwargs["customer_email"] = email

    return stripe.checkout.Session.create(
        mode="payment",
        payment_method_types=["card"],
        client_reference_id=transaction_id,
        line_items=[
            {
                "quantity": 1,
                "price_data": {
                    "currency": settings.PAYMENT_CURRENCY,
                    "unit_amount": amount_to_minor_units(amount, settings.PAYMENT_CURRENCY),
                    "product_data": {
                        "name": f"Tour booking {transaction_id}",
                    },
                },
            }
        ],
        success_url=build_success_url(transaction_id),
        cancel_url=build_callback_url("cancel", transaction_id),
        metadata={
            "transaction_id": transaction_id,
            "name": name,
            "phone": phone_number,
            "address": address,
        },
        **session_kwargs,
    )


def confirm_checkout_paid(*, session_id: Optional[str], transaction_id: str) -> bool:
    """
    Ask Stripe whether the checkout session behind a success redirect settled.

    The redirect itself is unauthenticated, so the session must belong to
    `transaction_id` and report `payment_status == "paid"`. Stub mode has no
    session to look up and always confirms.
    """

    if _should_use_stub():
        return True
    if not session_id:
        return False

    import stripe

    stripe.api_key = _get_stripe_api_key()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.error.InvalidRequestError:
        logger.warning("Checkout session %s not found for %s", session_id, transaction_id)
        return False

    if session.get("client_reference_id") != transaction_id:
        logger.warning("Checkout session %s does not belong to %s", session_id, transaction_id)
        return False
    return session.get("payment_status") == "paid"
