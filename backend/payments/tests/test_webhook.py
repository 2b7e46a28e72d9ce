import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from bookings.models import Booking
from payments.models import Payment


def _post_event(monkeypatch, event):
    monkeypatch.setattr(
        "payments.api.stripe.Webhook.construct_event",
        lambda payload, sig_header, secret: event,
    )
    return APIClient().post(
        reverse("stripe-payment-webhook"),
        data={"dummy": "value"},
        format="json",
        HTTP_STRIPE_SIGNATURE="sig_test",
    )


def _checkout_event(event_type, **session):
    return {"type": event_type, "data": {"object": {"object": "checkout.session", **session}}}


@pytest.fixture(autouse=True)
def webhook_secret(settings):
    settings.STRIPE_WEBHOOK_SECRET = "whsec_test"


@pytest.mark.django_db
def test_completed_checkout_reconciles_success(monkeypatch, booking, payment):
    event = _checkout_event("checkout.session.completed", client_reference_id="TX1", payment_status="paid")

    response = _post_event(monkeypatch, event)

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Payment Completed Successfully"}
    payment.refresh_from_db()
    booking.refresh_from_db()
    assert payment.status == Payment.PAID
    assert payment.invoice_url
    assert booking.status == Booking.COMPLETE


@pytest.mark.django_db
def test_completed_but_unpaid_checkout_waits_for_async_event(monkeypatch, booking, payment):
    event = _checkout_event("checkout.session.completed", client_reference_id="TX1", payment_status="unpaid")

    response = _post_event(monkeypatch, event)

    assert response.status_code == 200
    payment.refresh_from_db()
    assert payment.status == Payment.INITIATED


@pytest.mark.django_db
def test_async_failure_marks_payment_failed(monkeypatch, booking, payment):
    response = _post_event(
        monkeypatch,
        _checkout_event("checkout.session.async_payment_failed", client_reference_id="TX1"),
    )

    assert response.status_code == 200
    assert response.json()["success"] is False
    booking.refresh_from_db()
    assert booking.status == Booking.FAILED


@pytest.mark.django_db
def test_expired_session_cancels_booking(monkeypatch, booking, payment):
    response = _post_event(
        monkeypatch,
        _checkout_event("checkout.session.expired", client_reference_id="TX1"),
    )

    assert response.status_code == 200
    payment.refresh_from_db()
    booking.refresh_from_db()
    assert payment.status == Payment.CANCELLED
    assert booking.status == Booking.CANCEL


@pytest.mark.django_db
def test_unrelated_events_are_acknowledged(monkeypatch, booking, payment):
    response = _post_event(monkeypatch, {"type": "customer.created", "data": {"object": {"id": "cus_1"}}})

    assert response.status_code == 200
    payment.refresh_from_db()
    assert payment.status == Payment.INITIATED


@pytest.mark.django_db
def test_webhook_without_secret_is_500(monkeypatch, settings):
    settings.STRIPE_WEBHOOK_SECRET = ""

    response = _post_event(monkeypatch, _checkout_event("checkout.session.expired", client_reference_id="TX1"))

    assert response.status_code == 500


@pytest.mark.django_db
def test_invalid_payload_is_400(monkeypatch):
    def bad_payload(payload, sig_header, secret):
        raise ValueError("bad json")

    monkeypatch.setattr("payments.api.stripe.Webhook.construct_event", bad_payload)

    response = APIClient().post(
        reverse("stripe-payment-webhook"),
        data={"dummy": "value"},
        format="json",
        HTTP_STRIPE_SIGNATURE="sig_test",
    )

    assert response.status_code == 400


@pytest.mark.django_db
def test_event_for_unknown_payment_is_acknowledged(monkeypatch, booking, payment):
    event = _checkout_event("checkout.session.completed", client_reference_id="TX-other-app", payment_status="paid")

    response = _post_event(monkeypatch, event)

    assert response.status_code == 200
    payment.refresh_from_db()
    assert payment.status == Payment.INITIATED
