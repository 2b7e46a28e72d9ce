import types
from urllib.parse import parse_qs, urlsplit

import pytest
import stripe
from django.core import mail
from django.urls import reverse
from rest_framework.test import APIClient

from bookings.models import Booking
from payments.models import Payment


@pytest.fixture
def auth_client(user):
    client = APIClient()
    client.force_authenticate(user)
    return client


def _redirect_query(response):
    parts = urlsplit(response["Location"])
    return parts, {key: values[0] for key, values in parse_qs(parts.query).items()}


@pytest.mark.django_db
def test_init_payment_returns_payment_url(auth_client, booking, payment):
    response = auth_client.post(reverse("payment-init", args=[booking.id]))

    assert response.status_code == 201
    assert response.json()["payment_url"].startswith("https://app.tours.test/payments/preview?")


@pytest.mark.django_db
def test_init_payment_requires_authentication(booking, payment):
    response = APIClient().post(reverse("payment-init", args=[booking.id]))

    assert response.status_code == 401


@pytest.mark.django_db
def test_init_payment_missing_payment_is_404(auth_client, booking):
    response = auth_client.post(reverse("payment-init", args=[booking.id]))

    assert response.status_code == 404
    assert response.json()["detail"] == "Payment Not Found. You have not booked this tour"


@pytest.mark.django_db
def test_init_payment_gateway_error_is_502(monkeypatch, auth_client, booking, payment):
    def failing_session(**kwargs):
        raise stripe.error.APIConnectionError("network down")

    monkeypatch.setattr("payments.services.reconciliation.create_gateway_session", failing_session)

    response = auth_client.post(reverse("payment-init", args=[booking.id]))

    assert response.status_code == 502
    assert "network down" in response.json()["detail"]


@pytest.mark.django_db
def test_init_payment_without_gateway_url_is_400(monkeypatch, auth_client, booking, payment):
    monkeypatch.setattr(
        "payments.services.reconciliation.create_gateway_session",
        lambda **kwargs: types.SimpleNamespace(id="cs_test_1", url=""),
    )

    response = auth_client.post(reverse("payment-init", args=[booking.id]))

    assert response.status_code == 400
    assert response.json()["detail"] == "Payment URL not generated"


@pytest.mark.django_db
def test_success_callback_redirects_to_frontend(booking, payment):
    response = APIClient().get(reverse("payment-success"), {"transaction_id": "TX1"})

    assert response.status_code == 302
    parts, query = _redirect_query(response)
    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://app.tours.test/payment/success"
    assert query == {
        "transaction_id": "TX1",
        "message": "Payment Completed Successfully",
        "status": "success",
    }
    booking.refresh_from_db()
    assert booking.status == Booking.COMPLETE
    assert len(mail.outbox) == 1


@pytest.mark.django_db
def test_success_callback_accepts_form_post(booking, payment):
    response = APIClient().post(reverse("payment-success"), {"transaction_id": "TX1"})

    assert response.status_code == 302
    payment.refresh_from_db()
    assert payment.status == Payment.PAID


@pytest.mark.django_db
def test_success_callback_unknown_transaction_is_404(booking, payment):
    response = APIClient().get(reverse("payment-success"), {"transaction_id": "TX-unknown"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Payment not found"


@pytest.mark.django_db
def test_callback_without_transaction_id_is_400():
    response = APIClient().get(reverse("payment-fail"))

    assert response.status_code == 400
    assert "transaction_id" in response.json()


@pytest.mark.django_db
def test_fail_callback_redirects_with_failed_message(booking, payment):
    response = APIClient().get(reverse("payment-fail"), {"transaction_id": "TX1"})

    assert response.status_code == 302
    parts, query = _redirect_query(response)
    assert parts.path == "/payment/fail"
    assert query["message"] == "Payment Failed"
    assert query["status"] == "fail"
    booking.refresh_from_db()
    assert booking.status == "FAILED"


@pytest.mark.django_db
def test_cancel_callback_for_unknown_transaction_still_redirects(booking, payment):
    response = APIClient().get(reverse("payment-cancel"), {"transaction_id": "TX-unknown"})

    assert response.status_code == 302
    parts, query = _redirect_query(response)
    assert parts.path == "/payment/cancel"
    assert query["message"] == "Payment Cancelled"
    booking.refresh_from_db()
    assert booking.status == Booking.PENDING


@pytest.mark.django_db
def test_invoice_download_returns_url(auth_client, payment):
    payment.invoice_url = "https://cdn.tours.test/media/invoice/abc-invoice.pdf"
    payment.save(update_fields=["invoice_url"])

    response = auth_client.get(reverse("payment-invoice", args=[payment.id]))

    assert response.status_code == 200
    assert response.json() == {"invoice_url": payment.invoice_url}


@pytest.mark.django_db
def test_invoice_download_without_invoice_is_404(auth_client, payment):
    response = auth_client.get(reverse("payment-invoice", args=[payment.id]))

    assert response.status_code == 404
    assert response.json()["detail"] == "No invoice found"


@pytest.mark.django_db
def test_invoice_download_missing_payment_is_404(auth_client, payment):
    response = auth_client.get(reverse("payment-invoice", args=[payment.id + 1000]))

    assert response.status_code == 404
    assert response.json()["detail"] == "Payment not found"


@pytest.fixture
def live_stripe(monkeypatch, settings):
    settings.STRIPE_USE_STUB = False
    settings.STRIPE_SECRET_KEY = "sk_test_123"
    sessions = {}

    def fake_retrieve(session_id, **params):
        if session_id not in sessions:
            raise stripe.error.InvalidRequestError(f"No such checkout.session: '{session_id}'", "id")
        return sessions[session_id]

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", staticmethod(fake_retrieve))
    monkeypatch.setattr(stripe, "api_key", stripe.api_key)
    return sessions


@pytest.mark.django_db
def test_success_callback_reconciles_paid_checkout_session(live_stripe, booking, payment):
    live_stripe["cs_paid"] = {"id": "cs_paid", "client_reference_id": "TX1", "payment_status": "paid"}

    response = APIClient().get(reverse("payment-success"), {"transaction_id": "TX1", "session_id": "cs_paid"})

    assert response.status_code == 302
    _, query = _redirect_query(response)
    assert query["message"] == "Payment Completed Successfully"
    payment.refresh_from_db()
    assert payment.status == Payment.PAID


@pytest.mark.django_db
@pytest.mark.parametrize(
    "params",
    [
        {"transaction_id": "TX1"},
        {"transaction_id": "TX1", "session_id": "cs_forged"},
        {"transaction_id": "TX1", "session_id": "cs_unpaid"},
        {"transaction_id": "TX1", "session_id": "cs_other"},
    ],
)
def test_unconfirmed_success_redirect_leaves_payment_initiated(live_stripe, booking, payment, params):
    live_stripe["cs_unpaid"] = {"id": "cs_unpaid", "client_reference_id": "TX1", "payment_status": "unpaid"}
    live_stripe["cs_other"] = {"id": "cs_other", "client_reference_id": "TX2", "payment_status": "paid"}

    response = APIClient().get(reverse("payment-success"), params)

    assert response.status_code == 302
    parts, query = _redirect_query(response)
    assert parts.path == "/payment/pending"
    assert query["status"] == "pending"
    payment.refresh_from_db()
    booking.refresh_from_db()
    assert payment.status == Payment.INITIATED
    assert payment.invoice_url == ""
    assert booking.status == Booking.PENDING
    assert mail.outbox == []
