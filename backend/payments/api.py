import logging
from urllib.parse import urlencode

import stripe
from django.conf import settings
from django.http import HttpResponseRedirect
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.exceptions import PaymentNotFound
from payments.services import gateway, reconciliation

from .serializers import (
    InvoiceUrlSerializer,
    PaymentUrlSerializer,
    TransactionCallbackSerializer,
)

logger = logging.getLogger(__name__)


def _frontend_redirect(outcome: str, *, transaction_id: str, message: str) -> HttpResponseRedirect:
    query = urlencode(
        {
            "transaction_id": transaction_id,
            "message": message,
            "status": outcome,
        }
    )
    return HttpResponseRedirect(f"{settings.FRONTEND_URL.rstrip('/')}/payment/{outcome}?{query}")


class InitPaymentView(APIView):
    """Start the hosted checkout for a booking and hand back the gateway URL."""

    permission_classes = [IsAuthenticated]

    def post(self, request, booking_id, *args, **kwargs):
        try:
            result = reconciliation.init_payment(booking_id)
        except stripe.error.StripeError as exc:
            logger.exception("Failed to open gateway session for booking %s: %s", booking_id, exc)
            return Response({"detail": str(exc)}, status=status.HTTP_502_BAD_GATEWAY)

        serializer = PaymentUrlSerializer(result)
        return Response(serializer.data, status=status.HTTP_201_CREATED)


class PaymentCallbackView(APIView):
    """
    Landing endpoint for the gateway's browser redirect.

    Reconciles the transaction, then forwards the customer to the matching
    frontend page. Errors are rendered by DRF so the gateway can retry. A
    redirect that cannot be confirmed with the gateway is sent to the pending
    page untouched.
    """

    permission_classes: list = []
    authentication_classes: list = []
    outcome: str = ""
    operation_name: str = ""

    def _handle(self, request):
        transaction_id = request.query_params.get("transaction_id") or request.data.get("transaction_id")
        serializer = TransactionCallbackSerializer(data={"transaction_id": transaction_id})
        serializer.is_valid(raise_exception=True)
        transaction_id = serializer.validated_data["transaction_id"]

        if not self.confirm(request, transaction_id):
            logger.warning("Unconfirmed %s redirect for %s; leaving it to the webhook", self.outcome, transaction_id)
            return _frontend_redirect("pending", transaction_id=transaction_id, message="Payment Pending Confirmation")

        operation = getattr(reconciliation, self.operation_name)
        result = operation(transaction_id)
        return _frontend_redirect(self.outcome, transaction_id=transaction_id, message=result.message)

    def confirm(self, request, transaction_id: str) -> bool:
        return True

    def get(self, request, *args, **kwargs):
        return self._handle(request)

    def post(self, request, *args, **kwargs):
        return self._handle(request)


class PaymentSuccessView(PaymentCallbackView):
    outcome = "success"
    operation_name = "success_payment"

    def confirm(self, request, transaction_id: str) -> bool:
        session_id = request.query_params.get("session_id") or request.data.get("session_id")
        return gateway.confirm_checkout_paid(session_id=session_id, transaction_id=transaction_id)


class PaymentFailView(PaymentCallbackView):
    outcome = "fail"
    operation_name = "fail_payment"


class PaymentCancelView(PaymentCallbackView):
    outcome = "cancel"
    operation_name = "cancel_payment"


class InvoiceDownloadView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, payment_id, *args, **kwargs):
        invoice_url = reconciliation.get_invoice_download_url(payment_id)
        return Response(InvoiceUrlSerializer({"invoice_url": invoice_url}).data)


class StripePaymentWebhookView(APIView):
    """Receive Stripe Checkout events and reconcile the referenced payment."""

    permission_classes: list = []
    authentication_classes: list = []

    EVENT_OPERATIONS = {
        "checkout.session.completed": "success_payment",
        "checkout.session.async_payment_succeeded": "success_payment",
        "checkout.session.async_payment_failed": "fail_payment",
        "checkout.session.expired": "cancel_payment",
    }

    def post(self, request, *args, **kwargs):
        payload = request.body
        sig_header = request.META.get("HTTP_STRIPE_SIGNATURE")
        if not settings.STRIPE_WEBHOOK_SECRET:
            logger.error("Stripe webhook secret not configured.")
            return Response(status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        try:
            event = stripe.Webhook.construct_event(
                payload, sig_header, settings.STRIPE_WEBHOOK_SECRET
            )
        except ValueError:
            logger.warning("Invalid payload received on Stripe webhook.")
            return Response(status=status.HTTP_400_BAD_REQUEST)
        except stripe.error.SignatureVerificationError:
            logger.warning("Invalid Stripe signature.")
            return Response(status=status.HTTP_400_BAD_REQUEST)

        operation_name = self.EVENT_OPERATIONS.get(event["type"])
        if operation_name is None:
            return Response(status=status.HTTP_200_OK)

        data_object = event["data"]["object"]
        transaction_id = data_object.get("client_reference_id")
        if not transaction_id:
            logger.warning("Stripe event %s has no client_reference_id.", event["type"])
            return Response(status=status.HTTP_200_OK)

        # async payment methods complete later via async_payment_succeeded
        if event["type"] == "checkout.session.completed" and data_object.get("payment_status") != "paid":
            return Response(status=status.HTTP_200_OK)

        try:
            result = getattr(reconciliation, operation_name)(transaction_id)
        except PaymentNotFound:
            logger.warning("Stripe event %s references unknown payment %s.", event["type"], transaction_id)
            return Response(status=status.HTTP_200_OK)
        return Response({"success": result.success, "message": result.message}, status=status.HTTP_200_OK)
