"""
Payment reconciliation: turn gateway outcomes into Payment/Booking state.

Every state-changing operation runs inside a single ``transaction.atomic()``
block, so the Payment and Booking transitions (and, on success, the invoice
URL) commit together or not at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from django.db import transaction
from django.utils import timezone

from bookings.models import Booking
from payments.exceptions import (
    BadRequest,
    BookingNotFound,
    InvoiceNotFound,
    InvoiceUploadError,
    PaymentNotFound,
)
from payments.models import Payment

from .emails import send_invoice_email
from .gateway import create_gateway_session
from .invoices import build_invoice_data, render_invoice_pdf
from .storage import discard_upload, upload_buffer

logger = logging.getLogger(__name__)

INVOICE_FOLDER = "invoice"


@dataclass(frozen=True)
class ReconciliationResult:
    success: bool
    message: str


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def _lock_payment(transaction_id: str) -> Optional[Payment]:
    return Payment.objects.select_for_update().filter(transaction_id=transaction_id).first()


def init_payment(booking_id) -> Dict[str, str]:
    """Open a gateway session for the booking's payment and return its redirect URL."""
    payment = Payment.objects.filter(booking_id=booking_id).first()
    if payment is None:
        raise PaymentNotFound("Payment Not Found. You have not booked this tour")

    booking = Booking.objects.select_related("user").filter(pk=payment.booking_id).first()
    user = booking.user if booking else None
    if user is None:
        raise BadRequest("User not found")

    session = create_gateway_session(
        address=_clean(user.address),
        email=_clean(user.email),
        phone_number=_clean(user.phone),
        name=_clean(user.name),
        amount=payment.amount,
        transaction_id=payment.transaction_id,
    )

    payment_url = getattr(session, "url", None)
    if not payment_url:
        raise BadRequest("Payment URL not generated")

    logger.info("Gateway session %s opened for payment %s", getattr(session, "id", "?"), payment.transaction_id)
    return {"payment_url": payment_url}


def success_payment(transaction_id: str) -> ReconciliationResult:
    uploaded = None
    try:
        with transaction.atomic():
            payment = _lock_payment(transaction_id)
            if payment is None:
                raise PaymentNotFound("Payment not found")

            if payment.status == Payment.PAID and payment.invoice_url:
                logger.info("Payment %s already completed; skipping invoice pipeline", transaction_id)
                return ReconciliationResult(success=True, message="Payment already completed")

            payment.status = Payment.PAID
            payment.save(update_fields=["status", "updated_at"])

            booking = (
                Booking.objects.select_for_update()
                .select_related("trip", "user")
                .filter(pk=payment.booking_id)
                .first()
            )
            if booking is None:
                raise BookingNotFound("Booking not found")
            booking.status = Booking.COMPLETE
            booking.save(update_fields=["status", "updated_at"])

            invoice = build_invoice_data(payment=payment, booking=booking)
            pdf_bytes = render_invoice_pdf(invoice)

            try:
                uploaded = upload_buffer(pdf_bytes, folder=INVOICE_FOLDER, filename="invoice.pdf")
            except Exception as exc:
                raise InvoiceUploadError() from exc
            if not uploaded.url:
                raise InvoiceUploadError()

            payment.invoice_url = uploaded.url
            payment.save(update_fields=["invoice_url", "updated_at"])
            send_invoice_email(booking=booking, invoice=invoice, pdf_bytes=pdf_bytes)
    except Exception as exc:
        # covers the commit as well as the block body
        if uploaded is not None:
            discard_upload(uploaded)
        logger.warning("Payment success for %s rolled back: %s", transaction_id, exc)
        raise

    logger.info("Payment %s completed; invoice stored at %s", transaction_id, uploaded.url)
    return ReconciliationResult(success=True, message="Payment Completed Successfully")


def _close_payment(transaction_id: str, *, payment_status: str, booking_status: str) -> bool:
    with transaction.atomic():
        payment = _lock_payment(transaction_id)
        if payment is None:
            logger.info("No payment matches transaction %s; nothing to mark %s", transaction_id, payment_status)
            return False

        payment.status = payment_status
        payment.save(update_fields=["status", "updated_at"])
        Booking.objects.filter(pk=payment.booking_id).update(status=booking_status, updated_at=timezone.now())

    logger.info("Payment %s marked %s", transaction_id, payment_status)
    return True


def fail_payment(transaction_id: str) -> ReconciliationResult:
    _close_payment(transaction_id, payment_status=Payment.FAILED, booking_status=Booking.FAILED)
    return ReconciliationResult(success=False, message="Payment Failed")


def cancel_payment(transaction_id: str) -> ReconciliationResult:
    _close_payment(transaction_id, payment_status=Payment.CANCELLED, booking_status=Booking.CANCEL)
    return ReconciliationResult(success=False, message="Payment Cancelled")


def get_invoice_download_url(payment_id) -> str:
    invoice_url = Payment.objects.filter(pk=payment_id).values_list("invoice_url", flat=True).first()
    if invoice_url is None:
        raise PaymentNotFound("Payment not found")
    if not invoice_url:
        raise InvoiceNotFound("No invoice found")
    return invoice_url
