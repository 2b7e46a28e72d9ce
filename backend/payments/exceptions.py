from rest_framework import status
from rest_framework.exceptions import APIException


class PaymentServiceError(APIException):
    """Base error for payment workflows; DRF renders it with its status code."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Payment processing failed."
    default_code = "payment_error"


class NotFoundError(PaymentServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class PaymentNotFound(NotFoundError):
    default_detail = "Payment not found"
    default_code = "payment_not_found"


class BookingNotFound(NotFoundError):
    default_detail = "Booking not found"
    default_code = "booking_not_found"


class InvoiceNotFound(NotFoundError):
    default_detail = "No invoice found"
    default_code = "invoice_not_found"


class BadRequest(PaymentServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Bad request."
    default_code = "bad_request"


class InvoiceUploadError(PaymentServiceError):
    default_detail = "Error uploading invoice"
    default_code = "invoice_upload_failed"
