from django.urls import path

from .api import (
    InitPaymentView,
    InvoiceDownloadView,
    PaymentCancelView,
    PaymentFailView,
    PaymentSuccessView,
)

urlpatterns = [
    path("init/<int:booking_id>/", InitPaymentView.as_view(), name="payment-init"),
    path("success/", PaymentSuccessView.as_view(), name="payment-success"),
    path("fail/", PaymentFailView.as_view(), name="payment-fail"),
    path("cancel/", PaymentCancelView.as_view(), name="payment-cancel"),
    path("<int:payment_id>/invoice/", InvoiceDownloadView.as_view(), name="payment-invoice"),
]
