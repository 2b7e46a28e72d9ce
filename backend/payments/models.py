from django.conf import settings
from django.db import models


def _default_currency():
    return settings.PAYMENT_CURRENCY


class Payment(models.Model):
    INITIATED = "INITIATED"
    PAID = "PAID"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    STATUSES = [
        (INITIATED, "Initiated"),
        (PAID, "Paid"),
        (FAILED, "Failed"),
        (CANCELLED, "Cancelled"),
    ]

    booking = models.OneToOneField('bookings.Booking', on_delete=models.CASCADE, related_name='payment')
    transaction_id = models.CharField(max_length=100, unique=True)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=10, default=_default_currency)
    status = models.CharField(max_length=12, choices=STATUSES, default=INITIATED)
    invoice_url = models.URLField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', 'id']

    def __str__(self):
        return f"{self.transaction_id} ({self.status})"
