from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Booking(models.Model):
    """Reservation of a tour by a user; its status follows the related payment."""

    PENDING = "PENDING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    CANCEL = "CANCEL"
    STATUSES = [
        (PENDING, "Pending"),
        (COMPLETE, "Complete"),
        (FAILED, "Failed"),
        (CANCEL, "Cancelled"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    trip = models.ForeignKey("trips.Trip", on_delete=models.PROTECT, related_name="bookings")
    guest_count = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "id"]

    def __str__(self):
        return f"{self.trip.title} booking ({self.guest_count})"
