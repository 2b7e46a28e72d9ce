from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from accounts.models import User
from bookings.models import Booking
from payments.models import Payment
from trips.models import Trip


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path
    return tmp_path


@pytest.fixture
def user(db):
    return User.objects.create_user(
        username="guest@example.com",
        email="guest@example.com",
        password="examplepass",
        name="Gina Guest",
        phone="+15550100",
        address="12 Alpine Way",
    )


@pytest.fixture
def trip(db):
    start = (timezone.now() + timedelta(days=14)).replace(hour=8, minute=0, second=0, microsecond=0)
    return Trip.objects.create(
        title="Glacier Intro",
        location="Mt. Baker",
        start=start,
        end=start + timedelta(days=1),
    )


@pytest.fixture
def booking(user, trip):
    return Booking.objects.create(user=user, trip=trip, guest_count=2, status=Booking.PENDING)


@pytest.fixture
def payment(booking):
    return Payment.objects.create(
        booking=booking,
        transaction_id="TX1",
        amount=Decimal("100.00"),
        status=Payment.INITIATED,
    )
