from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Account holder who books tours; contact fields feed the payment gateway."""

    name = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=30, blank=True)
    address = models.CharField(max_length=255, blank=True)

    def __str__(self):
        return self.name or self.email or self.username

    @property
    def display_name(self) -> str:
        return self.name or self.get_full_name() or self.email
