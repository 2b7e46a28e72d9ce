from django.core.exceptions import ValidationError
from django.db import models


class Trip(models.Model):
    """A bookable tour."""

    title = models.CharField(max_length=200)
    location = models.CharField(max_length=200, blank=True)
    start = models.DateTimeField(null=True, blank=True)
    end = models.DateTimeField(null=True, blank=True)
    description = models.TextField(blank=True)

    class Meta:
        ordering = ["start", "id"]

    def __str__(self):
        if self.location:
            return f"{self.title} @ {self.location}"
        return self.title

    def clean(self):
        super().clean()
        if self.start and self.end and self.end <= self.start:
            raise ValidationError({"end": "End time must be after the start time."})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
