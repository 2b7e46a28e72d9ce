from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("trip", "user", "guest_count", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("trip__title", "user__email", "user__name")
    readonly_fields = ("created_at", "updated_at")
