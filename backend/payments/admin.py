from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("transaction_id", "booking", "amount", "currency", "status", "updated_at")
    list_filter = ("status", "currency")
    search_fields = ("transaction_id", "booking__user__email", "booking__trip__title")
    readonly_fields = ("transaction_id", "invoice_url", "created_at", "updated_at")
