from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class TourUserAdmin(UserAdmin):
    list_display = ("username", "email", "name", "phone", "is_staff")
    search_fields = ("username", "email", "name", "phone")
    fieldsets = UserAdmin.fieldsets + (
        ("Contact", {"fields": ("name", "phone", "address")}),
    )
