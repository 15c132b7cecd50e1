"""Django admin configuration for listings."""

from django.contrib import admin

from .models import Listing


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = [
        "title",
        "owner_id",
        "status",
        "booking_mode",
        "daily_price_cents",
        "deposit_type",
        "currency",
        "created_at",
    ]
    list_filter = ["status", "booking_mode", "deposit_type", "currency"]
    search_fields = ["id", "title", "owner_id"]
    readonly_fields = ["id", "created_at", "updated_at"]
