"""
Django admin configuration for bookings.

Booking status is a protected FSM field and money fields are frozen
after the pending states, so bookings are read-only here; state
changes go through BookingService.
"""

from django.contrib import admin

from .models import Booking, BookingStateHistory


class BookingStateHistoryInline(admin.TabularInline):
    model = BookingStateHistory
    extra = 0
    can_delete = False
    fields = [
        "from_status",
        "to_status",
        "trigger",
        "actor_role",
        "actor_id",
        "created_at",
    ]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "listing",
        "renter_id",
        "start_date",
        "end_date",
        "status",
        "total_display",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = ["id", "renter_id", "listing__id", "listing__title"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [BookingStateHistoryInline]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    @admin.display(description="Total")
    def total_display(self, obj: Booking) -> str:
        return f"{obj.total_cents / 100:.2f} {obj.currency.upper()}"

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
