"""
Payment admin configuration.

This file imports admin configurations from the ledger submodule
and registers deposit, freeze and payout models with the Django admin.

Deposit holds and payouts change state only through their services
(the FSM status fields are protected), so state and money fields are
read-only here.
"""

from django.contrib import admin

from payments.ledger.admin import LedgerAccountAdmin, LedgerEntryAdmin
from payments.models import DepositHold, FundFreeze, Payout, PayoutItem

__all__ = [
    "LedgerAccountAdmin",
    "LedgerEntryAdmin",
    "DepositHoldAdmin",
    "FundFreezeAdmin",
    "PayoutAdmin",
]


def _format_cents(cents: int | None, currency: str) -> str:
    if cents is None:
        return "-"
    return f"{cents / 100:.2f} {currency.upper()}"


@admin.register(DepositHold)
class DepositHoldAdmin(admin.ModelAdmin):
    """
    Admin configuration for DepositHold.

    Holds are created by the deposit hold manager when a rental starts
    and should not be manually modified through admin.
    """

    list_display = [
        "id",
        "booking",
        "amount_display",
        "status",
        "captured_display",
        "held_at",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = ["id", "booking__id"]
    readonly_fields = [
        "id",
        "booking",
        "amount_cents",
        "currency",
        "status",
        "captured_amount_cents",
        "held_at",
        "released_at",
        "captured_at",
        "created_at",
        "updated_at",
        "version",
    ]
    ordering = ["-created_at"]

    @admin.display(description="Amount")
    def amount_display(self, obj: DepositHold) -> str:
        return _format_cents(obj.amount_cents, obj.currency)

    @admin.display(description="Captured")
    def captured_display(self, obj: DepositHold) -> str:
        return _format_cents(obj.captured_amount_cents, obj.currency)

    def has_add_permission(self, request):
        return False


@admin.register(FundFreeze)
class FundFreezeAdmin(admin.ModelAdmin):
    """Admin configuration for FundFreeze."""

    list_display = [
        "id",
        "scope",
        "booking_id",
        "ledger_entry",
        "deposit_hold",
        "lifted_at",
        "created_at",
    ]
    list_filter = ["scope", "created_at"]
    search_fields = ["id", "booking_id", "reason"]
    readonly_fields = ["id", "created_at", "updated_at", "lifted_at"]
    ordering = ["-created_at"]


class PayoutItemInline(admin.TabularInline):
    model = PayoutItem
    extra = 0
    can_delete = False
    fields = ["ledger_entry", "amount_cents", "is_active", "created_at"]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payout.

    Provides visibility into payout status and the entries each covers.
    """

    list_display = [
        "id",
        "owner_id",
        "amount_display",
        "status",
        "paid_at",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = ["id", "owner_id"]
    readonly_fields = [
        "id",
        "owner_id",
        "amount_cents",
        "currency",
        "status",
        "paid_at",
        "failed_at",
        "failure_reason",
        "created_at",
        "updated_at",
        "version",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [PayoutItemInline]

    @admin.display(description="Amount")
    def amount_display(self, obj: Payout) -> str:
        return _format_cents(obj.amount_cents, obj.currency)

    def has_add_permission(self, request):
        return False
