"""
Django admin configuration for ledger models.

Ledger entries are append-only, so the entry admin is strictly
read-only. Account balances are computed on display.
"""

from django.contrib import admin

from .models import LedgerAccount, LedgerEntry


@admin.register(LedgerAccount)
class LedgerAccountAdmin(admin.ModelAdmin):
    """Admin configuration for LedgerAccount."""

    list_display = [
        "id",
        "type",
        "owner_id",
        "currency",
        "balance_display",
        "is_active",
        "created_at",
    ]
    list_filter = ["type", "currency", "is_active"]
    search_fields = ["id", "owner_id"]
    readonly_fields = ["id", "created_at", "balance_display"]
    ordering = ["-created_at"]

    @admin.display(description="Balance")
    def balance_display(self, obj: LedgerAccount) -> str:
        """Display the account balance formatted as currency."""
        cents = obj.get_balance()
        return f"{cents / 100:.2f} {obj.currency.upper()}"


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    """
    Admin configuration for LedgerEntry.

    Corrections are made by appending a compensating batch through
    LedgerService, never by editing rows here.
    """

    list_display = [
        "created_at",
        "batch_key",
        "sequence",
        "side",
        "transaction_type",
        "amount_display",
        "account",
        "booking_id",
    ]
    list_filter = ["side", "transaction_type", "account_type", "currency"]
    search_fields = ["id", "batch_key", "booking_id", "description"]
    readonly_fields = [
        "id",
        "created_at",
        "account",
        "account_type",
        "side",
        "transaction_type",
        "booking_id",
        "amount_cents",
        "currency",
        "description",
        "metadata",
        "created_by",
        "batch",
        "batch_key",
        "sequence",
    ]
    date_hierarchy = "created_at"
    ordering = ["-batch_id", "sequence"]

    @admin.display(description="Amount")
    def amount_display(self, obj: LedgerEntry) -> str:
        """Display the amount formatted as currency."""
        return f"{obj.amount_cents / 100:.2f} {obj.currency.upper()}"

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        return False
