import uuid

import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.db import migrations, models

ACCOUNT_TYPE_CHOICES = [
    ("user_balance", "User Balance"),
    ("platform_revenue", "Platform Revenue"),
    ("deposit_escrow", "Deposit Escrow"),
    ("external_processor", "External Processor"),
]


def base_model_fields():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
    ]


def uuid_pk():
    return (
        "id",
        models.UUIDField(
            default=uuid.uuid4,
            editable=False,
            help_text="Unique identifier for this record",
            primary_key=True,
            serialize=False,
        ),
    )


def version_field():
    return (
        "version",
        models.PositiveIntegerField(
            default=1,
            help_text="Version for optimistic locking - incremented on each save",
        ),
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="LedgerAccount",
            fields=[
                uuid_pk(),
                (
                    "type",
                    models.CharField(
                        choices=ACCOUNT_TYPE_CHOICES,
                        help_text="Category of this account",
                        max_length=50,
                    ),
                ),
                (
                    "owner_id",
                    models.UUIDField(
                        blank=True,
                        db_index=True,
                        help_text="UUID of the user that owns this account",
                        null=True,
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="usd", help_text="ISO 4217 currency code", max_length=3
                    ),
                ),
                (
                    "allow_negative",
                    models.BooleanField(
                        default=False,
                        help_text="Whether this account is expected to carry a negative balance",
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        db_index=True,
                        default=True,
                        help_text="Whether this account accepts new entries",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this account was created",
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(
                        fields=["type", "currency"], name="payments_le_type_3a1b2c_idx"
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("type", "owner_id", "currency"),
                        name="unique_account_per_owner",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("owner_id__isnull", True)),
                        fields=("type", "currency"),
                        name="unique_platform_account_per_currency",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                uuid_pk(),
                (
                    "account_type",
                    models.CharField(
                        choices=ACCOUNT_TYPE_CHOICES,
                        help_text="Type of the account at posting time",
                        max_length=50,
                    ),
                ),
                (
                    "side",
                    models.CharField(
                        choices=[("debit", "Debit"), ("credit", "Credit")],
                        help_text="Debit or credit",
                        max_length=6,
                    ),
                ),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[
                            ("payment", "Payment"),
                            ("earnings", "Earnings"),
                            ("refund", "Refund"),
                            ("deposit_hold", "Deposit Hold"),
                            ("deposit_release", "Deposit Release"),
                            ("deposit_capture", "Deposit Capture"),
                            ("platform_fee", "Platform Fee"),
                            ("payout", "Payout"),
                        ],
                        help_text="Financial event this entry belongs to",
                        max_length=50,
                    ),
                ),
                (
                    "booking_id",
                    models.UUIDField(
                        blank=True,
                        db_index=True,
                        help_text="Booking this entry belongs to",
                        null=True,
                    ),
                ),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Amount in cents (always positive)"
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="usd", help_text="ISO 4217 currency code", max_length=3
                    ),
                ),
                (
                    "description",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Human-readable description of this entry",
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Arbitrary JSON data for extensibility",
                    ),
                ),
                (
                    "created_by",
                    models.CharField(
                        blank=True,
                        help_text="Identifier of service/user that created this entry",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "batch_key",
                    models.CharField(
                        db_index=True,
                        help_text="Idempotency key of the batch this entry was appended in",
                        max_length=255,
                    ),
                ),
                (
                    "sequence",
                    models.PositiveSmallIntegerField(
                        help_text="Position of this entry within its batch"
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                        help_text="Timestamp when this entry was recorded",
                    ),
                ),
                (
                    "account",
                    models.ForeignKey(
                        help_text="Account this entry is posted to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="entries",
                        to="payments.ledgeraccount",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "ledger entries",
                "ordering": ["created_at", "sequence"],
                "indexes": [
                    models.Index(
                        fields=["booking_id", "created_at"],
                        name="payments_le_booking_7e4d1a_idx",
                    ),
                    models.Index(
                        fields=["account", "side"],
                        name="payments_le_account_2f9c6b_idx",
                    ),
                    models.Index(
                        fields=["transaction_type"],
                        name="payments_le_transac_8d3e5f_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount_cents__gt", 0)),
                        name="ledger_entry_amount_cents_positive",
                    ),
                    models.UniqueConstraint(
                        fields=("batch_key", "sequence"),
                        name="unique_ledger_entry_batch_position",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DepositHold",
            fields=[
                *base_model_fields(),
                version_field(),
                uuid_pk(),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Deposit amount in smallest currency unit"
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="usd",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("held", "Held"),
                            ("released", "Released"),
                            ("captured", "Captured"),
                        ],
                        db_index=True,
                        default="held",
                        help_text="Current state of the hold (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "captured_amount_cents",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="Amount captured for a damage claim",
                        null=True,
                    ),
                ),
                (
                    "held_at",
                    models.DateTimeField(help_text="When the deposit was reserved"),
                ),
                ("released_at", models.DateTimeField(blank=True, null=True)),
                ("captured_at", models.DateTimeField(blank=True, null=True)),
                (
                    "booking",
                    models.ForeignKey(
                        help_text="Booking this deposit secures",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="deposit_holds",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "held")),
                        fields=("booking",),
                        name="unique_held_deposit_per_booking",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("amount_cents__gt", 0)),
                        name="deposit_hold_amount_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("captured_amount_cents__isnull", True),
                            models.Q(
                                ("captured_amount_cents__gt", 0),
                                ("captured_amount_cents__lte", models.F("amount_cents")),
                            ),
                            _connector="OR",
                        ),
                        name="deposit_hold_capture_within_amount",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payout",
            fields=[
                *base_model_fields(),
                version_field(),
                uuid_pk(),
                (
                    "owner_id",
                    models.UUIDField(db_index=True, help_text="Owner receiving the payout"),
                ),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Payout amount in smallest currency unit (e.g., cents)"
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="usd",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("requested", "Requested"),
                            ("paid", "Paid"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="requested",
                        help_text="Current state of the payout (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "paid_at",
                    models.DateTimeField(
                        blank=True, help_text="When payout was completed", null=True
                    ),
                ),
                (
                    "failed_at",
                    models.DateTimeField(
                        blank=True, help_text="When payout failed", null=True
                    ),
                ),
                (
                    "failure_reason",
                    models.TextField(
                        blank=True,
                        help_text="Detailed reason if payout failed",
                        null=True,
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Arbitrary JSON metadata for extensibility",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payout",
                "verbose_name_plural": "Payouts",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["owner_id", "status"],
                        name="payments_pa_owner_i_6c2a9e_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount_cents__gt", 0)),
                        name="payout_amount_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PayoutItem",
            fields=[
                *base_model_fields(),
                uuid_pk(),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Amount of the covered entry"
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        default=True,
                        help_text="False once the payout failed and the entry is eligible again",
                    ),
                ),
                (
                    "ledger_entry",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payout_items",
                        to="payments.ledgerentry",
                    ),
                ),
                (
                    "payout",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="items",
                        to="payments.payout",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_active", True)),
                        fields=("ledger_entry",),
                        name="unique_active_payout_per_entry",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="FundFreeze",
            fields=[
                *base_model_fields(),
                uuid_pk(),
                (
                    "scope",
                    models.CharField(
                        choices=[
                            ("booking", "Booking"),
                            ("entry", "Ledger Entry"),
                            ("hold", "Deposit Hold"),
                        ],
                        max_length=10,
                    ),
                ),
                ("booking_id", models.UUIDField(db_index=True)),
                ("reason", models.TextField(blank=True, default="")),
                (
                    "created_by",
                    models.CharField(blank=True, max_length=255, null=True),
                ),
                (
                    "lifted_at",
                    models.DateTimeField(blank=True, db_index=True, null=True),
                ),
                (
                    "deposit_hold",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="freezes",
                        to="payments.deposithold",
                    ),
                ),
                (
                    "ledger_entry",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="freezes",
                        to="payments.ledgerentry",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("deposit_hold__isnull", True),
                                ("ledger_entry__isnull", True),
                                ("scope", "booking"),
                            ),
                            models.Q(
                                ("deposit_hold__isnull", True),
                                ("ledger_entry__isnull", False),
                                ("scope", "entry"),
                            ),
                            models.Q(
                                ("deposit_hold__isnull", False),
                                ("ledger_entry__isnull", True),
                                ("scope", "hold"),
                            ),
                            _connector="OR",
                        ),
                        name="fund_freeze_target_matches_scope",
                    ),
                ],
            },
        ),
    ]
