import uuid

import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("listings", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
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
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each save",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "renter_id",
                    models.UUIDField(db_index=True, help_text="UUID of the renting user"),
                ),
                ("start_date", models.DateField()),
                ("end_date", models.DateField(help_text="Exclusive: the checkout day")),
                ("actual_start_at", models.DateTimeField(blank=True, null=True)),
                ("actual_end_at", models.DateTimeField(blank=True, null=True)),
                ("guest_count", models.PositiveSmallIntegerField(default=1)),
                ("base_price_cents", models.PositiveBigIntegerField()),
                ("platform_fee_cents", models.PositiveBigIntegerField(default=0)),
                ("service_fee_cents", models.PositiveBigIntegerField(default=0)),
                (
                    "deposit_cents",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Security deposit; not part of total_cents",
                    ),
                ),
                ("total_cents", models.PositiveBigIntegerField()),
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
                            ("pending_owner_approval", "Pending Owner Approval"),
                            ("pending_payment", "Pending Payment"),
                            ("confirmed", "Confirmed"),
                            ("in_progress", "In Progress"),
                            ("pending_return_inspection", "Pending Return Inspection"),
                            ("completed", "Completed"),
                            ("rejected", "Rejected"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="pending_owner_approval",
                        help_text="Current state of the booking (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("payment_attempts", models.PositiveSmallIntegerField(default=0)),
                ("last_payment_error", models.TextField(blank=True, default="")),
                (
                    "idempotency_key",
                    models.CharField(
                        blank=True,
                        help_text="Client-supplied key; repeating it returns the same booking",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="listings.listing",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["listing", "status"],
                        name="bookings_bo_listing_4c1f0a_idx",
                    ),
                    models.Index(
                        fields=["listing", "start_date", "end_date"],
                        name="bookings_bo_listing_9b2e7d_idx",
                    ),
                    models.Index(
                        fields=["status", "created_at"],
                        name="bookings_bo_status_5d8a3c_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("start_date__lt", models.F("end_date"))),
                        name="booking_start_before_end",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            (
                                "total_cents",
                                models.F("base_price_cents")
                                + models.F("platform_fee_cents")
                                + models.F("service_fee_cents"),
                            )
                        ),
                        name="booking_total_matches_components",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("guest_count__gte", 1)),
                        name="booking_guest_count_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BookingStateHistory",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "from_status",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("pending_owner_approval", "Pending Owner Approval"),
                            ("pending_payment", "Pending Payment"),
                            ("confirmed", "Confirmed"),
                            ("in_progress", "In Progress"),
                            ("pending_return_inspection", "Pending Return Inspection"),
                            ("completed", "Completed"),
                            ("rejected", "Rejected"),
                            ("cancelled", "Cancelled"),
                        ],
                        help_text="Null for the creation row",
                        max_length=32,
                        null=True,
                    ),
                ),
                (
                    "to_status",
                    models.CharField(
                        choices=[
                            ("pending_owner_approval", "Pending Owner Approval"),
                            ("pending_payment", "Pending Payment"),
                            ("confirmed", "Confirmed"),
                            ("in_progress", "In Progress"),
                            ("pending_return_inspection", "Pending Return Inspection"),
                            ("completed", "Completed"),
                            ("rejected", "Rejected"),
                            ("cancelled", "Cancelled"),
                        ],
                        max_length=32,
                    ),
                ),
                (
                    "trigger",
                    models.CharField(
                        choices=[
                            ("create", "Create"),
                            ("approve", "Approve"),
                            ("reject", "Reject"),
                            ("payment_succeeded", "Payment Succeeded"),
                            ("payment_failed", "Payment Failed"),
                            ("cancel", "Cancel"),
                            ("start", "Start Rental"),
                            ("request_return", "Request Return"),
                            ("approve_return", "Approve Return"),
                            ("expire", "Expire"),
                            ("auto_approve_return", "Auto-approve Return"),
                        ],
                        max_length=32,
                    ),
                ),
                ("actor_id", models.UUIDField(blank=True, null=True)),
                (
                    "actor_role",
                    models.CharField(
                        choices=[
                            ("renter", "Renter"),
                            ("owner", "Owner"),
                            ("system", "System"),
                        ],
                        max_length=10,
                    ),
                ),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "created_at",
                    models.DateTimeField(
                        db_index=True, default=django.utils.timezone.now
                    ),
                ),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="state_history",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "booking state history",
                "ordering": ["id"],
            },
        ),
    ]
