import uuid

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Listing",
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
                    "owner_id",
                    models.UUIDField(
                        db_index=True,
                        help_text="UUID of the user who owns this listing",
                    ),
                ),
                ("title", models.CharField(max_length=200)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("active", "Active"),
                            ("paused", "Paused"),
                            ("archived", "Archived"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=20,
                    ),
                ),
                (
                    "booking_mode",
                    models.CharField(
                        choices=[
                            ("request", "Request to Book"),
                            ("instant", "Instant Book"),
                        ],
                        default="request",
                        max_length=20,
                    ),
                ),
                (
                    "daily_price_cents",
                    models.PositiveBigIntegerField(
                        help_text="Price per night in smallest currency unit",
                    ),
                ),
                (
                    "deposit_type",
                    models.CharField(
                        choices=[
                            ("none", "No Deposit"),
                            ("fixed", "Fixed Amount"),
                            ("percentage", "Percentage of Rental"),
                        ],
                        default="none",
                        max_length=20,
                    ),
                ),
                (
                    "deposit_value",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Cents for a fixed deposit, whole percent for a percentage deposit",
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
                    "max_guests",
                    models.PositiveSmallIntegerField(
                        default=1,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(100),
                        ],
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "abstract": False,
            },
        ),
        migrations.AddConstraint(
            model_name="listing",
            constraint=models.CheckConstraint(
                condition=models.Q(("daily_price_cents__gt", 0)),
                name="listing_daily_price_positive",
            ),
        ),
        migrations.AddConstraint(
            model_name="listing",
            constraint=models.CheckConstraint(
                condition=models.Q(
                    models.Q(("deposit_type", "percentage"), _negated=True),
                    ("deposit_value__lte", 100),
                    _connector="OR",
                ),
                name="listing_deposit_percentage_max_100",
            ),
        ),
    ]
