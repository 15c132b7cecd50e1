"""
Record ledger batches in their own table.

Each batch gets an auto-increment id so entry history can be ordered by
the order batches were appended, even when two batches share a
timestamp. Existing entries are grouped by batch_key into batches
numbered by their posting time.
"""

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models
from django.db.models import Min


def backfill_batches(apps, schema_editor):
    LedgerBatch = apps.get_model("payments", "LedgerBatch")
    LedgerEntry = apps.get_model("payments", "LedgerEntry")

    keys = (
        LedgerEntry.objects.values("batch_key")
        .annotate(posted_at=Min("created_at"))
        .order_by("posted_at", "batch_key")
    )
    for row in keys:
        first = (
            LedgerEntry.objects.filter(batch_key=row["batch_key"])
            .order_by("sequence")
            .first()
        )
        batch = LedgerBatch.objects.create(
            key=row["batch_key"],
            created_by=first.created_by,
            created_at=row["posted_at"],
        )
        LedgerEntry.objects.filter(batch_key=row["batch_key"]).update(batch=batch)


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0002_add_payout_sweep_schedule"),
    ]

    operations = [
        migrations.CreateModel(
            name="LedgerBatch",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                (
                    "key",
                    models.CharField(
                        help_text="Idempotency key of this batch",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "created_by",
                    models.CharField(
                        blank=True,
                        help_text="Identifier of service/user that appended this batch",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        help_text="Posting time of this batch",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "ledger batches",
                "ordering": ["id"],
            },
        ),
        migrations.AddField(
            model_name="ledgerentry",
            name="batch",
            field=models.ForeignKey(
                help_text="Batch this entry was appended in",
                null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="entries",
                to="payments.ledgerbatch",
            ),
        ),
        migrations.RunPython(backfill_batches, migrations.RunPython.noop),
        migrations.AlterField(
            model_name="ledgerentry",
            name="batch",
            field=models.ForeignKey(
                help_text="Batch this entry was appended in",
                on_delete=django.db.models.deletion.PROTECT,
                related_name="entries",
                to="payments.ledgerbatch",
            ),
        ),
        migrations.AlterModelOptions(
            name="ledgerentry",
            options={
                "ordering": ["batch_id", "sequence"],
                "verbose_name_plural": "ledger entries",
            },
        ),
    ]
