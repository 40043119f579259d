import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="StockRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("quantity_on_hand", models.IntegerField(default=0)),
                ("reorder_level", models.IntegerField(default=0)),
                (
                    "product",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "ordering": ["-updated_at", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity_on_hand__gte=0), name="stock_on_hand_non_negative"
                    ),
                    models.CheckConstraint(condition=models.Q(reorder_level__gte=0), name="reorder_level_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity_change", models.IntegerField()),
                (
                    "reason",
                    models.CharField(
                        choices=[("receipt", "Receipt"), ("sale", "Sale"), ("adjustment", "Adjustment")],
                        max_length=16,
                    ),
                ),
                (
                    "reference_type",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("receipt", "Stock receipt"),
                            ("order", "Order"),
                            ("return", "Customer return"),
                            ("opening_balance", "Opening balance"),
                            ("manual", "Manual"),
                        ],
                        max_length=32,
                    ),
                ),
                ("reference_id", models.CharField(blank=True, db_index=True, max_length=120)),
                ("actor", models.CharField(max_length=150)),
                ("note", models.CharField(blank=True, max_length=200)),
                ("unit_cost", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["product", "created_at"], name="inv_move_product_created_idx"),
                    models.Index(fields=["reason", "created_at"], name="inv_move_reason_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=~models.Q(quantity_change=0), name="movement_non_zero"),
                    models.CheckConstraint(
                        condition=models.Q(unit_cost__gte=0) | models.Q(unit_cost__isnull=True),
                        name="movement_unit_cost_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReceiptIdempotencyKey",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("key", models.CharField(max_length=128, unique=True)),
                ("receipt_id", models.CharField(max_length=64)),
                ("request_hash", models.CharField(blank=True, max_length=64, null=True)),
                ("received_by", models.CharField(max_length=150)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "indexes": [models.Index(fields=["expires_at"], name="inv_receiptkey_expires_idx")],
            },
        ),
    ]
