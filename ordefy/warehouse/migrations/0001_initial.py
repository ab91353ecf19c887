import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("account", "0001_initial"),
        ("order", "0001_initial"),
        ("product", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PickingSession",
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
                    "code",
                    models.CharField(help_text="e.g. PREP-18012026-001", max_length=32),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("picking", "Picking"),
                            ("packing", "Packing"),
                            ("completed", "Completed"),
                            ("abandoned", "Abandoned"),
                        ],
                        default="picking",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "picking_completed_at",
                    models.DateTimeField(blank=True, null=True),
                ),
                (
                    "packing_started_at",
                    models.DateTimeField(blank=True, null=True),
                ),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("abandoned_at", models.DateTimeField(blank=True, null=True)),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="picking_sessions",
                        to="account.store",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ("-created_at", "pk"),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("store", "code"),
                        name="warehouse_pickingsession_code_uniq",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="PickingSessionOrder",
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
                ("added_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="picking_session_orders",
                        to="order.order",
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="session_orders",
                        to="warehouse.pickingsession",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("session", "order"),
                        name="warehouse_pickingsessionorder_session_order_uniq",
                    )
                ],
            },
        ),
        migrations.AddField(
            model_name="pickingsession",
            name="orders",
            field=models.ManyToManyField(
                related_name="picking_sessions",
                through="warehouse.PickingSessionOrder",
                to="order.order",
            ),
        ),
        migrations.CreateModel(
            name="PickingSessionItem",
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
                ("total_quantity_needed", models.PositiveIntegerField()),
                ("quantity_picked", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="picking_session_items",
                        to="product.product",
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="warehouse.pickingsession",
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="picking_session_items",
                        to="product.productvariant",
                    ),
                ),
            ],
            options={
                "ordering": ("pk",),
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("total_quantity_needed__gt", 0)),
                        name="warehouse_pickingsessionitem_needed_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("quantity_picked__lte", models.F("total_quantity_needed"))
                        ),
                        name="warehouse_pickingsessionitem_picked_within_needed",
                    ),
                ],
            },
        ),
    ]
