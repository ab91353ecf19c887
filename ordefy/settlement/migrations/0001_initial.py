from decimal import Decimal

import django.db.models.deletion

from django.conf import settings
from django.db import migrations, models


def amount_field(**kwargs):
    kwargs.setdefault("default", Decimal("0"))
    return models.DecimalField(decimal_places=2, max_digits=12, **kwargs)


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("account", "0001_initial"),
        ("order", "0001_initial"),
        ("shipping", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="DailySettlement",
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
                ("settlement_code", models.CharField(max_length=32)),
                ("settlement_date", models.DateField()),
                ("currency", models.CharField(default="PYG", max_length=3)),
                ("total_dispatched", models.PositiveIntegerField(default=0)),
                ("total_delivered", models.PositiveIntegerField(default=0)),
                ("total_not_delivered", models.PositiveIntegerField(default=0)),
                ("total_cod_delivered", models.PositiveIntegerField(default=0)),
                ("total_prepaid_delivered", models.PositiveIntegerField(default=0)),
                ("total_cod_expected", amount_field()),
                ("total_cod_collected", amount_field()),
                ("total_carrier_fees", amount_field()),
                ("failed_attempt_fee", amount_field()),
                (
                    "net_receivable",
                    amount_field(
                        help_text=(
                            "Collected cash minus carrier fees; "
                            "negative if the store owes"
                        )
                    ),
                ),
                ("amount_paid", amount_field()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("partial", "Partially paid"),
                            ("paid", "Paid"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "carrier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="daily_settlements",
                        to="shipping.carrier",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="daily_settlements",
                        to="account.store",
                    ),
                ),
            ],
            options={
                "ordering": ("-settlement_date", "pk"),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("store", "settlement_code"),
                        name="settlement_dailysettlement_code_uniq",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="DispatchSession",
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
                ("session_code", models.CharField(max_length=32)),
                ("dispatch_date", models.DateField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("dispatched", "Dispatched"),
                            ("settled", "Settled"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="dispatched",
                        max_length=16,
                    ),
                ),
                ("total_orders", models.PositiveIntegerField(default=0)),
                ("total_cod_expected", amount_field()),
                ("total_prepaid", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("settled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "carrier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="dispatch_sessions",
                        to="shipping.carrier",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "daily_settlement",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="dispatch_sessions",
                        to="settlement.dailysettlement",
                    ),
                ),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="dispatch_sessions",
                        to="account.store",
                    ),
                ),
            ],
            options={
                "ordering": ("-dispatch_date", "pk"),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("store", "session_code"),
                        name="settlement_dispatchsession_code_uniq",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="DispatchSessionOrder",
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
                ("order_number", models.CharField(max_length=64)),
                ("delivery_zone", models.CharField(blank=True, max_length=255)),
                ("total_price", amount_field()),
                ("is_cod", models.BooleanField(default=True)),
                ("carrier_fee", amount_field()),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="dispatch_session_orders",
                        to="order.order",
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="session_orders",
                        to="settlement.dispatchsession",
                    ),
                ),
            ],
            options={
                "ordering": ("pk",),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("session", "order"),
                        name="settlement_dispatchsessionorder_session_order_uniq",
                    )
                ],
            },
        ),
    ]
