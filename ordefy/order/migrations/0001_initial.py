from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models

STATUS_CHOICES = [
    ("pending", "Pending"),
    ("contacted", "Contacted"),
    ("confirmed", "Confirmed"),
    ("in_preparation", "In preparation"),
    ("ready_to_ship", "Ready to ship"),
    ("shipped", "Shipped"),
    ("in_transit", "In transit"),
    ("delivered", "Delivered"),
    ("returned", "Returned"),
    ("cancelled", "Cancelled"),
    ("rejected", "Rejected"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("account", "0001_initial"),
        ("product", "0001_initial"),
        ("shipping", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
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
                (
                    "external_id",
                    models.CharField(blank=True, max_length=255, null=True),
                ),
                (
                    "sleeves_status",
                    models.CharField(
                        choices=STATUS_CHOICES,
                        default="pending",
                        help_text=(
                            "Fulfillment status; drives stock deduction and "
                            "restoration"
                        ),
                        max_length=32,
                    ),
                ),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text=(
                            "Incremented on every update; used for optimistic "
                            "concurrency"
                        ),
                    ),
                ),
                ("currency", models.CharField(default="PYG", max_length=3)),
                (
                    "total_price",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0"), max_digits=12
                    ),
                ),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("cod", "Cash on delivery"),
                            ("prepaid", "Prepaid"),
                            ("card", "Card"),
                            ("transfer", "Bank transfer"),
                        ],
                        default="prepaid",
                        max_length=32,
                    ),
                ),
                ("delivery_zone", models.CharField(blank=True, max_length=255)),
                (
                    "amount_collected",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=12, null=True
                    ),
                ),
                ("has_amount_discrepancy", models.BooleanField(default=False)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("delivery_notes", models.TextField(blank=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "carrier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to="shipping.carrier",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to="account.customer",
                    ),
                ),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="orders",
                        to="account.store",
                    ),
                ),
            ],
            options={
                "ordering": ("-created_at", "pk"),
                "indexes": [
                    models.Index(
                        fields=["store", "sleeves_status"],
                        name="order_order_store_status_idx",
                    ),
                    models.Index(
                        fields=["store", "order_number"],
                        name="order_order_store_number_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderLineItem",
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
                ("product_name", models.CharField(blank=True, max_length=255)),
                ("variant_name", models.CharField(blank=True, max_length=255)),
                ("sku", models.CharField(blank=True, max_length=255, null=True)),
                (
                    "external_product_id",
                    models.CharField(blank=True, max_length=255, null=True),
                ),
                (
                    "external_variant_id",
                    models.CharField(blank=True, max_length=255, null=True),
                ),
                (
                    "quantity",
                    models.PositiveIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                (
                    "unit_price",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0"), max_digits=12
                    ),
                ),
                (
                    "units_per_pack",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Pack size of the bundle at the time stock was deducted",
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                ("stock_deducted", models.BooleanField(default=False)),
                ("stock_deducted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "deducted_from",
                    models.CharField(
                        blank=True,
                        help_text=(
                            "Stock pool the deduction was taken from (product or "
                            "variant)"
                        ),
                        max_length=16,
                        null=True,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="line_items",
                        to="order.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_line_items",
                        to="product.product",
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_line_items",
                        to="product.productvariant",
                    ),
                ),
            ],
            options={
                "ordering": ("pk",),
                "indexes": [
                    models.Index(
                        fields=["order", "stock_deducted"],
                        name="order_line_order_deducted_idx",
                    )
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("units_per_pack__gte", 1)),
                        name="order_orderlineitem_units_per_pack_positive",
                    )
                ],
            },
        ),
    ]
