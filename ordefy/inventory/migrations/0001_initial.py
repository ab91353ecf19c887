import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
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
        ("order", "0001_initial"),
        ("product", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="InventoryMovement",
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
                    "stock_source",
                    models.CharField(
                        choices=[("product", "Product"), ("variant", "Variant")],
                        default="product",
                        help_text="Counter that changed: the product or the variant",
                        max_length=16,
                    ),
                ),
                (
                    "quantity_change",
                    models.IntegerField(
                        help_text="Signed change of the counter in physical units"
                    ),
                ),
                ("stock_before", models.IntegerField()),
                ("stock_after", models.IntegerField()),
                (
                    "movement_type",
                    models.CharField(
                        choices=[
                            ("order_ready_to_ship", "Order ready to ship"),
                            ("order_shipped", "Order shipped"),
                            ("order_in_transit", "Order in transit"),
                            ("order_delivered", "Order delivered"),
                            ("order_cancelled", "Order cancelled"),
                            ("order_reverted", "Order reverted"),
                            ("inbound_receipt", "Inbound receipt"),
                            ("inbound_correction", "Inbound correction"),
                            ("return_accepted", "Return accepted"),
                            ("manual_adjustment", "Manual adjustment"),
                        ],
                        max_length=32,
                    ),
                ),
                (
                    "order_status_from",
                    models.CharField(blank=True, choices=STATUS_CHOICES, max_length=32),
                ),
                (
                    "order_status_to",
                    models.CharField(blank=True, choices=STATUS_CHOICES, max_length=32),
                ),
                ("notes", models.TextField(blank=True)),
                (
                    "created_at",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                        editable=False,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="inventory_movements",
                        to="order.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="inventory_movements",
                        to="product.product",
                    ),
                ),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="inventory_movements",
                        to="account.store",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        help_text="User who triggered the movement",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="inventory_movements",
                        to="product.productvariant",
                    ),
                ),
            ],
            options={
                "ordering": ("created_at", "pk"),
                "indexes": [
                    models.Index(
                        fields=["store", "created_at"],
                        name="inv_movement_store_created_idx",
                    ),
                    models.Index(
                        fields=["product", "stock_source"],
                        name="inv_movement_product_src_idx",
                    ),
                    models.Index(
                        fields=["order", "movement_type"],
                        name="inv_movement_order_type_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            (
                                "stock_after",
                                models.F("stock_before") + models.F("quantity_change"),
                            )
                        ),
                        name="inventory_inventorymovement_balanced",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("stock_after__gte", 0)),
                        name="inventory_inventorymovement_stock_after_non_negative",
                    ),
                ],
            },
        ),
    ]
