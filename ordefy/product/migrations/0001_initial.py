import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("account", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Product",
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
                ("name", models.CharField(max_length=255)),
                ("sku", models.CharField(blank=True, max_length=255, null=True)),
                (
                    "external_id",
                    models.CharField(
                        blank=True,
                        help_text="Product id in the external catalog the store syncs from",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "stock",
                    models.IntegerField(
                        default=0,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                (
                    "initial_stock",
                    models.IntegerField(
                        blank=True,
                        help_text="Stock at creation; baseline for ledger replay",
                        null=True,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="products",
                        to="account.store",
                    ),
                ),
            ],
            options={
                "ordering": ("pk",),
                "indexes": [
                    models.Index(
                        fields=["store", "external_id"],
                        name="product_prod_store_extid_idx",
                    )
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("stock__gte", 0)),
                        name="product_product_stock_non_negative",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(
                            ("sku__isnull", False), models.Q(("sku", ""), _negated=True)
                        ),
                        fields=("store", "sku"),
                        name="product_product_unique_sku_per_store",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProductVariant",
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
                ("name", models.CharField(max_length=255)),
                ("sku", models.CharField(blank=True, max_length=255, null=True)),
                (
                    "external_id",
                    models.CharField(blank=True, max_length=255, null=True),
                ),
                (
                    "variant_type",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("bundle", "Bundle (shared parent stock)"),
                            ("variation", "Variation (independent stock)"),
                        ],
                        max_length=16,
                    ),
                ),
                ("uses_shared_stock", models.BooleanField(default=False)),
                (
                    "units_per_pack",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Parent units consumed per pack sold (bundles only)",
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "stock",
                    models.IntegerField(
                        default=0,
                        help_text="Independent stock (variations only)",
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                ("initial_stock", models.IntegerField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="variants",
                        to="product.product",
                    ),
                ),
            ],
            options={
                "ordering": ("pk",),
                "indexes": [
                    models.Index(
                        fields=["product", "variant_type"],
                        name="product_var_product_type_idx",
                    ),
                    models.Index(
                        fields=["external_id"], name="product_var_external_id_idx"
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("uses_shared_stock", True), ("variant_type", "bundle")
                            ),
                            models.Q(
                                ("uses_shared_stock", False),
                                ("variant_type", "variation"),
                            ),
                            _connector="OR",
                        ),
                        name="product_productvariant_variant_type_rules",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("units_per_pack__gte", 1)),
                        name="product_productvariant_units_per_pack_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("stock__gte", 0)),
                        name="product_productvariant_stock_non_negative",
                    ),
                ],
            },
        ),
    ]
