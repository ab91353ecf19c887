from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from ..account.models import Store
from . import VariantType
from .utils import resolve_variant_type

"""
Product.stock is the canonical on-hand count of physical units. It is changed
only by the stock management functions in ordefy.inventory, each of which
writes an InventoryMovement row in the same transaction.

Bundle variants sell packs of their parent: a pack of units_per_pack units is
taken from Product.stock and the bundle never carries stock of its own.
Variation variants keep their own ProductVariant.stock which never touches the
parent counter.

initial_stock is the baseline the ledger is replayed from:
    stock == initial_stock + sum(movement.quantity_change)
"""


class ProductQueryset(models.QuerySet["Product"]):
    def active(self):
        return self.filter(is_active=True)

    def for_store(self, store):
        return self.filter(store=store)


ProductManager = models.Manager.from_queryset(ProductQueryset)


class Product(models.Model):
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="products")
    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=255, null=True, blank=True)
    external_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Product id in the external catalog the store syncs from",
    )

    stock = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    initial_stock = models.IntegerField(
        null=True,
        blank=True,
        help_text="Stock at creation; baseline for ledger replay",
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductManager()

    class Meta:
        ordering = ("pk",)
        constraints = [
            models.CheckConstraint(
                condition=Q(stock__gte=0), name="product_product_stock_non_negative"
            ),
            models.UniqueConstraint(
                fields=["store", "sku"],
                condition=Q(sku__isnull=False) & ~Q(sku=""),
                name="product_product_unique_sku_per_store",
            ),
        ]
        indexes = [
            models.Index(
                fields=["store", "external_id"], name="product_prod_store_extid_idx"
            ),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if self._state.adding and self.initial_stock is None:
            self.initial_stock = self.stock
        super().save(*args, **kwargs)


class ProductVariant(models.Model):
    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="variants"
    )
    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=255, null=True, blank=True)
    external_id = models.CharField(max_length=255, null=True, blank=True)

    variant_type = models.CharField(
        max_length=16, choices=VariantType.CHOICES, blank=True
    )
    uses_shared_stock = models.BooleanField(default=False)
    units_per_pack = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        help_text="Parent units consumed per pack sold (bundles only)",
    )
    stock = models.IntegerField(
        default=0,
        validators=[MinValueValidator(0)],
        help_text="Independent stock (variations only)",
    )
    initial_stock = models.IntegerField(null=True, blank=True)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("pk",)
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(variant_type=VariantType.BUNDLE, uses_shared_stock=True)
                    | Q(variant_type=VariantType.VARIATION, uses_shared_stock=False)
                ),
                name="product_productvariant_variant_type_rules",
            ),
            models.CheckConstraint(
                condition=Q(units_per_pack__gte=1),
                name="product_productvariant_units_per_pack_positive",
            ),
            models.CheckConstraint(
                condition=Q(stock__gte=0),
                name="product_productvariant_stock_non_negative",
            ),
        ]
        indexes = [
            models.Index(
                fields=["product", "variant_type"], name="product_var_product_type_idx"
            ),
            models.Index(fields=["external_id"], name="product_var_external_id_idx"),
        ]

    def __str__(self):
        return f"{self.product.name} / {self.name}"

    def save(self, *args, **kwargs):
        if not self.variant_type:
            self.variant_type = resolve_variant_type(
                uses_shared_stock=self.uses_shared_stock
            )
        if self._state.adding and self.initial_stock is None:
            self.initial_stock = self.stock
        super().save(*args, **kwargs)

    @property
    def is_bundle(self):
        return self.variant_type == VariantType.BUNDLE

    @property
    def available_quantity(self):
        """Sellable units of this variant, computed on every access.

        For bundles this is the number of full packs the shared parent pool
        can still cover; it is never stored.
        """
        if self.is_bundle:
            return self.product.stock // self.units_per_pack
        return self.stock
