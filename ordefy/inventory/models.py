from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils.timezone import now

from ..account.models import Store
from ..order import OrderStatus
from ..order.models import Order
from ..product.models import Product, ProductVariant
from . import MovementType, StockSource

"""
InventoryMovement is the append-only stock ledger. Every change of
Product.stock or ProductVariant.stock writes exactly one row in the same
transaction, so for every product:

    Product.stock == Product.initial_stock
                     + sum(quantity_change of its product-sourced movements)

and the same holds for a variation and its variant-sourced movements.
Bundle movements are product-sourced: they carry the variant for reference
but the quantity is in parent units.
"""


class InventoryMovementQuerySet(models.QuerySet["InventoryMovement"]):
    def for_product_pool(self, product):
        return self.filter(product=product, stock_source=StockSource.PRODUCT)

    def for_variant_pool(self, variant):
        return self.filter(variant=variant, stock_source=StockSource.VARIANT)


InventoryMovementManager = models.Manager.from_queryset(InventoryMovementQuerySet)


class InventoryMovement(models.Model):
    store = models.ForeignKey(
        Store, on_delete=models.CASCADE, related_name="inventory_movements"
    )
    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="inventory_movements"
    )
    variant = models.ForeignKey(
        ProductVariant,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_movements",
    )
    stock_source = models.CharField(
        max_length=16,
        choices=StockSource.CHOICES,
        default=StockSource.PRODUCT,
        help_text="Counter that changed: the product or the variant",
    )
    order = models.ForeignKey(
        Order,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_movements",
    )

    quantity_change = models.IntegerField(
        help_text="Signed change of the counter in physical units"
    )
    stock_before = models.IntegerField()
    stock_after = models.IntegerField()

    movement_type = models.CharField(max_length=32, choices=MovementType.CHOICES)
    order_status_from = models.CharField(
        max_length=32, choices=OrderStatus.CHOICES, blank=True
    )
    order_status_to = models.CharField(
        max_length=32, choices=OrderStatus.CHOICES, blank=True
    )
    notes = models.TextField(blank=True)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
        help_text="User who triggered the movement",
    )
    created_at = models.DateTimeField(default=now, editable=False, db_index=True)

    objects = InventoryMovementManager()

    class Meta:
        ordering = ("created_at", "pk")
        constraints = [
            models.CheckConstraint(
                condition=Q(stock_after=F("stock_before") + F("quantity_change")),
                name="inventory_inventorymovement_balanced",
            ),
            models.CheckConstraint(
                condition=Q(stock_after__gte=0),
                name="inventory_inventorymovement_stock_after_non_negative",
            ),
        ]
        indexes = [
            models.Index(
                fields=["store", "created_at"], name="inv_movement_store_created_idx"
            ),
            models.Index(
                fields=["product", "stock_source"], name="inv_movement_product_src_idx"
            ),
            models.Index(
                fields=["order", "movement_type"], name="inv_movement_order_type_idx"
            ),
        ]

    def __str__(self):
        return f"{self.movement_type} {self.quantity_change:+d} ({self.product_id})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Inventory movements are append-only")
        super().save(*args, **kwargs)
