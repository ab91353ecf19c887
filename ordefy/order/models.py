from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from prices import Money

from ..account.models import Customer, Store
from ..product.models import Product, ProductVariant
from ..shipping.models import Carrier
from . import OrderStatus, PaymentMethod


class OrderQueryset(models.QuerySet["Order"]):
    def active(self):
        """Orders that have not been soft-deleted."""
        return self.filter(deleted_at__isnull=True)

    def for_store(self, store):
        return self.filter(store=store)

    def stock_affecting(self):
        return self.filter(sleeves_status__in=OrderStatus.STOCK_AFFECTING_STATUSES)


OrderManager = models.Manager.from_queryset(OrderQueryset)


class Order(models.Model):
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="orders")
    customer = models.ForeignKey(
        Customer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    order_number = models.CharField(max_length=64)
    external_id = models.CharField(max_length=255, null=True, blank=True)

    sleeves_status = models.CharField(
        max_length=32,
        choices=OrderStatus.CHOICES,
        default=OrderStatus.PENDING,
        help_text="Fulfillment status; drives stock deduction and restoration",
    )
    version = models.PositiveIntegerField(
        default=1,
        help_text="Incremented on every update; used for optimistic concurrency",
    )

    currency = models.CharField(
        max_length=settings.DEFAULT_CURRENCY_CODE_LENGTH,
        default=settings.DEFAULT_CURRENCY,
    )
    total_price = models.DecimalField(
        max_digits=settings.DEFAULT_MAX_DIGITS,
        decimal_places=settings.DEFAULT_DECIMAL_PLACES,
        default=Decimal(0),
    )
    payment_method = models.CharField(
        max_length=32, choices=PaymentMethod.CHOICES, default=PaymentMethod.PREPAID
    )

    carrier = models.ForeignKey(
        Carrier,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    delivery_zone = models.CharField(max_length=255, blank=True)
    amount_collected = models.DecimalField(
        max_digits=settings.DEFAULT_MAX_DIGITS,
        decimal_places=settings.DEFAULT_DECIMAL_PLACES,
        null=True,
        blank=True,
    )
    has_amount_discrepancy = models.BooleanField(default=False)
    delivered_at = models.DateTimeField(null=True, blank=True)
    delivery_notes = models.TextField(blank=True)

    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrderManager()

    class Meta:
        ordering = ("-created_at", "pk")
        indexes = [
            models.Index(
                fields=["store", "sleeves_status"], name="order_order_store_status_idx"
            ),
            models.Index(
                fields=["store", "order_number"], name="order_order_store_number_idx"
            ),
        ]

    def __str__(self):
        return f"#{self.order_number}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            self.version += 1
            update_fields = kwargs.get("update_fields")
            if update_fields is not None:
                kwargs["update_fields"] = {*update_fields, "version", "updated_at"}
        super().save(*args, **kwargs)

    @property
    def total(self) -> Money:
        return Money(self.total_price, self.currency)

    @property
    def is_cash_on_delivery(self):
        return self.payment_method in PaymentMethod.COLLECTED_ON_DELIVERY

    def is_stock_affecting(self):
        return self.sleeves_status in OrderStatus.STOCK_AFFECTING_STATUSES


class OrderLineItem(models.Model):
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE, related_name="line_items"
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_line_items",
    )
    variant = models.ForeignKey(
        ProductVariant,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_line_items",
    )

    # Snapshot of the external catalog data the item arrived with
    product_name = models.CharField(max_length=255, blank=True)
    variant_name = models.CharField(max_length=255, blank=True)
    sku = models.CharField(max_length=255, null=True, blank=True)
    external_product_id = models.CharField(max_length=255, null=True, blank=True)
    external_variant_id = models.CharField(max_length=255, null=True, blank=True)

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(
        max_digits=settings.DEFAULT_MAX_DIGITS,
        decimal_places=settings.DEFAULT_DECIMAL_PLACES,
        default=Decimal(0),
    )

    units_per_pack = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        help_text="Pack size of the bundle at the time stock was deducted",
    )
    stock_deducted = models.BooleanField(default=False)
    stock_deducted_at = models.DateTimeField(null=True, blank=True)
    deducted_from = models.CharField(
        max_length=16,
        null=True,
        blank=True,
        help_text="Stock pool the deduction was taken from (product or variant)",
    )

    class Meta:
        ordering = ("pk",)
        constraints = [
            models.CheckConstraint(
                condition=Q(units_per_pack__gte=1),
                name="order_orderlineitem_units_per_pack_positive",
            ),
        ]
        indexes = [
            models.Index(
                fields=["order", "stock_deducted"], name="order_line_order_deducted_idx"
            ),
        ]

    def __str__(self):
        name = self.product_name or (self.product.name if self.product else "")
        if self.variant_name:
            name = f"{name} ({self.variant_name})"
        return f"{self.quantity} × {name}"

    @property
    def physical_units(self):
        """Units removed from the stock pool for this item."""
        return self.quantity * self.units_per_pack
