from django.conf import settings
from django.db import models
from django.db.models import Q

from ..account.models import Store
from ..order.models import Order
from ..product.models import Product, ProductVariant
from . import PickingSessionStatus


class PickingSessionQuerySet(models.QuerySet["PickingSession"]):
    def active(self):
        return self.filter(status__in=PickingSessionStatus.ACTIVE_STATUSES)


PickingSessionManager = models.Manager.from_queryset(PickingSessionQuerySet)


class PickingSession(models.Model):
    """A batch of confirmed orders prepared together in the warehouse.

    Goods are picked per product for the whole batch, then packed per order.
    Completing the session hands the orders over as ready to ship, which is
    when their stock is deducted.
    """

    store = models.ForeignKey(
        Store, on_delete=models.CASCADE, related_name="picking_sessions"
    )
    code = models.CharField(max_length=32, help_text="e.g. PREP-18012026-001")
    status = models.CharField(
        max_length=16,
        choices=PickingSessionStatus.CHOICES,
        default=PickingSessionStatus.PICKING,
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    orders = models.ManyToManyField(
        Order, through="PickingSessionOrder", related_name="picking_sessions"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    picking_completed_at = models.DateTimeField(null=True, blank=True)
    packing_started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    abandoned_at = models.DateTimeField(null=True, blank=True)

    objects = PickingSessionManager()

    class Meta:
        ordering = ("-created_at", "pk")
        constraints = [
            models.UniqueConstraint(
                fields=["store", "code"], name="warehouse_pickingsession_code_uniq"
            )
        ]

    def __str__(self):
        return self.code

    @property
    def is_active(self):
        return self.status in PickingSessionStatus.ACTIVE_STATUSES


class PickingSessionOrder(models.Model):
    session = models.ForeignKey(
        PickingSession, on_delete=models.CASCADE, related_name="session_orders"
    )
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE, related_name="picking_session_orders"
    )
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["session", "order"],
                name="warehouse_pickingsessionorder_session_order_uniq",
            )
        ]


class PickingSessionItem(models.Model):
    """One line of the aggregated pick list, in sellable units."""

    session = models.ForeignKey(
        PickingSession, on_delete=models.CASCADE, related_name="items"
    )
    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="picking_session_items"
    )
    variant = models.ForeignKey(
        ProductVariant,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="picking_session_items",
    )
    total_quantity_needed = models.PositiveIntegerField()
    quantity_picked = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("pk",)
        constraints = [
            models.CheckConstraint(
                condition=Q(total_quantity_needed__gt=0),
                name="warehouse_pickingsessionitem_needed_positive",
            ),
            models.CheckConstraint(
                condition=Q(quantity_picked__lte=models.F("total_quantity_needed")),
                name="warehouse_pickingsessionitem_picked_within_needed",
            ),
        ]

    def __str__(self):
        name = str(self.variant) if self.variant_id else self.product.name
        return f"{name} ({self.quantity_picked}/{self.total_quantity_needed})"

    @property
    def is_picked(self):
        return self.quantity_picked >= self.total_quantity_needed
