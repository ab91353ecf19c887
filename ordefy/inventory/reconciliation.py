"""Compare stock counters with the ledger and repair them.

The expected value of a counter is its initial stock plus the sum of its
ledger movements. Any other value means stock was written without going
through ordefy.inventory.stock_management.
"""

import logging

import attrs
from django.conf import settings
from django.db import transaction
from django.db.models import F, IntegerField, Q, Sum, Value
from django.db.models.functions import Coalesce

from ..order import OrderStatus
from ..order.models import Order, OrderLineItem
from ..product import VariantType
from ..product.models import Product, ProductVariant
from . import StockSource
from .exceptions import StockInvariantViolation
from .models import InventoryMovement

logger = logging.getLogger(__name__)


@attrs.frozen
class StockDiscrepancy:
    product_id: int
    variant_id: int | None
    name: str
    recorded_stock: int
    calculated_stock: int

    @property
    def diff(self):
        return self.recorded_stock - self.calculated_stock


@attrs.frozen
class UnmappedLineItem:
    line_item_id: int
    order_id: int
    order_number: str
    sleeves_status: str
    product_name: str
    sku: str | None
    external_product_id: str | None
    external_variant_id: str | None
    quantity: int


def _annotate_calculated_stock(queryset, source):
    return queryset.annotate(
        ledger_total=Coalesce(
            Sum(
                "inventory_movements__quantity_change",
                filter=Q(inventory_movements__stock_source=source),
            ),
            Value(0),
            output_field=IntegerField(),
        ),
    ).annotate(
        calculated_stock=Coalesce(F("initial_stock"), Value(0)) + F("ledger_total")
    )


def _iter_discrepancies(store, product=None, threshold=0):
    products = Product.objects.for_store(store)
    variants = ProductVariant.objects.filter(
        product__store=store, variant_type=VariantType.VARIATION
    ).select_related("product")
    if product is not None:
        products = products.filter(pk=product.pk)
        variants = variants.filter(product=product)

    for item in _annotate_calculated_stock(products, StockSource.PRODUCT).order_by(
        "pk"
    ):
        if abs(item.stock - item.calculated_stock) > threshold:
            yield item, StockDiscrepancy(
                product_id=item.pk,
                variant_id=None,
                name=item.name,
                recorded_stock=item.stock,
                calculated_stock=item.calculated_stock,
            )

    for item in _annotate_calculated_stock(variants, StockSource.VARIANT).order_by(
        "pk"
    ):
        if abs(item.stock - item.calculated_stock) > threshold:
            yield item, StockDiscrepancy(
                product_id=item.product_id,
                variant_id=item.pk,
                name=str(item),
                recorded_stock=item.stock,
                calculated_stock=item.calculated_stock,
            )


def get_stock_discrepancies(store) -> list[StockDiscrepancy]:
    """Return every counter of ``store`` that disagrees with its ledger.

    Differences up to ``STOCK_RECONCILIATION_ALERT_THRESHOLD`` are ignored.
    """
    threshold = settings.STOCK_RECONCILIATION_ALERT_THRESHOLD
    return [
        discrepancy
        for _, discrepancy in _iter_discrepancies(store, threshold=threshold)
    ]


def verify_product_ledger(product: Product):
    """Raise StockInvariantViolation unless the product's counters match the ledger."""
    movements = InventoryMovement.objects.for_product_pool(product)
    expected = (product.initial_stock or 0) + (
        movements.aggregate(total=Sum("quantity_change"))["total"] or 0
    )
    if product.stock != expected:
        raise StockInvariantViolation(str(product), expected, product.stock)

    for variant in product.variants.filter(variant_type=VariantType.VARIATION):
        movements = InventoryMovement.objects.for_variant_pool(variant)
        expected = (variant.initial_stock or 0) + (
            movements.aggregate(total=Sum("quantity_change"))["total"] or 0
        )
        if variant.stock != expected:
            raise StockInvariantViolation(str(variant), expected, variant.stock)


def get_unmapped_line_items(store) -> list[UnmappedLineItem]:
    """Return line items of active orders that reference no local product."""
    line_items = (
        OrderLineItem.objects.filter(
            order__store=store, order__deleted_at__isnull=True, product__isnull=True
        )
        .select_related("order")
        .order_by("order_id", "pk")
    )
    return [
        UnmappedLineItem(
            line_item_id=line_item.pk,
            order_id=line_item.order_id,
            order_number=line_item.order.order_number,
            sleeves_status=line_item.order.sleeves_status,
            product_name=line_item.product_name,
            sku=line_item.sku,
            external_product_id=line_item.external_product_id,
            external_variant_id=line_item.external_variant_id,
            quantity=line_item.quantity,
        )
        for line_item in line_items
    ]


def get_orders_missing_stock_deduction(store):
    """Return active stock-affecting orders with mapped but undeducted items.

    These are left behind when a line item was mapped to a product after its
    order had already shipped.
    """
    return (
        Order.objects.active()
        .for_store(store)
        .filter(
            sleeves_status__in=OrderStatus.STOCK_AFFECTING_STATUSES,
            line_items__product__isnull=False,
            line_items__stock_deducted=False,
            line_items__quantity__gt=0,
        )
        .distinct()
        .order_by("pk")
    )


@transaction.atomic
def recalculate_stock(store, product=None, dry_run=False) -> list[StockDiscrepancy]:
    """Reset counters that disagree with the ledger to the ledger's value.

    The reset itself writes no movement, since the ledger is the reference
    it restores. Counters whose ledger adds up to a negative value are left
    alone and logged. The alert threshold does not apply here. Returns the
    discrepancies found; with ``dry_run`` no counter is changed.
    """
    found = list(_iter_discrepancies(store, product=product))
    for item, discrepancy in found:
        if dry_run:
            continue
        if discrepancy.calculated_stock < 0:
            logger.error(
                "Not resetting %s: ledger adds up to %s",
                discrepancy.name,
                discrepancy.calculated_stock,
            )
            continue
        model = type(item)
        locked = model.objects.select_for_update().get(pk=item.pk)
        locked.stock = discrepancy.calculated_stock
        locked.save(update_fields=["stock", "updated_at"])
        logger.warning(
            "Reset stock of %s from %s to %s",
            discrepancy.name,
            discrepancy.recorded_stock,
            discrepancy.calculated_stock,
        )
    return [discrepancy for _, discrepancy in found]
