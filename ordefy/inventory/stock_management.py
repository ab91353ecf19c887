"""Stock management for order status transitions and manual stock movements.

This module is THE ONLY place that writes Product.stock and
ProductVariant.stock. Every write happens under a row lock and is paired with
an InventoryMovement row in the same transaction.

An order removes its goods from stock the first time it enters one of
OrderStatus.STOCK_AFFECTING_STATUSES. Each line item carries a stock_deducted
flag which makes the deduction happen at most once however many
stock-affecting statuses the order passes through. Cancelling or rejecting
such an order, or moving it back to a pre-shipment status, gives back exactly
what was taken from the flagged line items.
"""

import logging
from collections import defaultdict

import attrs
from django.db import transaction
from django.utils import timezone

from ..core.exceptions import InsufficientStock, InsufficientStockData
from ..order import OrderStatus
from ..order.models import Order, OrderLineItem
from ..product.lookup import find_product_for_external_reference
from ..product.models import Product, ProductVariant
from . import MovementType, StockEffect, StockSource
from .events import stock_movement_event
from .exceptions import InvalidOrderStatusForStock, UnmappedProduct

logger = logging.getLogger(__name__)


class SkipReason:
    UNMAPPED = "unmapped"
    PRODUCT_NOT_FOUND = "product_not_found"
    VARIANT_NOT_FOUND = "variant_not_found"
    INVALID_QUANTITY = "invalid_quantity"


@attrs.frozen
class SkippedLineItem:
    line_item_id: int
    reason: str


@attrs.define
class StockEffectResult:
    """Outcome of applying a status transition to an order's stock."""

    effect: str | None = None
    processed: list[int] = attrs.Factory(list)
    skipped: list[SkippedLineItem] = attrs.Factory(list)

    def skip(self, line_item, reason):
        logger.warning(
            "Skipping stock %s for line item %s of order %s: %s",
            self.effect,
            line_item.pk,
            line_item.order_id,
            reason,
        )
        self.skipped.append(SkippedLineItem(line_item.pk, reason))


@attrs.frozen
class _StockRequirement:
    line_item: OrderLineItem
    product: Product
    variant: ProductVariant | None
    source: str
    units_per_pack: int

    @property
    def pool(self):
        if self.source == StockSource.VARIANT:
            return self.variant
        return self.product

    @property
    def units(self):
        return self.line_item.quantity * self.units_per_pack


def get_stock_effect(old_status: str | None, new_status: str) -> str | None:
    """Return the StockEffect of moving an order between two statuses.

    ``old_status`` is None for an order that is being created.
    """
    was_affecting = old_status in OrderStatus.STOCK_AFFECTING_STATUSES
    is_affecting = new_status in OrderStatus.STOCK_AFFECTING_STATUSES

    if is_affecting and not was_affecting:
        return StockEffect.DEDUCT
    if was_affecting and new_status in OrderStatus.RELEASE_STATUSES:
        return StockEffect.CANCEL
    if was_affecting and new_status in OrderStatus.PRE_SHIPMENT_STATUSES:
        return StockEffect.REVERT
    return None


def _lock_stock_pools(line_items):
    """Lock every product and variant row the line items can touch.

    Products are locked before variants and each set in ascending pk order,
    so concurrent transactions always acquire the same rows in the same order.
    """
    variant_ids = {li.variant_id for li in line_items if li.variant_id}
    product_ids = {li.product_id for li in line_items if li.product_id}
    # Bundles draw from their parent, which may not be on the line item
    product_ids.update(
        ProductVariant.objects.filter(pk__in=variant_ids).values_list(
            "product_id", flat=True
        )
    )

    products = {
        product.pk: product
        for product in Product.objects.select_for_update()
        .filter(pk__in=product_ids)
        .order_by("pk")
    }
    variants = {
        variant.pk: variant
        for variant in ProductVariant.objects.select_for_update()
        .filter(pk__in=variant_ids)
        .order_by("pk")
    }
    for variant in variants.values():
        if variant.product_id in products:
            variant.product = products[variant.product_id]
    return products, variants


def _change_stock(pool, quantity_change, *, product, variant, source, **event_kwargs):
    stock_before = pool.stock
    pool.stock = stock_before + quantity_change
    pool.save(update_fields=["stock", "updated_at"])
    return stock_movement_event(
        product=product,
        variant=variant,
        stock_source=source,
        quantity_change=quantity_change,
        stock_before=stock_before,
        **event_kwargs,
    )


def _map_line_item(order, line_item):
    """Try to attach an unmapped line item to a local product."""
    match = find_product_for_external_reference(
        order.store,
        external_product_ref=line_item.external_product_id,
        external_variant_ref=line_item.external_variant_id,
        sku=line_item.sku,
    )
    if not match.found:
        return False
    line_item.product_id = match.product_id
    line_item.variant_id = match.variant_id
    line_item.save(update_fields=["product", "variant"])
    logger.info(
        "Mapped line item %s of order %s to product %s via %s",
        line_item.pk,
        order.pk,
        match.product_id,
        match.match_method,
    )
    return True


def _build_requirement(line_item, product, variant):
    if variant is not None and variant.is_bundle:
        return _StockRequirement(
            line_item, product, variant, StockSource.PRODUCT, variant.units_per_pack
        )
    if variant is not None:
        return _StockRequirement(line_item, product, variant, StockSource.VARIANT, 1)
    return _StockRequirement(line_item, product, None, StockSource.PRODUCT, 1)


def _validate_requirements(requirements):
    """Raise InsufficientStock unless every pool covers its whole demand.

    Demand is summed per pool, so several items drawing from one parent
    product are checked against the parent's stock together.
    """
    demand = defaultdict(list)
    for requirement in requirements:
        demand[(requirement.source, requirement.pool.pk)].append(requirement)

    insufficient = []
    for pool_requirements in demand.values():
        first = pool_requirements[0]
        required = sum(requirement.units for requirement in pool_requirements)
        if required > first.pool.stock:
            insufficient.append(
                InsufficientStockData(
                    product=first.product,
                    variant=first.variant,
                    line_item=first.line_item,
                    required_quantity=required,
                    available_quantity=first.pool.stock,
                )
            )
    if insufficient:
        raise InsufficientStock(insufficient)


def deduct_order_stock(
    order: Order, old_status: str | None, new_status: str, user=None
) -> StockEffectResult:
    """Remove the goods of every not yet deducted line item from stock.

    Items without a resolvable product or with a non-positive quantity are
    skipped with a warning. All pools are validated before the first write; a
    shortage in any of them raises InsufficientStock and nothing is written.
    Must run inside a transaction.
    """
    result = StockEffectResult(effect=StockEffect.DEDUCT)
    line_items = list(
        order.line_items.select_for_update().filter(stock_deducted=False).order_by("pk")
    )

    candidates = []
    for line_item in line_items:
        if line_item.quantity <= 0:
            result.skip(line_item, SkipReason.INVALID_QUANTITY)
        elif line_item.product_id is None and not _map_line_item(order, line_item):
            result.skip(line_item, SkipReason.UNMAPPED)
        else:
            candidates.append(line_item)

    products, variants = _lock_stock_pools(candidates)

    requirements = []
    for line_item in candidates:
        product = products.get(line_item.product_id)
        if product is None or product.store_id != order.store_id:
            result.skip(line_item, SkipReason.PRODUCT_NOT_FOUND)
            continue
        variant = None
        if line_item.variant_id:
            variant = variants.get(line_item.variant_id)
            if variant is None or variant.product_id != product.pk:
                result.skip(line_item, SkipReason.VARIANT_NOT_FOUND)
                continue
        requirements.append(_build_requirement(line_item, product, variant))

    _validate_requirements(requirements)

    movement_type = MovementType.for_deduction(new_status)
    deducted_at = timezone.now()
    for requirement in requirements:
        line_item = requirement.line_item
        _change_stock(
            requirement.pool,
            -requirement.units,
            product=requirement.product,
            variant=requirement.variant,
            source=requirement.source,
            order=order,
            movement_type=movement_type,
            order_status_from=old_status,
            order_status_to=new_status,
            notes=f"Order {order.order_number}",
            user=user,
        )
        line_item.units_per_pack = requirement.units_per_pack
        line_item.deducted_from = requirement.source
        line_item.stock_deducted = True
        line_item.stock_deducted_at = deducted_at
        line_item.save(
            update_fields=[
                "units_per_pack",
                "deducted_from",
                "stock_deducted",
                "stock_deducted_at",
            ]
        )
        result.processed.append(line_item.pk)

    logger.info(
        "Deducted stock for %s line items of order %s (%s -> %s)",
        len(result.processed),
        order.pk,
        old_status,
        new_status,
    )
    return result


def restore_line_items_stock(
    order: Order,
    line_items: list[OrderLineItem],
    movement_type: str,
    *,
    effect: str | None = None,
    old_status: str = "",
    new_status: str = "",
    notes: str = "",
    user=None,
) -> StockEffectResult:
    """Give back exactly what was deducted for the flagged line items.

    The quantity and pool are taken from what the deduction recorded on the
    line item, not from the current catalog. Must run inside a transaction
    with the line items locked.
    """
    result = StockEffectResult(effect=effect)
    line_items = [line_item for line_item in line_items if line_item.stock_deducted]
    products, variants = _lock_stock_pools(line_items)

    for line_item in line_items:
        variant = variants.get(line_item.variant_id)
        source = line_item.deducted_from
        if source is None:
            uses_own_stock = variant is not None and not variant.is_bundle
            source = StockSource.VARIANT if uses_own_stock else StockSource.PRODUCT

        if source == StockSource.VARIANT:
            pool = variant
            product = products.get(variant.product_id) if variant else None
        else:
            pool = product = products.get(line_item.product_id)

        if pool is None or product is None:
            result.skip(line_item, SkipReason.PRODUCT_NOT_FOUND)
            continue

        _change_stock(
            pool,
            line_item.physical_units,
            product=product,
            variant=variant,
            source=source,
            order=order,
            movement_type=movement_type,
            order_status_from=old_status,
            order_status_to=new_status,
            notes=notes or f"Order {order.order_number}",
            user=user,
        )
        line_item.stock_deducted = False
        line_item.stock_deducted_at = None
        line_item.deducted_from = None
        line_item.save(
            update_fields=["stock_deducted", "stock_deducted_at", "deducted_from"]
        )
        result.processed.append(line_item.pk)

    logger.info(
        "Restored stock for %s line items of order %s (%s)",
        len(result.processed),
        order.pk,
        movement_type,
    )
    return result


def apply_order_stock_effect(
    order: Order, old_status: str | None, new_status: str, user=None
) -> StockEffectResult:
    """Apply the stock side of a status transition.

    Called by the order actions in the transaction that changes the status.
    Transitions without a stock effect return an empty result.
    """
    effect = get_stock_effect(old_status, new_status)
    if effect is None:
        return StockEffectResult()
    if effect == StockEffect.DEDUCT:
        return deduct_order_stock(order, old_status, new_status, user=user)

    line_items = list(
        order.line_items.select_for_update().filter(stock_deducted=True).order_by("pk")
    )
    movement_type = (
        MovementType.ORDER_CANCELLED
        if effect == StockEffect.CANCEL
        else MovementType.ORDER_REVERTED
    )
    return restore_line_items_stock(
        order,
        line_items,
        movement_type,
        effect=effect,
        old_status=old_status,
        new_status=new_status,
        user=user,
    )


@transaction.atomic
def adjust_stock(
    product: Product,
    quantity_delta: int,
    movement_type: str,
    notes: str = "",
    variant: ProductVariant | None = None,
    user=None,
) -> int:
    """Change a stock counter outside of an order and log it.

    ``quantity_delta`` is in sellable units: packs for a bundle variant, which
    moves ``quantity_delta * units_per_pack`` units of the parent. Returns the
    new value of the counter that changed.

    Raises:
        ValueError: if the delta is zero or the variant is not the product's.
        InsufficientStock: if the counter would go below zero.

    """
    if quantity_delta == 0:
        raise ValueError("Stock adjustment quantity must be non-zero")

    product = Product.objects.select_for_update().get(pk=product.pk)
    if variant is not None:
        variant = ProductVariant.objects.select_for_update().get(pk=variant.pk)
        if variant.product_id != product.pk:
            raise ValueError(
                f"Variant {variant.pk} does not belong to product {product.pk}"
            )
        variant.product = product

    if variant is not None and not variant.is_bundle:
        pool, source, units = variant, StockSource.VARIANT, quantity_delta
    else:
        pool, source = product, StockSource.PRODUCT
        units = quantity_delta * (variant.units_per_pack if variant else 1)

    if pool.stock + units < 0:
        raise InsufficientStock(
            [
                InsufficientStockData(
                    product=product,
                    variant=variant,
                    required_quantity=-units,
                    available_quantity=pool.stock,
                )
            ]
        )

    _change_stock(
        pool,
        units,
        product=product,
        variant=variant,
        source=source,
        movement_type=movement_type,
        notes=notes,
        user=user,
    )
    logger.info(
        "%s of %s units on %s %s (stock now %s)",
        movement_type,
        units,
        source,
        pool.pk,
        pool.stock,
    )
    return pool.stock


def record_manual_adjustment(
    product: Product,
    quantity_delta: int,
    reason: str,
    variant: ProductVariant | None = None,
    user=None,
) -> int:
    """Correct a stock counter by hand, e.g. after a physical count."""
    if not reason or not reason.strip():
        raise ValueError("A reason is required for manual stock adjustments")
    return adjust_stock(
        product,
        quantity_delta,
        MovementType.MANUAL_ADJUSTMENT,
        notes=reason.strip(),
        variant=variant,
        user=user,
    )


def record_inbound_receipt(
    product: Product,
    quantity: int,
    variant: ProductVariant | None = None,
    notes: str = "",
    user=None,
) -> int:
    """Add goods received from a supplier shipment."""
    if quantity <= 0:
        raise ValueError("Received quantity must be positive")
    return adjust_stock(
        product,
        quantity,
        MovementType.INBOUND_RECEIPT,
        notes=notes,
        variant=variant,
        user=user,
    )


def record_inbound_correction(
    product: Product,
    quantity_delta: int,
    notes: str,
    variant: ProductVariant | None = None,
    user=None,
) -> int:
    """Fix a previously recorded receipt, in either direction."""
    return adjust_stock(
        product,
        quantity_delta,
        MovementType.INBOUND_CORRECTION,
        notes=notes,
        variant=variant,
        user=user,
    )


@transaction.atomic
def accept_return(
    order: Order, line_item_ids: list[int] | None = None, user=None
) -> StockEffectResult:
    """Put the goods of a returned order back into stock.

    A transition to ``returned`` leaves stock untouched until the goods are
    inspected; this restocks the deducted line items (all of them, or only
    ``line_item_ids``).

    Raises:
        InvalidOrderStatusForStock: if the order is not returned.
        UnmappedProduct: if a selected line item lost its product.

    """
    order = Order.objects.select_for_update().get(pk=order.pk)
    if order.sleeves_status != OrderStatus.RETURNED:
        raise InvalidOrderStatusForStock(order, [OrderStatus.RETURNED])

    line_items = order.line_items.select_for_update().filter(stock_deducted=True)
    if line_item_ids is not None:
        line_items = line_items.filter(pk__in=line_item_ids)
    line_items = list(line_items.order_by("pk"))

    for line_item in line_items:
        if line_item.product_id is None:
            raise UnmappedProduct(line_item)

    return restore_line_items_stock(
        order,
        line_items,
        MovementType.RETURN_ACCEPTED,
        old_status=OrderStatus.RETURNED,
        new_status=OrderStatus.RETURNED,
        notes=f"Return of order {order.order_number} accepted",
        user=user,
    )
