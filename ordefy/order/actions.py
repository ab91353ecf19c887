import logging
from decimal import Decimal

import attrs
from django.db import transaction
from django.utils import timezone

from ..account.utils import (
    customer_order_created,
    customer_order_removed,
    customer_order_status_changed,
)
from ..inventory import MovementType
from ..inventory.stock_management import (
    apply_order_stock_effect,
    restore_line_items_stock,
)
from ..product.lookup import find_product_for_external_reference
from . import OrderStatus
from .exceptions import (
    ConcurrentModificationConflict,
    ImmutabilityViolation,
    InvalidStatusTransition,
    OrderNotFound,
)
from .models import Order, OrderLineItem

logger = logging.getLogger(__name__)


@attrs.frozen
class LineItemData:
    """Line item as received from the store's sales channel."""

    quantity: int
    product: object = None
    variant: object = None
    product_name: str = ""
    variant_name: str = ""
    sku: str | None = None
    external_product_id: str | None = None
    external_variant_id: str | None = None
    unit_price: Decimal = Decimal(0)


def validate_status_transition(order: Order, new_status: str):
    """Raise InvalidStatusTransition unless ``order`` may move to ``new_status``.

    Terminal orders cannot move at all and only shipped orders can be returned.
    """
    old_status = order.sleeves_status
    if new_status not in OrderStatus.ALL:
        raise InvalidStatusTransition(order, new_status)
    if old_status in OrderStatus.TERMINAL_STATUSES:
        raise InvalidStatusTransition(order, new_status)
    if (
        new_status == OrderStatus.RETURNED
        and old_status not in OrderStatus.RETURNABLE_STATUSES
    ):
        raise InvalidStatusTransition(order, new_status)


def _get_order_for_update(order_id, store=None) -> Order:
    orders = Order.objects.active().select_for_update()
    if store is not None:
        orders = orders.for_store(store)
    try:
        return orders.get(pk=order_id)
    except Order.DoesNotExist:
        raise OrderNotFound(order_id) from None


def _check_version(order, expected_version):
    if expected_version is not None and order.version != expected_version:
        raise ConcurrentModificationConflict(order, expected_version)


def _build_line_item(order: Order, data: LineItemData) -> OrderLineItem:
    if data.quantity < 0:
        raise ValueError(f"Line item quantity cannot be negative: {data.quantity}")

    variant = data.variant
    product = data.product or (variant.product if variant is not None else None)
    line_item = OrderLineItem(
        order=order,
        product=product,
        variant=variant,
        product_name=data.product_name or (product.name if product else ""),
        variant_name=data.variant_name or (variant.name if variant else ""),
        sku=data.sku or (variant.sku if variant else None),
        external_product_id=data.external_product_id,
        external_variant_id=data.external_variant_id,
        quantity=data.quantity,
        unit_price=data.unit_price,
        units_per_pack=variant.units_per_pack if variant and variant.is_bundle else 1,
    )
    if product is None:
        match = find_product_for_external_reference(
            order.store,
            external_product_ref=data.external_product_id,
            external_variant_ref=data.external_variant_id,
            sku=data.sku,
        )
        line_item.product_id = match.product_id
        line_item.variant_id = match.variant_id
    return line_item


def _ensure_line_items_mutable(order: Order):
    deducted = order.line_items.filter(stock_deducted=True).exists()
    if order.is_stock_affecting() or deducted:
        raise ImmutabilityViolation(
            f"Cannot modify line items of order {order.order_number}: stock has "
            f"been deducted (status: {order.sleeves_status}). Cancel the order "
            "and create a new one instead."
        )


def _replace_line_items(order: Order, line_items: list[LineItemData]):
    _ensure_line_items_mutable(order)
    order.line_items.all().delete()
    OrderLineItem.objects.bulk_create(
        [_build_line_item(order, data) for data in line_items]
    )


@transaction.atomic
def create_order(
    store,
    order_number: str,
    line_items: list[LineItemData],
    status: str = OrderStatus.PENDING,
    customer=None,
    user=None,
    **fields,
) -> Order:
    """Create an order with its line items.

    An order created directly in a stock-affecting status takes its stock in
    the same transaction, so a shortage prevents the order from being created.
    """
    if status not in OrderStatus.ALL:
        raise ValueError(f"Unknown order status: {status}")

    order = Order.objects.create(
        store=store,
        order_number=order_number,
        sleeves_status=status,
        customer=customer,
        **fields,
    )
    OrderLineItem.objects.bulk_create(
        [_build_line_item(order, data) for data in line_items]
    )
    apply_order_stock_effect(order, None, status, user=user)
    customer_order_created(order)

    logger.info("Created order %s in status %s", order.pk, status)
    return order


@transaction.atomic
def transition_order_status(
    order_id,
    new_status: str,
    line_items: list[LineItemData] | None = None,
    expected_version: int | None = None,
    user=None,
    store=None,
) -> Order:
    """Move an order to ``new_status`` and apply the stock effect.

    The order row stays locked until the transaction ends. When ``line_items``
    is given they replace the current items before the stock effect runs,
    which is only allowed while no stock has been deducted. Moving an order
    to the status it already has changes nothing.

    Raises:
        OrderNotFound: if there is no active order with ``order_id``.
        ConcurrentModificationConflict: if ``expected_version`` is stale.
        InvalidStatusTransition: if the transition is not allowed.
        ImmutabilityViolation: if line items are given for a deducted order.
        InsufficientStock: if a stock pool cannot cover the deduction.

    """
    order = _get_order_for_update(order_id, store=store)
    _check_version(order, expected_version)

    old_status = order.sleeves_status
    if old_status == new_status and line_items is None:
        return order
    if old_status != new_status:
        validate_status_transition(order, new_status)
    if line_items is not None:
        _replace_line_items(order, line_items)

    result = apply_order_stock_effect(order, old_status, new_status, user=user)

    order.sleeves_status = new_status
    update_fields = ["sleeves_status"]
    if new_status == OrderStatus.DELIVERED and order.delivered_at is None:
        order.delivered_at = timezone.now()
        update_fields.append("delivered_at")
    order.save(update_fields=update_fields)

    customer_order_status_changed(order, old_status, new_status)

    logger.info(
        "Order %s moved from %s to %s (stock: %s, %s items processed, %s skipped)",
        order.pk,
        old_status,
        new_status,
        result.effect,
        len(result.processed),
        len(result.skipped),
    )
    return order


@transaction.atomic
def update_order_line_items(
    order: Order, line_items: list[LineItemData], expected_version: int | None = None
) -> Order:
    """Replace the line items of an order whose stock has not been deducted."""
    order = _get_order_for_update(order.pk)
    _check_version(order, expected_version)
    _replace_line_items(order, line_items)
    order.save(update_fields=["updated_at"])
    return order


def _release_order_stock(order, force_restore, user, action):
    deducted = list(
        order.line_items.select_for_update().filter(stock_deducted=True).order_by("pk")
    )
    if not deducted:
        return
    if not force_restore:
        raise ImmutabilityViolation(
            f"Cannot {action} order {order.order_number}: {len(deducted)} line "
            "items still hold deducted stock. Cancel the order first or restore "
            "its stock explicitly."
        )
    restore_line_items_stock(
        order,
        deducted,
        MovementType.ORDER_CANCELLED,
        old_status=order.sleeves_status,
        new_status=order.sleeves_status,
        notes=f"Stock restored before {action} of order {order.order_number}",
        user=user,
    )


@transaction.atomic
def delete_order(order: Order, force_restore: bool = False, user=None):
    """Delete an order and its line items.

    Blocked while any line item holds deducted stock. With ``force_restore``
    that stock is given back and ledgered first.
    """
    order = Order.objects.select_for_update().get(pk=order.pk)
    _release_order_stock(order, force_restore, user, "delete")
    customer_order_removed(order)

    order_pk = order.pk
    order.delete()
    logger.warning("Deleted order %s (force_restore=%s)", order_pk, force_restore)


@transaction.atomic
def soft_delete_order(order: Order, force_restore: bool = False, user=None) -> Order:
    """Hide an order from the store. Follows the same stock rule as deletion."""
    order = _get_order_for_update(order.pk)
    _release_order_stock(order, force_restore, user, "archive")
    customer_order_removed(order)

    order.deleted_at = timezone.now()
    order.save(update_fields=["deleted_at"])
    logger.info("Soft-deleted order %s", order.pk)
    return order
