"""Ledger entries for stock counter changes."""

from . import StockSource
from .models import InventoryMovement


def stock_movement_event(
    *,
    product,
    quantity_change: int,
    stock_before: int,
    movement_type: str,
    variant=None,
    stock_source: str = StockSource.PRODUCT,
    order=None,
    order_status_from: str = "",
    order_status_to: str = "",
    notes: str = "",
    user=None,
) -> InventoryMovement:
    """Log a change of a product or variant stock counter.

    Must be called in the transaction that changed the counter, with the value
    the counter had before the change.
    """
    return InventoryMovement.objects.create(
        store_id=product.store_id,
        product=product,
        variant=variant,
        stock_source=stock_source,
        order=order,
        quantity_change=quantity_change,
        stock_before=stock_before,
        stock_after=stock_before + quantity_change,
        movement_type=movement_type,
        order_status_from=order_status_from or "",
        order_status_to=order_status_to or "",
        notes=notes,
        user=user,
    )
