"""Custom exceptions for stock operations."""

from typing import TYPE_CHECKING

from ..core.error_codes import StockErrorCode

if TYPE_CHECKING:
    from ..order.models import Order, OrderLineItem


class UnmappedProduct(Exception):
    """Raised when a line item has no local product to take stock from.

    Stock transitions do not raise it: they skip such items and report them.
    It is raised by operations that require a mapped item, such as accepting
    a return into stock.
    """

    def __init__(self, line_item: "OrderLineItem"):
        self.line_item = line_item
        self.code = StockErrorCode.UNMAPPED_PRODUCT
        label = line_item.product_name or line_item.sku or f"line item {line_item.pk}"
        super().__init__(
            f'"{label}" on order {line_item.order.order_number} is not mapped '
            "to a local product"
        )


class InvalidOrderStatusForStock(Exception):
    """Raised when an order is not in a status the stock operation accepts."""

    def __init__(self, order: "Order", expected_statuses: list[str]):
        self.order = order
        self.expected_statuses = expected_statuses
        self.code = StockErrorCode.INVALID_ORDER_STATUS
        super().__init__(
            f"Order {order.order_number} is in status '{order.sleeves_status}', "
            f"expected one of: {', '.join(expected_statuses)}"
        )


class StockInvariantViolation(Exception):
    """Raised when a counter disagrees with its ledger.

    This indicates a write that bypassed the stock management functions and
    should never occur in normal operation.
    """

    def __init__(self, label: str, expected: int, actual: int):
        self.label = label
        self.expected = expected
        self.actual = actual
        self.code = StockErrorCode.STOCK_INVARIANT_VIOLATION
        super().__init__(
            f"INVARIANT VIOLATION: {label} has stock {actual} but its ledger "
            f"adds up to {expected}"
        )
