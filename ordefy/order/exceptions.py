"""Custom exceptions for order operations."""

from typing import TYPE_CHECKING

from .error_codes import OrderErrorCode

if TYPE_CHECKING:
    from .models import Order


class OrderNotFound(Exception):
    def __init__(self, order_id):
        self.order_id = order_id
        self.code = OrderErrorCode.NOT_FOUND
        super().__init__(f"Order {order_id} not found")


class InvalidStatusTransition(Exception):
    """Raised when an order cannot move from its current status to another."""

    def __init__(self, order: "Order", new_status: str):
        self.order = order
        self.old_status = order.sleeves_status
        self.new_status = new_status
        self.code = OrderErrorCode.INVALID_STATUS_TRANSITION
        super().__init__(
            f"Cannot change order {order.order_number} from "
            f"'{self.old_status}' to '{new_status}'"
        )


class ConcurrentModificationConflict(Exception):
    """Raised when the order changed since the caller last read it."""

    def __init__(self, order: "Order", expected_version: int):
        self.order = order
        self.expected_version = expected_version
        self.current_version = order.version
        self.code = OrderErrorCode.CONCURRENT_MODIFICATION
        super().__init__(
            f"Order {order.order_number} was modified concurrently "
            f"(expected version {expected_version}, found {order.version}). "
            "Reload the order and try again."
        )


class ImmutabilityViolation(Exception):
    """Raised when a change would desynchronize stock from the ledger.

    Covers editing line items of an order whose stock was deducted, hard
    deleting such an order, and deleting a product that open orders still
    reference.
    """

    def __init__(self, message: str):
        self.code = OrderErrorCode.IMMUTABLE
        super().__init__(message)
