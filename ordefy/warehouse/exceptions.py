"""Custom exceptions for picking session operations."""

from typing import TYPE_CHECKING

from .error_codes import PickingSessionErrorCode

if TYPE_CHECKING:
    from ..order.models import Order
    from .models import PickingSession, PickingSessionItem


class InvalidPickingSessionStatus(Exception):
    def __init__(self, session: "PickingSession", expected_statuses: list[str]):
        self.session = session
        self.expected_statuses = expected_statuses
        self.code = PickingSessionErrorCode.INVALID_STATUS
        super().__init__(
            f"Picking session {session.code} is '{session.status}', "
            f"expected one of: {', '.join(expected_statuses)}"
        )


class OrderNotEligibleForPicking(Exception):
    def __init__(self, order: "Order", reason: str):
        self.order = order
        self.code = PickingSessionErrorCode.ORDER_NOT_ELIGIBLE
        super().__init__(f"Order {order.order_number} cannot be picked: {reason}")


class OrderInActiveSession(Exception):
    def __init__(self, order: "Order", session_code: str):
        self.order = order
        self.session_code = session_code
        self.code = PickingSessionErrorCode.ORDER_IN_ACTIVE_SESSION
        super().__init__(
            f"Order {order.order_number} is already in picking session "
            f"{session_code}"
        )


class InvalidPickedQuantity(Exception):
    def __init__(self, item: "PickingSessionItem", quantity: int):
        self.item = item
        self.quantity = quantity
        self.code = PickingSessionErrorCode.INVALID_QUANTITY
        super().__init__(
            f"Picked quantity {quantity} is outside 0..{item.total_quantity_needed} "
            f"for {item}"
        )


class IncompletePicking(Exception):
    def __init__(self, session: "PickingSession", missing: int):
        self.session = session
        self.missing = missing
        self.code = PickingSessionErrorCode.INCOMPLETE_PICKING
        super().__init__(
            f"Picking session {session.code} still has {missing} units to pick"
        )
