from enum import Enum


class PickingSessionErrorCode(Enum):
    INVALID_STATUS = "invalid_status"
    ORDER_NOT_ELIGIBLE = "order_not_eligible"
    ORDER_IN_ACTIVE_SESSION = "order_in_active_session"
    INVALID_QUANTITY = "invalid_quantity"
    INCOMPLETE_PICKING = "incomplete_picking"
