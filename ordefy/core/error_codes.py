from enum import Enum


class StockErrorCode(Enum):
    INSUFFICIENT_STOCK = "insufficient_stock"
    INVALID_QUANTITY = "invalid_quantity"
    NOT_FOUND = "not_found"
    UNMAPPED_PRODUCT = "unmapped_product"
    INVALID_ORDER_STATUS = "invalid_order_status"
    STOCK_INVARIANT_VIOLATION = "stock_invariant_violation"


class ReferenceCodeErrorCode(Enum):
    SEQUENCE_EXHAUSTED = "sequence_exhausted"
