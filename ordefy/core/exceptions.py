from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .error_codes import ReferenceCodeErrorCode, StockErrorCode

if TYPE_CHECKING:
    from ..order.models import OrderLineItem
    from ..product.models import Product, ProductVariant


@dataclass
class InsufficientStockData:
    product: "Product"
    required_quantity: int
    available_quantity: int
    variant: Optional["ProductVariant"] = None
    line_item: Optional["OrderLineItem"] = None

    @property
    def shortage(self) -> int:
        return max(0, self.required_quantity - self.available_quantity)

    def __str__(self):
        label = self.product.name
        if self.variant is not None:
            label = f"{label} / {self.variant.name}"
        sku = (self.variant.sku if self.variant else None) or self.product.sku
        return (
            f'"{label}" (SKU: {sku or "N/A"}). '
            f"Required: {self.required_quantity}, "
            f"Available: {self.available_quantity}"
        )


class InsufficientStock(Exception):
    """Raised when a stock pool cannot cover a deduction.

    Always fatal for the surrounding operation: the caller's transaction is
    rolled back and no stock moves.
    """

    def __init__(self, items: list[InsufficientStockData]):
        details = "; ".join(str(item) for item in items)
        super().__init__(f"Insufficient stock for {details}")
        self.items = items
        self.code = StockErrorCode.INSUFFICIENT_STOCK


class ReferenceGenerationExhausted(Exception):
    """Raised when a per-store daily reference sequence is used up."""

    def __init__(self, prefix: str, store_id, day, limit: int):
        self.prefix = prefix
        self.store_id = store_id
        self.day = day
        self.limit = limit
        self.code = ReferenceCodeErrorCode.SEQUENCE_EXHAUSTED
        super().__init__(
            f"Maximum daily {prefix} codes ({limit}) exceeded for store "
            f"{store_id} on {day:%d%m%Y}"
        )
