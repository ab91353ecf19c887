class MovementType:
    """Reason a stock counter changed; one per InventoryMovement row."""

    ORDER_READY_TO_SHIP = "order_ready_to_ship"
    ORDER_SHIPPED = "order_shipped"
    ORDER_IN_TRANSIT = "order_in_transit"
    ORDER_DELIVERED = "order_delivered"
    ORDER_CANCELLED = "order_cancelled"  # Cancelled or rejected after deduction
    ORDER_REVERTED = "order_reverted"  # Moved back to a pre-shipment status

    INBOUND_RECEIPT = "inbound_receipt"
    INBOUND_CORRECTION = "inbound_correction"
    RETURN_ACCEPTED = "return_accepted"
    MANUAL_ADJUSTMENT = "manual_adjustment"

    CHOICES = [
        (ORDER_READY_TO_SHIP, "Order ready to ship"),
        (ORDER_SHIPPED, "Order shipped"),
        (ORDER_IN_TRANSIT, "Order in transit"),
        (ORDER_DELIVERED, "Order delivered"),
        (ORDER_CANCELLED, "Order cancelled"),
        (ORDER_REVERTED, "Order reverted"),
        (INBOUND_RECEIPT, "Inbound receipt"),
        (INBOUND_CORRECTION, "Inbound correction"),
        (RETURN_ACCEPTED, "Return accepted"),
        (MANUAL_ADJUSTMENT, "Manual adjustment"),
    ]

    @staticmethod
    def for_deduction(status: str) -> str:
        """Movement type of a deduction triggered by entering ``status``."""
        return f"order_{status}"


class StockEffect:
    """What a status transition does to the stock of an order's line items."""

    DEDUCT = "deduct"
    CANCEL = "cancel"
    REVERT = "revert"


class StockSource:
    """Counter a line item draws from."""

    PRODUCT = "product"  # Plain products and bundles (shared parent pool)
    VARIANT = "variant"  # Variations with their own stock

    CHOICES = [
        (PRODUCT, "Product"),
        (VARIANT, "Variant"),
    ]
