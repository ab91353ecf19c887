class OrderStatus:
    """Fulfillment status of an order (``Order.sleeves_status``)."""

    PENDING = "pending"
    CONTACTED = "contacted"
    CONFIRMED = "confirmed"
    IN_PREPARATION = "in_preparation"
    READY_TO_SHIP = "ready_to_ship"
    SHIPPED = "shipped"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    RETURNED = "returned"
    CANCELLED = "cancelled"
    REJECTED = "rejected"

    CHOICES = [
        (PENDING, "Pending"),
        (CONTACTED, "Contacted"),
        (CONFIRMED, "Confirmed"),
        (IN_PREPARATION, "In preparation"),
        (READY_TO_SHIP, "Ready to ship"),
        (SHIPPED, "Shipped"),
        (IN_TRANSIT, "In transit"),
        (DELIVERED, "Delivered"),
        (RETURNED, "Returned"),
        (CANCELLED, "Cancelled"),
        (REJECTED, "Rejected"),
    ]

    ALL = [value for value, _ in CHOICES]

    # First entry into any of these removes the goods from physical stock
    STOCK_AFFECTING_STATUSES = [READY_TO_SHIP, SHIPPED, IN_TRANSIT, DELIVERED]

    # Leaving the stock-affecting set for one of these gives the stock back
    RELEASE_STATUSES = [CANCELLED, REJECTED]
    PRE_SHIPMENT_STATUSES = [PENDING, CONTACTED, CONFIRMED, IN_PREPARATION]

    TERMINAL_STATUSES = [CANCELLED, REJECTED, RETURNED]
    RETURNABLE_STATUSES = [SHIPPED, IN_TRANSIT, DELIVERED]

    # Orders in these statuses no longer hold on to the products they reference
    CLOSED_STATUSES = [DELIVERED, CANCELLED, REJECTED, RETURNED]

    # Orders in these statuses do not count towards customer totals
    NOT_COUNTED_STATUSES = [CANCELLED, REJECTED]


class PaymentMethod:
    CASH_ON_DELIVERY = "cod"
    PREPAID = "prepaid"
    CARD = "card"
    TRANSFER = "transfer"

    CHOICES = [
        (CASH_ON_DELIVERY, "Cash on delivery"),
        (PREPAID, "Prepaid"),
        (CARD, "Card"),
        (TRANSFER, "Bank transfer"),
    ]

    COLLECTED_ON_DELIVERY = [CASH_ON_DELIVERY]
