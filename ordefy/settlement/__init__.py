class DispatchSessionStatus:
    DISPATCHED = "dispatched"  # Orders handed to the courier
    SETTLED = "settled"  # Courier results reconciled into a settlement
    CANCELLED = "cancelled"

    CHOICES = [
        (DISPATCHED, "Dispatched"),
        (SETTLED, "Settled"),
        (CANCELLED, "Cancelled"),
    ]


class SettlementStatus:
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"

    CHOICES = [
        (PENDING, "Pending"),
        (PARTIAL, "Partially paid"),
        (PAID, "Paid"),
    ]
