"""Custom exceptions for courier dispatch and settlement."""

from decimal import Decimal

from .error_codes import SettlementErrorCode


class InvalidReconciliationBatch(Exception):
    """Raised when a dispatch or reconciliation batch fails validation.

    Raised before or during the batch; either way every write of the batch is
    rolled back.
    """

    def __init__(self, message: str):
        self.code = SettlementErrorCode.INVALID_BATCH
        super().__init__(message)


class UnconfirmedDiscrepancy(Exception):
    """Raised when collected cash differs from the expected COD total."""

    def __init__(self, discrepancy: Decimal, expected: Decimal, collected: Decimal):
        self.discrepancy = discrepancy
        self.expected = expected
        self.collected = collected
        self.code = SettlementErrorCode.UNCONFIRMED_DISCREPANCY
        super().__init__(
            f"Collected {collected} but expected {expected} "
            f"(discrepancy {discrepancy:+}). Confirm the discrepancy to settle."
        )


class InvalidSettlementPayment(Exception):
    def __init__(self, message: str):
        self.code = SettlementErrorCode.INVALID_PAYMENT
        super().__init__(message)
