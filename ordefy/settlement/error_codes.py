from enum import Enum


class SettlementErrorCode(Enum):
    INVALID_BATCH = "invalid_batch"
    UNCONFIRMED_DISCREPANCY = "unconfirmed_discrepancy"
    INVALID_PAYMENT = "invalid_payment"
