from enum import Enum


class OrderErrorCode(Enum):
    NOT_FOUND = "not_found"
    INVALID_STATUS_TRANSITION = "invalid_status_transition"
    CONCURRENT_MODIFICATION = "concurrent_modification"
    IMMUTABLE = "immutable"
