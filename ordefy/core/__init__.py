class ReferencePrefix:
    """Prefixes of the human readable, per-store daily reference codes."""

    PICKING_SESSION = "PREP"
    DISPATCH_SESSION = "DISP"
    SETTLEMENT = "LIQ"

    CHOICES = [
        (PICKING_SESSION, "Picking session"),
        (DISPATCH_SESSION, "Dispatch session"),
        (SETTLEMENT, "Settlement"),
    ]
