class PickingSessionStatus:
    PICKING = "picking"
    PACKING = "packing"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    CHOICES = [
        (PICKING, "Picking"),
        (PACKING, "Packing"),
        (COMPLETED, "Completed"),
        (ABANDONED, "Abandoned"),
    ]

    ACTIVE_STATUSES = [PICKING, PACKING]
