from django.db import models

from . import ReferencePrefix


class ReferenceSequence(models.Model):
    """Last issued number of a daily reference code series for one store.

    The row is the lock: code generation selects it FOR UPDATE, so callers for
    the same store, prefix and day queue up while other stores and days proceed.
    """

    store = models.ForeignKey(
        "account.Store", on_delete=models.CASCADE, related_name="reference_sequences"
    )
    prefix = models.CharField(max_length=8, choices=ReferencePrefix.CHOICES)
    day = models.DateField()
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["store", "prefix", "day"],
                name="core_referencesequence_store_prefix_day_uniq",
            )
        ]

    def __str__(self):
        return f"{self.prefix}-{self.day:%d%m%Y} ({self.last_value})"
