from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from ..account.models import Store

# Catch-all zones, in order of preference
FALLBACK_ZONE_NAMES = ["default", "otros", "interior", "general"]


class Carrier(models.Model):
    """A courier the store hands orders to for last-mile delivery."""

    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="carriers")
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=64, blank=True)
    is_active = models.BooleanField(default=True)
    failed_attempt_fee_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=settings.SETTLEMENT_DEFAULT_FAILED_ATTEMPT_FEE_PERCENT,
        validators=[MinValueValidator(Decimal(0)), MaxValueValidator(Decimal(100))],
        help_text="Share of the zone rate charged for a failed delivery attempt",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("name", "pk")

    def __str__(self):
        return self.name

    def get_zone_rate(self, zone_name):
        """Return the delivery rate for ``zone_name``.

        Zones are matched case-insensitively. Without an active rate for the
        zone the carrier's catch-all zone is used, then the
        ``SETTLEMENT_DEFAULT_CARRIER_RATE`` setting.
        """
        zones = {
            zone.zone_name.strip().lower(): zone.rate
            for zone in self.zones.filter(is_active=True)
        }
        zone_name = (zone_name or "").strip().lower()
        if zone_name in zones:
            return zones[zone_name]
        for fallback in FALLBACK_ZONE_NAMES:
            if fallback in zones:
                return zones[fallback]
        return settings.SETTLEMENT_DEFAULT_CARRIER_RATE


class CarrierZone(models.Model):
    carrier = models.ForeignKey(Carrier, on_delete=models.CASCADE, related_name="zones")
    zone_name = models.CharField(max_length=255)
    rate = models.DecimalField(
        max_digits=settings.DEFAULT_MAX_DIGITS,
        decimal_places=settings.DEFAULT_DECIMAL_PLACES,
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ("zone_name", "pk")
        constraints = [
            models.UniqueConstraint(
                fields=["carrier", "zone_name"],
                name="shipping_carrierzone_carrier_zone_name_uniq",
            )
        ]

    def __str__(self):
        return f"{self.carrier.name} / {self.zone_name}"
