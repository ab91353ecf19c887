from decimal import Decimal

from django.conf import settings
from django.db import models
from prices import Money

from ..account.models import Store
from ..order.models import Order
from ..shipping.models import Carrier
from . import DispatchSessionStatus, SettlementStatus


def _amount_field(**kwargs):
    kwargs.setdefault("default", Decimal(0))
    return models.DecimalField(
        max_digits=settings.DEFAULT_MAX_DIGITS,
        decimal_places=settings.DEFAULT_DECIMAL_PLACES,
        **kwargs,
    )


class DailySettlement(models.Model):
    """What a courier owes the store for one day of deliveries.

    All totals are computed from the orders after the reconciliation updated
    them and never edited afterwards, except for the payment fields.
    """

    store = models.ForeignKey(
        Store, on_delete=models.CASCADE, related_name="daily_settlements"
    )
    carrier = models.ForeignKey(
        Carrier, on_delete=models.PROTECT, related_name="daily_settlements"
    )
    settlement_code = models.CharField(max_length=32)
    settlement_date = models.DateField()
    currency = models.CharField(
        max_length=settings.DEFAULT_CURRENCY_CODE_LENGTH,
        default=settings.DEFAULT_CURRENCY,
    )

    total_dispatched = models.PositiveIntegerField(default=0)
    total_delivered = models.PositiveIntegerField(default=0)
    total_not_delivered = models.PositiveIntegerField(default=0)
    total_cod_delivered = models.PositiveIntegerField(default=0)
    total_prepaid_delivered = models.PositiveIntegerField(default=0)

    total_cod_expected = _amount_field()
    total_cod_collected = _amount_field()
    total_carrier_fees = _amount_field()
    failed_attempt_fee = _amount_field()
    net_receivable = _amount_field(
        help_text="Collected cash minus carrier fees; negative if the store owes"
    )
    amount_paid = _amount_field()

    status = models.CharField(
        max_length=16,
        choices=SettlementStatus.CHOICES,
        default=SettlementStatus.PENDING,
    )
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-settlement_date", "pk")
        constraints = [
            models.UniqueConstraint(
                fields=["store", "settlement_code"],
                name="settlement_dailysettlement_code_uniq",
            )
        ]

    def __str__(self):
        return self.settlement_code

    @property
    def balance_due(self) -> Decimal:
        return self.net_receivable - self.amount_paid

    @property
    def net_receivable_money(self) -> Money:
        return Money(self.net_receivable, self.currency)

    @property
    def balance_due_money(self) -> Money:
        return Money(self.balance_due, self.currency)


class DispatchSession(models.Model):
    """Orders handed to one courier on one day (DISP-DDMMYYYY-NNN)."""

    store = models.ForeignKey(
        Store, on_delete=models.CASCADE, related_name="dispatch_sessions"
    )
    carrier = models.ForeignKey(
        Carrier, on_delete=models.PROTECT, related_name="dispatch_sessions"
    )
    session_code = models.CharField(max_length=32)
    dispatch_date = models.DateField()
    status = models.CharField(
        max_length=16,
        choices=DispatchSessionStatus.CHOICES,
        default=DispatchSessionStatus.DISPATCHED,
    )

    total_orders = models.PositiveIntegerField(default=0)
    total_cod_expected = _amount_field()
    total_prepaid = models.PositiveIntegerField(default=0)

    daily_settlement = models.ForeignKey(
        DailySettlement,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="dispatch_sessions",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    settled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ("-dispatch_date", "pk")
        constraints = [
            models.UniqueConstraint(
                fields=["store", "session_code"],
                name="settlement_dispatchsession_code_uniq",
            )
        ]

    def __str__(self):
        return self.session_code


class DispatchSessionOrder(models.Model):
    """Snapshot of an order at the moment it was handed to the courier."""

    session = models.ForeignKey(
        DispatchSession, on_delete=models.CASCADE, related_name="session_orders"
    )
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE, related_name="dispatch_session_orders"
    )
    order_number = models.CharField(max_length=64)
    delivery_zone = models.CharField(max_length=255, blank=True)
    total_price = _amount_field()
    is_cod = models.BooleanField(default=True)
    carrier_fee = _amount_field()

    class Meta:
        ordering = ("pk",)
        constraints = [
            models.UniqueConstraint(
                fields=["session", "order"],
                name="settlement_dispatchsessionorder_session_order_uniq",
            )
        ]
