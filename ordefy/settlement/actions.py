"""Courier dispatch and manual cash-on-delivery reconciliation."""

import datetime
import logging
from decimal import ROUND_HALF_UP, Decimal

import attrs
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from prices import Money

from ..core import ReferencePrefix
from ..core.sequences import generate_reference_code
from ..order import OrderStatus
from ..order.actions import transition_order_status
from ..order.models import Order
from . import DispatchSessionStatus, SettlementStatus
from .exceptions import (
    InvalidReconciliationBatch,
    InvalidSettlementPayment,
    UnconfirmedDiscrepancy,
)
from .models import DailySettlement, DispatchSession, DispatchSessionOrder

logger = logging.getLogger(__name__)


@attrs.frozen
class DeliveryResult:
    """What the courier reported for one dispatched order."""

    order_id: int
    delivered: bool
    failure_reason: str = ""
    notes: str = ""


def quantize_amount(amount: Decimal) -> Decimal:
    exp = Decimal(1).scaleb(-settings.DEFAULT_DECIMAL_PLACES)
    return amount.quantize(exp, rounding=ROUND_HALF_UP)


def distribute_discrepancy(expected: list[Decimal], total_collected: Decimal):
    """Split ``total_collected`` over orders with the given expected amounts.

    Each order gets its expected amount plus an equal share of the difference,
    rounded to cents. Whatever rounding leaves over goes to the last order, so
    the amounts always add up to ``total_collected``.
    """
    if not expected:
        return []
    share = (total_collected - sum(expected)) / len(expected)
    collected = [quantize_amount(amount + share) for amount in expected]
    collected[-1] += quantize_amount(total_collected) - sum(collected)
    return collected


def _lock_orders(store, order_ids):
    return {
        order.pk: order
        for order in Order.objects.active()
        .for_store(store)
        .select_for_update()
        .filter(pk__in=order_ids)
        .order_by("pk")
    }


@transaction.atomic
def create_dispatch_session(
    store, carrier, order_ids, dispatch_date: datetime.date | None = None, user=None
) -> DispatchSession:
    """Hand ready orders over to a courier.

    The orders are assigned to ``carrier`` and move to ``shipped``. Their
    amounts and zone rates are snapshotted for the later reconciliation.
    """
    if carrier.store_id != store.pk:
        raise InvalidReconciliationBatch(
            f"Carrier {carrier.pk} does not belong to store {store.pk}"
        )
    order_ids = sorted(set(order_ids))
    if not order_ids:
        raise InvalidReconciliationBatch("A dispatch needs at least one order")

    orders = _lock_orders(store, order_ids)
    for order_id in order_ids:
        order = orders.get(order_id)
        if order is None:
            raise InvalidReconciliationBatch(f"Order {order_id} not found")
        if order.sleeves_status != OrderStatus.READY_TO_SHIP:
            raise InvalidReconciliationBatch(
                f"Order {order.order_number} is '{order.sleeves_status}', "
                "expected 'ready_to_ship'"
            )

    dispatch_date = dispatch_date or timezone.localdate()
    session = DispatchSession.objects.create(
        store=store,
        carrier=carrier,
        session_code=generate_reference_code(
            store, ReferencePrefix.DISPATCH_SESSION, day=dispatch_date
        ),
        dispatch_date=dispatch_date,
        created_by=user,
    )

    snapshots = []
    for order in orders.values():
        order.carrier = carrier
        order.save(update_fields=["carrier"])
        order = transition_order_status(order.pk, OrderStatus.SHIPPED, user=user)
        snapshots.append(
            DispatchSessionOrder(
                session=session,
                order=order,
                order_number=order.order_number,
                delivery_zone=order.delivery_zone,
                total_price=order.total_price,
                is_cod=order.is_cash_on_delivery,
                carrier_fee=carrier.get_zone_rate(order.delivery_zone),
            )
        )
    DispatchSessionOrder.objects.bulk_create(snapshots)

    session.total_orders = len(snapshots)
    session.total_cod_expected = sum(
        (snapshot.total_price for snapshot in snapshots if snapshot.is_cod),
        Decimal(0),
    )
    session.total_prepaid = sum(1 for snapshot in snapshots if not snapshot.is_cod)
    session.save(update_fields=["total_orders", "total_cod_expected", "total_prepaid"])

    logger.info(
        "Dispatched %s orders with carrier %s (%s)",
        len(snapshots),
        carrier.pk,
        session.session_code,
    )
    return session


def _lock_dispatch_session(store, carrier, dispatch_session, order_ids):
    session = (
        DispatchSession.objects.select_for_update()
        .filter(pk=dispatch_session.pk)
        .first()
    )
    if session is None:
        raise InvalidReconciliationBatch(
            f"Dispatch session {dispatch_session.pk} not found"
        )
    if session.store_id != store.pk or session.carrier_id != carrier.pk:
        raise InvalidReconciliationBatch(
            f"Dispatch session {session.session_code} does not belong to "
            f"store {store.pk} and carrier {carrier.pk}"
        )
    if session.status != DispatchSessionStatus.DISPATCHED:
        raise InvalidReconciliationBatch(
            f"Dispatch session {session.session_code} is {session.status}"
        )
    session_order_ids = set(session.session_orders.values_list("order_id", flat=True))
    foreign = [order_id for order_id in order_ids if order_id not in session_order_ids]
    if foreign:
        raise InvalidReconciliationBatch(
            f"Orders {foreign} are not part of dispatch session "
            f"{session.session_code}"
        )
    return session


def _validate_batch(
    store, carrier, results, total_amount_collected, dispatch_session=None
):
    """Validate the batch and lock its orders and dispatch session.

    Returns the locked dispatch session, if one was given.
    """
    if carrier.store_id != store.pk:
        raise InvalidReconciliationBatch(
            f"Carrier {carrier.pk} does not belong to store {store.pk}"
        )
    if total_amount_collected is None or total_amount_collected < 0:
        raise InvalidReconciliationBatch("Collected amount cannot be negative")
    if not results:
        raise InvalidReconciliationBatch(
            "At least one order is required for reconciliation"
        )
    order_ids = [result.order_id for result in results]
    if len(set(order_ids)) != len(order_ids):
        raise InvalidReconciliationBatch("An order appears twice in the batch")

    orders = _lock_orders(store, order_ids)
    for result in results:
        order = orders.get(result.order_id)
        if order is None:
            raise InvalidReconciliationBatch(f"Order {result.order_id} not found")
        if (
            order.sleeves_status != OrderStatus.SHIPPED
            or order.carrier_id != carrier.pk
        ):
            raise InvalidReconciliationBatch(
                f"Order {order.order_number} is not shipped with carrier {carrier.pk}"
            )
        if not result.delivered and not result.failure_reason:
            raise InvalidReconciliationBatch(
                f"Order {order.order_number} failed but no failure reason was given"
            )

    if dispatch_session is None:
        return None
    return _lock_dispatch_session(store, carrier, dispatch_session, order_ids)


def _apply_delivery_results(results, user):
    for result in results:
        if result.delivered:
            transition_order_status(result.order_id, OrderStatus.DELIVERED, user=user)
            continue
        # A failed attempt goes back to the shelf for another dispatch
        order = transition_order_status(
            result.order_id, OrderStatus.READY_TO_SHIP, user=user
        )
        order.delivery_notes = result.notes or result.failure_reason
        order.save(update_fields=["delivery_notes"])


@transaction.atomic
def process_manual_reconciliation(
    store,
    carrier,
    dispatch_date: datetime.date,
    total_amount_collected: Decimal,
    results: list[DeliveryResult],
    confirm_discrepancy: bool = False,
    discrepancy_notes: str = "",
    dispatch_session: DispatchSession | None = None,
    user=None,
) -> DailySettlement:
    """Record what a courier delivered and collected, and settle it.

    Every order of the batch is validated, then all status and amount updates
    are applied, and only then are the settlement totals computed from the
    updated orders. Any error rolls back the whole batch.

    Raises:
        InvalidReconciliationBatch: if the input or any order is invalid, or
            if ``dispatch_session`` is not an open session of ``store`` and
            ``carrier`` holding every order of the batch.
        UnconfirmedDiscrepancy: if the collected cash differs from the COD
            total by more than ``SETTLEMENT_DISCREPANCY_TOLERANCE`` and the
            caller did not confirm it.

    """
    dispatch_session = _validate_batch(
        store, carrier, results, total_amount_collected, dispatch_session
    )
    total_amount_collected = Decimal(total_amount_collected)
    _apply_delivery_results(results, user)

    orders = list(
        Order.objects.filter(pk__in=[result.order_id for result in results]).order_by(
            "pk"
        )
    )
    delivered = [o for o in orders if o.sleeves_status == OrderStatus.DELIVERED]
    failed = [o for o in orders if o.sleeves_status != OrderStatus.DELIVERED]
    cod_delivered = [o for o in delivered if o.is_cash_on_delivery]

    currency = store.currency
    zero = Money(0, currency)
    carrier_fees = sum(
        (Money(carrier.get_zone_rate(o.delivery_zone), currency) for o in delivered),
        zero,
    )
    fee_share = carrier.failed_attempt_fee_percent / Decimal(100)
    failed_fees = sum(
        (Money(carrier.get_zone_rate(o.delivery_zone), currency) for o in failed),
        zero,
    ) * fee_share
    cod_expected = sum((Money(o.total_price, currency) for o in cod_delivered), zero)
    collected = Money(total_amount_collected, currency)

    discrepancy = collected - cod_expected
    tolerance = settings.SETTLEMENT_DISCREPANCY_TOLERANCE
    has_discrepancy = abs(discrepancy.amount) > tolerance
    if has_discrepancy and not confirm_discrepancy:
        raise UnconfirmedDiscrepancy(
            discrepancy.amount, cod_expected.amount, collected.amount
        )
    if has_discrepancy and not cod_delivered:
        raise InvalidReconciliationBatch(
            f"There is a discrepancy of {discrepancy.amount} but no delivered "
            "cash-on-delivery order to assign it to"
        )

    if has_discrepancy:
        amounts = distribute_discrepancy(
            [o.total_price for o in cod_delivered], collected.amount
        )
    else:
        amounts = [o.total_price for o in cod_delivered]
    for order, amount in zip(cod_delivered, amounts):
        order.amount_collected = amount
        order.has_amount_discrepancy = has_discrepancy
        order.save(update_fields=["amount_collected", "has_amount_discrepancy"])

    notes = discrepancy_notes
    if has_discrepancy:
        parts = [notes] if notes else []
        parts.append(f"Discrepancy: {quantize_amount(discrepancy.amount):+}")
        notes = " | ".join(parts)

    settlement = DailySettlement.objects.create(
        store=store,
        carrier=carrier,
        settlement_code=generate_reference_code(store, ReferencePrefix.SETTLEMENT),
        settlement_date=dispatch_date,
        currency=currency,
        total_dispatched=len(orders),
        total_delivered=len(delivered),
        total_not_delivered=len(failed),
        total_cod_delivered=len(cod_delivered),
        total_prepaid_delivered=len(delivered) - len(cod_delivered),
        total_cod_expected=quantize_amount(cod_expected.amount),
        total_cod_collected=quantize_amount(collected.amount),
        total_carrier_fees=quantize_amount(carrier_fees.amount),
        failed_attempt_fee=quantize_amount(failed_fees.amount),
        net_receivable=quantize_amount((collected - carrier_fees - failed_fees).amount),
        notes=notes,
        created_by=user,
    )

    if dispatch_session is not None:
        DispatchSession.objects.filter(pk=dispatch_session.pk).update(
            status=DispatchSessionStatus.SETTLED,
            daily_settlement=settlement,
            settled_at=timezone.now(),
        )

    logger.info(
        "Settlement %s: %s delivered, %s failed, net receivable %s",
        settlement.settlement_code,
        len(delivered),
        len(failed),
        settlement.net_receivable,
    )
    return settlement


@transaction.atomic
def record_settlement_payment(settlement: DailySettlement, amount: Decimal):
    """Register a payment against a settlement's outstanding balance."""
    amount = Decimal(amount)
    if amount <= 0:
        raise InvalidSettlementPayment("Payment amount must be positive")

    settlement = DailySettlement.objects.select_for_update().get(pk=settlement.pk)
    if settlement.status == SettlementStatus.PAID:
        raise InvalidSettlementPayment(
            f"Settlement {settlement.settlement_code} is already paid"
        )

    settlement.amount_paid += amount
    settlement.status = (
        SettlementStatus.PAID
        if settlement.balance_due <= 0
        else SettlementStatus.PARTIAL
    )
    settlement.save(update_fields=["amount_paid", "status", "updated_at"])
    return settlement
