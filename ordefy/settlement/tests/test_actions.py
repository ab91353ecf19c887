import datetime
from decimal import Decimal

import pytest
from freezegun import freeze_time

from ...order import OrderStatus, PaymentMethod
from ...order.actions import LineItemData
from ...shipping.models import Carrier
from .. import DispatchSessionStatus, SettlementStatus
from ..actions import (
    DeliveryResult,
    create_dispatch_session,
    distribute_discrepancy,
    process_manual_reconciliation,
    record_settlement_payment,
)
from ..exceptions import (
    InvalidReconciliationBatch,
    InvalidSettlementPayment,
    UnconfirmedDiscrepancy,
)
from ..models import DailySettlement, DispatchSession

DISPATCH_DATE = datetime.date(2026, 1, 18)


@pytest.fixture
def ready_orders(order_factory, product):
    """Three COD orders and one prepaid order waiting for a courier."""

    def ready(total, zone, payment_method=PaymentMethod.CASH_ON_DELIVERY):
        return order_factory(
            [LineItemData(quantity=1, product=product)],
            status=OrderStatus.READY_TO_SHIP,
            total_price=Decimal(total),
            delivery_zone=zone,
            payment_method=payment_method,
        )

    return [
        ready(100000, "Asunción"),
        ready(150000, "interior"),
        ready(80000, "Luque", PaymentMethod.PREPAID),
        ready(50000, "ASUNCIÓN"),
    ]


@pytest.fixture
def dispatch_session(store, carrier, ready_orders):
    return create_dispatch_session(
        store, carrier, [order.pk for order in ready_orders], DISPATCH_DATE
    )


@pytest.fixture
def delivery_results(ready_orders):
    first, second, prepaid, failed = ready_orders
    return [
        DeliveryResult(first.pk, delivered=True),
        DeliveryResult(second.pk, delivered=True),
        DeliveryResult(prepaid.pk, delivered=True),
        DeliveryResult(failed.pk, delivered=False, failure_reason="Customer absent"),
    ]


def test_distribute_discrepancy_puts_rounding_on_last_order():
    # when
    amounts = distribute_discrepancy([Decimal("10.00")] * 3, Decimal("31.00"))

    # then
    assert amounts == [Decimal("10.33"), Decimal("10.33"), Decimal("10.34")]
    assert sum(amounts) == Decimal("31.00")


def test_distribute_discrepancy_shortfall():
    amounts = distribute_discrepancy(
        [Decimal(100000), Decimal(150000)], Decimal(249000)
    )
    assert amounts == [Decimal("99500.00"), Decimal("149500.00")]


def test_distribute_discrepancy_without_orders():
    assert distribute_discrepancy([], Decimal(10)) == []


def test_carrier_zone_rate_fallbacks(carrier, settings):
    # given
    settings.SETTLEMENT_DEFAULT_CARRIER_RATE = Decimal(25000)

    # then
    assert carrier.get_zone_rate(" asunción ") == Decimal(20000)
    assert carrier.get_zone_rate("Luque") == Decimal(30000)
    carrier.zones.filter(zone_name="Interior").update(is_active=False)
    assert carrier.get_zone_rate("Luque") == Decimal(25000)


@freeze_time("2026-01-18 15:00:00")
def test_create_dispatch_session(dispatch_session, ready_orders, carrier):
    # then
    assert dispatch_session.session_code == "DISP-18012026-001"
    assert dispatch_session.status == DispatchSessionStatus.DISPATCHED
    assert dispatch_session.total_orders == 4
    assert dispatch_session.total_cod_expected == Decimal(300000)
    assert dispatch_session.total_prepaid == 1

    fees = dict(
        dispatch_session.session_orders.values_list("order_id", "carrier_fee")
    )
    assert fees[ready_orders[0].pk] == Decimal(20000)
    assert fees[ready_orders[2].pk] == Decimal(30000)

    for order in ready_orders:
        order.refresh_from_db()
        assert order.sleeves_status == OrderStatus.SHIPPED
        assert order.carrier == carrier


def test_create_dispatch_session_requires_ready_orders(store, carrier, order):
    # when
    with pytest.raises(InvalidReconciliationBatch):
        create_dispatch_session(store, carrier, [order.pk])

    # then
    order.refresh_from_db()
    assert order.carrier is None


def test_create_dispatch_session_with_carrier_of_other_store(
    other_store, ready_orders
):
    other_carrier = Carrier.objects.create(store=other_store, name="Other")
    with pytest.raises(InvalidReconciliationBatch):
        create_dispatch_session(
            ready_orders[0].store, other_carrier, [ready_orders[0].pk]
        )


@freeze_time("2026-01-18 22:00:00")
def test_process_manual_reconciliation(
    store, carrier, ready_orders, dispatch_session, delivery_results, staff_user
):
    # when
    settlement = process_manual_reconciliation(
        store,
        carrier,
        DISPATCH_DATE,
        Decimal(250000),
        delivery_results,
        dispatch_session=dispatch_session,
        user=staff_user,
    )

    # then
    assert settlement.settlement_code == "LIQ-18012026-001"
    assert settlement.total_dispatched == 4
    assert settlement.total_delivered == 3
    assert settlement.total_not_delivered == 1
    assert settlement.total_cod_delivered == 2
    assert settlement.total_prepaid_delivered == 1
    assert settlement.total_cod_expected == Decimal(250000)
    assert settlement.total_cod_collected == Decimal(250000)
    assert settlement.total_carrier_fees == Decimal(80000)
    assert settlement.failed_attempt_fee == Decimal(10000)
    assert settlement.net_receivable == Decimal(160000)
    assert settlement.status == SettlementStatus.PENDING
    assert settlement.created_by == staff_user

    first, second, prepaid, failed = ready_orders
    for order in (first, second, prepaid):
        order.refresh_from_db()
        assert order.sleeves_status == OrderStatus.DELIVERED
        assert order.delivered_at is not None
    first.refresh_from_db()
    assert first.amount_collected == Decimal(100000)
    assert first.has_amount_discrepancy is False
    assert prepaid.amount_collected is None

    failed.refresh_from_db()
    assert failed.sleeves_status == OrderStatus.READY_TO_SHIP
    assert failed.delivery_notes == "Customer absent"

    dispatch_session.refresh_from_db()
    assert dispatch_session.status == DispatchSessionStatus.SETTLED
    assert dispatch_session.daily_settlement == settlement


def test_unconfirmed_discrepancy_rolls_back_batch(
    store, carrier, ready_orders, dispatch_session, delivery_results
):
    # when
    with pytest.raises(UnconfirmedDiscrepancy) as exc:
        process_manual_reconciliation(
            store, carrier, DISPATCH_DATE, Decimal(249000), delivery_results
        )

    # then
    assert exc.value.discrepancy == Decimal(-1000)
    assert not DailySettlement.objects.exists()
    for order in ready_orders:
        order.refresh_from_db()
        assert order.sleeves_status == OrderStatus.SHIPPED
        assert order.amount_collected is None


def test_confirmed_discrepancy_is_distributed(
    store, carrier, ready_orders, dispatch_session, delivery_results
):
    # when
    settlement = process_manual_reconciliation(
        store,
        carrier,
        DISPATCH_DATE,
        Decimal(249000),
        delivery_results,
        confirm_discrepancy=True,
        discrepancy_notes="Courier short on change",
    )

    # then
    first, second = ready_orders[0], ready_orders[1]
    first.refresh_from_db()
    second.refresh_from_db()
    assert first.amount_collected == Decimal(99500)
    assert second.amount_collected == Decimal(149500)
    assert first.has_amount_discrepancy is True
    assert settlement.total_cod_collected == Decimal(249000)
    assert settlement.notes == "Courier short on change | Discrepancy: -1000.00"


def test_discrepancy_without_cod_deliveries_is_rejected(
    store, carrier, ready_orders, dispatch_session
):
    # given - only the prepaid order was delivered
    results = [DeliveryResult(ready_orders[2].pk, delivered=True)]

    # when / then
    with pytest.raises(InvalidReconciliationBatch):
        process_manual_reconciliation(
            store,
            carrier,
            DISPATCH_DATE,
            Decimal(5000),
            results,
            confirm_discrepancy=True,
        )
    ready_orders[2].refresh_from_db()
    assert ready_orders[2].sleeves_status == OrderStatus.SHIPPED


@pytest.mark.parametrize(
    "make_results",
    [
        lambda orders: [],
        lambda orders: [
            DeliveryResult(orders[0].pk, delivered=True),
            DeliveryResult(orders[0].pk, delivered=True),
        ],
        lambda orders: [DeliveryResult(orders[0].pk, delivered=False)],
        lambda orders: [DeliveryResult(123456, delivered=True)],
    ],
)
def test_invalid_batch_is_rejected_before_any_write(
    store, carrier, ready_orders, dispatch_session, make_results
):
    # when
    with pytest.raises(InvalidReconciliationBatch):
        process_manual_reconciliation(
            store, carrier, DISPATCH_DATE, Decimal(0), make_results(ready_orders)
        )

    # then
    assert not DailySettlement.objects.exists()
    ready_orders[0].refresh_from_db()
    assert ready_orders[0].sleeves_status == OrderStatus.SHIPPED


def test_batch_with_order_not_shipped_is_rejected(
    store, carrier, ready_orders, dispatch_session, order
):
    # given
    results = [
        DeliveryResult(ready_orders[0].pk, delivered=True),
        DeliveryResult(order.pk, delivered=True),
    ]

    # when
    with pytest.raises(InvalidReconciliationBatch):
        process_manual_reconciliation(
            store, carrier, DISPATCH_DATE, Decimal(100000), results
        )

    # then
    ready_orders[0].refresh_from_db()
    assert ready_orders[0].sleeves_status == OrderStatus.SHIPPED


@pytest.mark.parametrize("amount", [None, Decimal(-1)])
def test_invalid_collected_amount_is_rejected(
    store, carrier, dispatch_session, delivery_results, amount
):
    with pytest.raises(InvalidReconciliationBatch):
        process_manual_reconciliation(
            store, carrier, DISPATCH_DATE, amount, delivery_results
        )


@pytest.fixture
def settlement(store, carrier, dispatch_session, delivery_results):
    return process_manual_reconciliation(
        store, carrier, DISPATCH_DATE, Decimal(250000), delivery_results
    )


def test_record_settlement_payment(settlement):
    # when
    settlement = record_settlement_payment(settlement, Decimal(100000))

    # then
    assert settlement.status == SettlementStatus.PARTIAL
    assert settlement.balance_due == Decimal(60000)

    # when
    settlement = record_settlement_payment(settlement, Decimal(60000))

    # then
    assert settlement.status == SettlementStatus.PAID
    assert settlement.balance_due_money.amount == Decimal(0)

    with pytest.raises(InvalidSettlementPayment):
        record_settlement_payment(settlement, Decimal(1))


def test_record_settlement_payment_must_be_positive(settlement):
    with pytest.raises(InvalidSettlementPayment):
        record_settlement_payment(settlement, Decimal(0))


def test_settled_dispatch_session_cannot_be_settled_again(
    store, carrier, ready_orders, dispatch_session, delivery_results
):
    # given - the failed order goes out again in a new session
    settlement = process_manual_reconciliation(
        store,
        carrier,
        DISPATCH_DATE,
        Decimal(250000),
        delivery_results,
        dispatch_session=dispatch_session,
    )
    failed = ready_orders[3]
    second_session = create_dispatch_session(store, carrier, [failed.pk], DISPATCH_DATE)

    # when
    with pytest.raises(InvalidReconciliationBatch):
        process_manual_reconciliation(
            store,
            carrier,
            DISPATCH_DATE,
            Decimal(50000),
            [DeliveryResult(failed.pk, delivered=True)],
            dispatch_session=dispatch_session,
        )

    # then
    dispatch_session.refresh_from_db()
    assert dispatch_session.daily_settlement == settlement
    second_session.refresh_from_db()
    assert second_session.status == DispatchSessionStatus.DISPATCHED
    failed.refresh_from_db()
    assert failed.sleeves_status == OrderStatus.SHIPPED


def test_dispatch_session_of_other_carrier_is_rejected(
    store, carrier, dispatch_session, delivery_results
):
    # given
    other_carrier = Carrier.objects.create(store=store, name="Bike courier")

    # when
    with pytest.raises(InvalidReconciliationBatch):
        process_manual_reconciliation(
            store,
            carrier,
            DISPATCH_DATE,
            Decimal(250000),
            delivery_results,
            dispatch_session=DispatchSession.objects.create(
                store=store,
                carrier=other_carrier,
                session_code="DISP-18012026-999",
                dispatch_date=DISPATCH_DATE,
            ),
        )

    # then
    assert not DailySettlement.objects.exists()


def test_dispatch_session_of_other_store_is_rejected(
    store, other_store, carrier, dispatch_session, delivery_results
):
    # given
    foreign_session = DispatchSession.objects.create(
        store=other_store,
        carrier=Carrier.objects.create(store=other_store, name="Other"),
        session_code="DISP-18012026-001",
        dispatch_date=DISPATCH_DATE,
    )

    # when
    with pytest.raises(InvalidReconciliationBatch):
        process_manual_reconciliation(
            store,
            carrier,
            DISPATCH_DATE,
            Decimal(250000),
            delivery_results,
            dispatch_session=foreign_session,
        )

    # then
    foreign_session.refresh_from_db()
    assert foreign_session.status == DispatchSessionStatus.DISPATCHED
    assert foreign_session.daily_settlement is None


def test_orders_outside_dispatch_session_are_rejected(store, carrier, ready_orders):
    # given
    first_session = create_dispatch_session(
        store, carrier, [order.pk for order in ready_orders[:2]], DISPATCH_DATE
    )
    create_dispatch_session(
        store, carrier, [order.pk for order in ready_orders[2:]], DISPATCH_DATE
    )
    results = [DeliveryResult(order.pk, delivered=True) for order in ready_orders]

    # when
    with pytest.raises(InvalidReconciliationBatch):
        process_manual_reconciliation(
            store,
            carrier,
            DISPATCH_DATE,
            Decimal(300000),
            results,
            dispatch_session=first_session,
        )

    # then
    first_session.refresh_from_db()
    assert first_session.status == DispatchSessionStatus.DISPATCHED
    for order in ready_orders:
        order.refresh_from_db()
        assert order.sleeves_status == OrderStatus.SHIPPED
