"""Customer order statistics.

Customer.total_orders, total_spent and last_order_at are kept up to date
incrementally by the order actions. Cancelled, rejected and soft-deleted orders
do not count. repair_customer_stats() recomputes the values from the orders
when the increments drifted.
"""

import logging
from decimal import Decimal

import attrs
from django.conf import settings
from django.db import transaction
from django.db.models import Count, DecimalField, F, Max, Q, Sum, Value
from django.db.models.functions import Coalesce, Greatest
from django.utils import timezone

from ..order import OrderStatus
from .models import Customer

logger = logging.getLogger(__name__)

COUNTED_STATUSES = [
    status
    for status in OrderStatus.ALL
    if status not in OrderStatus.NOT_COUNTED_STATUSES
]


def _money_field():
    return DecimalField(
        max_digits=settings.DEFAULT_MAX_DIGITS,
        decimal_places=settings.DEFAULT_DECIMAL_PLACES,
    )


def is_counted_for_customer(status, deleted_at=None) -> bool:
    return deleted_at is None and status in COUNTED_STATUSES


def _change_customer_totals(customer_id, sign, amount, ordered_at=None):
    Customer.objects.filter(pk=customer_id).update(
        total_orders=Greatest(F("total_orders") + sign, Value(0)),
        total_spent=Greatest(
            F("total_spent") + sign * amount,
            Value(Decimal(0)),
            output_field=_money_field(),
        ),
        updated_at=timezone.now(),
    )
    if sign > 0 and ordered_at is not None:
        Customer.objects.filter(
            Q(last_order_at__isnull=True) | Q(last_order_at__lt=ordered_at),
            pk=customer_id,
        ).update(last_order_at=ordered_at)


def customer_order_created(order):
    if order.customer_id and is_counted_for_customer(
        order.sleeves_status, order.deleted_at
    ):
        _change_customer_totals(
            order.customer_id, 1, order.total_price, ordered_at=order.created_at
        )


def customer_order_status_changed(order, old_status, new_status):
    if not order.customer_id or order.deleted_at is not None:
        return
    was_counted = is_counted_for_customer(old_status)
    is_counted = is_counted_for_customer(new_status)
    if was_counted and not is_counted:
        _change_customer_totals(order.customer_id, -1, order.total_price)
    elif is_counted and not was_counted:
        _change_customer_totals(
            order.customer_id, 1, order.total_price, ordered_at=order.created_at
        )


def customer_order_removed(order):
    """Take a deleted or soft-deleted order out of the customer's totals.

    Must be called with the order as it was before the removal.
    """
    if order.customer_id and is_counted_for_customer(
        order.sleeves_status, order.deleted_at
    ):
        _change_customer_totals(order.customer_id, -1, order.total_price)


@attrs.frozen
class CustomerStatsRepair:
    customer_id: int
    recorded_orders: int
    calculated_orders: int
    recorded_spent: Decimal
    calculated_spent: Decimal


@transaction.atomic
def repair_customer_stats(store, dry_run=False) -> list[CustomerStatsRepair]:
    """Recompute order totals of every customer of ``store`` from its orders.

    Returns the customers whose recorded totals were off. With ``dry_run``
    nothing is written.
    """
    counted = Q(
        orders__deleted_at__isnull=True, orders__sleeves_status__in=COUNTED_STATUSES
    )
    customers = (
        Customer.objects.filter(store=store)
        .annotate(
            calculated_orders=Count("orders", filter=counted),
            calculated_spent=Coalesce(
                Sum("orders__total_price", filter=counted),
                Value(Decimal(0)),
                output_field=_money_field(),
            ),
            calculated_last_order_at=Max("orders__created_at", filter=counted),
        )
        .order_by("pk")
    )

    repairs = []
    for customer in customers:
        if (
            customer.total_orders == customer.calculated_orders
            and customer.total_spent == customer.calculated_spent
        ):
            continue
        repairs.append(
            CustomerStatsRepair(
                customer_id=customer.pk,
                recorded_orders=customer.total_orders,
                calculated_orders=customer.calculated_orders,
                recorded_spent=customer.total_spent,
                calculated_spent=customer.calculated_spent,
            )
        )
        if dry_run:
            continue
        Customer.objects.filter(pk=customer.pk).update(
            total_orders=customer.calculated_orders,
            total_spent=customer.calculated_spent,
            last_order_at=customer.calculated_last_order_at,
            updated_at=timezone.now(),
        )

    logger.info(
        "Customer stats of store %s: %s out of date%s",
        store.pk,
        len(repairs),
        " (dry run)" if dry_run else "",
    )
    return repairs
