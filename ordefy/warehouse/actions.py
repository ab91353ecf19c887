import logging
from collections import defaultdict

from django.db import transaction
from django.utils import timezone

from ..core import ReferencePrefix
from ..core.sequences import generate_reference_code
from ..order import OrderStatus
from ..order.actions import transition_order_status
from ..order.models import Order, OrderLineItem
from . import PickingSessionStatus
from .exceptions import (
    IncompletePicking,
    InvalidPickedQuantity,
    InvalidPickingSessionStatus,
    OrderInActiveSession,
    OrderNotEligibleForPicking,
)
from .models import PickingSession, PickingSessionItem, PickingSessionOrder

logger = logging.getLogger(__name__)


def _lock_session(session, expected_statuses) -> PickingSession:
    session = PickingSession.objects.select_for_update().get(pk=session.pk)
    if session.status not in expected_statuses:
        raise InvalidPickingSessionStatus(session, expected_statuses)
    return session


def _build_pick_list(session, orders, picked=None):
    picked = picked or {}
    needed = defaultdict(int)
    line_items = OrderLineItem.objects.filter(order__in=orders).order_by("pk")
    for line_item in line_items:
        if line_item.product_id is None or line_item.quantity <= 0:
            logger.warning(
                "Line item %s of order %s left out of pick list %s",
                line_item.pk,
                line_item.order_id,
                session.code,
            )
            continue
        needed[(line_item.product_id, line_item.variant_id)] += line_item.quantity

    PickingSessionItem.objects.bulk_create(
        [
            PickingSessionItem(
                session=session,
                product_id=product_id,
                variant_id=variant_id,
                total_quantity_needed=quantity,
                quantity_picked=min(picked.get((product_id, variant_id), 0), quantity),
            )
            for (product_id, variant_id), quantity in needed.items()
        ]
    )


@transaction.atomic
def create_picking_session(store, order_ids, user=None) -> PickingSession:
    """Start preparing a batch of confirmed orders.

    All orders are locked and validated before anything is written. Each order
    moves to ``in_preparation`` and may belong to one active session only.

    Raises:
        ValueError: if no order is given or one is not in the store.
        OrderNotEligibleForPicking: if an order is not confirmed.
        OrderInActiveSession: if an order is already being prepared.
        ReferenceGenerationExhausted: if the daily PREP codes are used up.

    """
    order_ids = sorted(set(order_ids))
    if not order_ids:
        raise ValueError("A picking session needs at least one order")

    orders = list(
        Order.objects.active()
        .for_store(store)
        .select_for_update()
        .filter(pk__in=order_ids)
        .order_by("pk")
    )
    found = {order.pk for order in orders}
    missing = [order_id for order_id in order_ids if order_id not in found]
    if missing:
        raise ValueError(f"Orders not found in store {store.pk}: {missing}")

    for order in orders:
        if order.sleeves_status != OrderStatus.CONFIRMED:
            raise OrderNotEligibleForPicking(
                order, f"status is '{order.sleeves_status}', expected 'confirmed'"
            )
        membership = (
            PickingSessionOrder.objects.filter(
                order=order, session__status__in=PickingSessionStatus.ACTIVE_STATUSES
            )
            .select_related("session")
            .first()
        )
        if membership is not None:
            raise OrderInActiveSession(order, membership.session.code)

    code = generate_reference_code(store, ReferencePrefix.PICKING_SESSION)
    session = PickingSession.objects.create(store=store, code=code, user=user)
    PickingSessionOrder.objects.bulk_create(
        [PickingSessionOrder(session=session, order=order) for order in orders]
    )
    for order in orders:
        transition_order_status(order.pk, OrderStatus.IN_PREPARATION, user=user)
    _build_pick_list(session, orders)

    logger.info("Created picking session %s with %s orders", code, len(orders))
    return session


@transaction.atomic
def update_picked_quantity(
    session: PickingSession, product, quantity_picked: int, variant=None
) -> PickingSessionItem:
    session = _lock_session(session, [PickingSessionStatus.PICKING])
    item = (
        session.items.select_for_update()
        .filter(product=product, variant=variant)
        .select_related("product", "variant")
        .get()
    )
    if not 0 <= quantity_picked <= item.total_quantity_needed:
        raise InvalidPickedQuantity(item, quantity_picked)
    item.quantity_picked = quantity_picked
    item.save(update_fields=["quantity_picked", "updated_at"])
    return item


@transaction.atomic
def finish_picking(session: PickingSession) -> PickingSession:
    """Move a fully picked session on to packing."""
    session = _lock_session(session, [PickingSessionStatus.PICKING])
    missing = sum(
        item.total_quantity_needed - item.quantity_picked
        for item in session.items.all()
    )
    if missing:
        raise IncompletePicking(session, missing)

    now = timezone.now()
    session.status = PickingSessionStatus.PACKING
    session.picking_completed_at = now
    session.packing_started_at = now
    session.save(
        update_fields=[
            "status",
            "picking_completed_at",
            "packing_started_at",
            "updated_at",
        ]
    )
    return session


@transaction.atomic
def complete_picking_session(session: PickingSession, user=None) -> PickingSession:
    """Hand the packed orders over as ready to ship.

    The orders go through the status transition, so their stock is deducted
    here. A shortage on any order rolls back the whole completion. Orders that
    left ``in_preparation`` in the meantime are not touched.
    """
    session = _lock_session(session, [PickingSessionStatus.PACKING])
    orders = session.orders.active().order_by("pk")
    for order in orders:
        if order.sleeves_status != OrderStatus.IN_PREPARATION:
            logger.info(
                "Order %s of session %s is %s, not marking it ready to ship",
                order.pk,
                session.code,
                order.sleeves_status,
            )
            continue
        transition_order_status(order.pk, OrderStatus.READY_TO_SHIP, user=user)

    session.status = PickingSessionStatus.COMPLETED
    session.completed_at = timezone.now()
    session.save(update_fields=["status", "completed_at", "updated_at"])
    logger.info("Completed picking session %s", session.code)
    return session


@transaction.atomic
def abandon_picking_session(session: PickingSession, user=None) -> PickingSession:
    """Stop a session and send its orders back to ``confirmed``."""
    session = _lock_session(session, PickingSessionStatus.ACTIVE_STATUSES)
    for order in session.orders.active().order_by("pk"):
        if order.sleeves_status == OrderStatus.IN_PREPARATION:
            transition_order_status(order.pk, OrderStatus.CONFIRMED, user=user)

    session.status = PickingSessionStatus.ABANDONED
    session.abandoned_at = timezone.now()
    session.save(update_fields=["status", "abandoned_at", "updated_at"])
    logger.info("Abandoned picking session %s", session.code)
    return session


@transaction.atomic
def cleanup_picking_sessions(store) -> int:
    """Drop orders that left preparation from active sessions.

    Orders that were cancelled, soft-deleted or moved on by hand leave their
    session; sessions left without orders are abandoned. Returns the number of
    abandoned sessions.
    """
    abandoned = 0
    sessions = (
        PickingSession.objects.active()
        .filter(store=store)
        .select_for_update()
        .order_by("pk")
    )
    for session in sessions:
        stale = session.session_orders.exclude(
            order__sleeves_status=OrderStatus.IN_PREPARATION,
            order__deleted_at__isnull=True,
        )
        if stale.exists():
            stale.delete()
            picked = {
                (item.product_id, item.variant_id): item.quantity_picked
                for item in session.items.all()
            }
            session.items.all().delete()
            remaining = Order.objects.filter(picking_session_orders__session=session)
            _build_pick_list(session, remaining, picked=picked)

        if not session.session_orders.exists():
            session.status = PickingSessionStatus.ABANDONED
            session.abandoned_at = timezone.now()
            session.save(update_fields=["status", "abandoned_at", "updated_at"])
            abandoned += 1
            logger.info("Abandoned empty picking session %s", session.code)
    return abandoned
