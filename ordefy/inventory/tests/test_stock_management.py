from decimal import Decimal

import pytest
from django.db.models import Sum

from ...core.exceptions import InsufficientStock
from ...order import OrderStatus
from ...order.actions import LineItemData, transition_order_status
from ...order.models import Order
from ...product.models import Product
from .. import MovementType, StockEffect, StockSource
from ..exceptions import InvalidOrderStatusForStock
from ..models import InventoryMovement
from ..reconciliation import verify_product_ledger
from ..stock_management import (
    SkipReason,
    accept_return,
    apply_order_stock_effect,
    get_stock_effect,
    record_inbound_correction,
    record_inbound_receipt,
    record_manual_adjustment,
)


@pytest.mark.parametrize(
    ("old_status", "new_status", "effect"),
    [
        (None, OrderStatus.PENDING, None),
        (None, OrderStatus.DELIVERED, StockEffect.DEDUCT),
        (OrderStatus.CONFIRMED, OrderStatus.READY_TO_SHIP, StockEffect.DEDUCT),
        (OrderStatus.IN_PREPARATION, OrderStatus.SHIPPED, StockEffect.DEDUCT),
        (OrderStatus.READY_TO_SHIP, OrderStatus.SHIPPED, None),
        (OrderStatus.SHIPPED, OrderStatus.DELIVERED, None),
        (OrderStatus.SHIPPED, OrderStatus.CANCELLED, StockEffect.CANCEL),
        (OrderStatus.DELIVERED, OrderStatus.REJECTED, StockEffect.CANCEL),
        (OrderStatus.READY_TO_SHIP, OrderStatus.CONFIRMED, StockEffect.REVERT),
        (OrderStatus.IN_TRANSIT, OrderStatus.PENDING, StockEffect.REVERT),
        (OrderStatus.DELIVERED, OrderStatus.RETURNED, None),
        (OrderStatus.PENDING, OrderStatus.CANCELLED, None),
        (OrderStatus.CONFIRMED, OrderStatus.PENDING, None),
    ],
)
def test_get_stock_effect(old_status, new_status, effect):
    assert get_stock_effect(old_status, new_status) == effect


def test_ready_to_ship_deducts_plain_product(order, product, staff_user):
    # given
    line_item = order.line_items.get()

    # when
    transition_order_status(order.pk, OrderStatus.READY_TO_SHIP, user=staff_user)

    # then
    product.refresh_from_db()
    assert product.stock == 90

    line_item.refresh_from_db()
    assert line_item.stock_deducted is True
    assert line_item.stock_deducted_at is not None
    assert line_item.deducted_from == StockSource.PRODUCT
    assert line_item.units_per_pack == 1

    movement = InventoryMovement.objects.get()
    assert movement.movement_type == MovementType.ORDER_READY_TO_SHIP
    assert movement.quantity_change == -10
    assert movement.stock_before == 100
    assert movement.stock_after == 90
    assert movement.order == order
    assert movement.store == order.store
    assert movement.order_status_from == OrderStatus.PENDING
    assert movement.order_status_to == OrderStatus.READY_TO_SHIP
    assert movement.user == staff_user


def test_deduction_happens_once_across_stock_affecting_statuses(order, product):
    # when
    for status in [
        OrderStatus.READY_TO_SHIP,
        OrderStatus.SHIPPED,
        OrderStatus.IN_TRANSIT,
        OrderStatus.DELIVERED,
    ]:
        transition_order_status(order.pk, status)

    # then
    product.refresh_from_db()
    assert product.stock == 90
    assert InventoryMovement.objects.count() == 1
    order.refresh_from_db()
    assert order.delivered_at is not None


def test_bundle_deducts_packs_from_parent(bundle_order, product, bundle_variant):
    # when
    transition_order_status(bundle_order.pk, OrderStatus.SHIPPED)

    # then - 2 packs of 3
    product.refresh_from_db()
    assert product.stock == 94
    bundle_variant.refresh_from_db()
    assert bundle_variant.stock == 0
    assert bundle_variant.available_quantity == 31

    line_item = bundle_order.line_items.get()
    assert line_item.units_per_pack == 3
    assert line_item.deducted_from == StockSource.PRODUCT

    movement = InventoryMovement.objects.get()
    assert movement.quantity_change == -6
    assert movement.stock_source == StockSource.PRODUCT
    assert movement.product == product
    assert movement.variant == bundle_variant
    assert movement.movement_type == MovementType.ORDER_SHIPPED


def test_variation_deducts_own_stock(order_factory, variation_variant):
    # given
    order = order_factory([LineItemData(quantity=5, variant=variation_variant)])

    # when
    transition_order_status(order.pk, OrderStatus.READY_TO_SHIP)

    # then
    variation_variant.refresh_from_db()
    assert variation_variant.stock == 15
    assert Product.objects.get(pk=variation_variant.product_id).stock == 0

    movement = InventoryMovement.objects.get()
    assert movement.stock_source == StockSource.VARIANT
    assert movement.stock_before == 20
    assert movement.stock_after == 15


def test_insufficient_stock_blocks_transition(order_factory, product):
    # given
    order = order_factory([LineItemData(quantity=101, product=product)])

    # when
    with pytest.raises(InsufficientStock) as exc:
        transition_order_status(order.pk, OrderStatus.READY_TO_SHIP)

    # then
    assert exc.value.items[0].required_quantity == 101
    assert exc.value.items[0].available_quantity == 100
    assert exc.value.items[0].shortage == 1
    assert "BAR-001" in str(exc.value)

    product.refresh_from_db()
    assert product.stock == 100
    order.refresh_from_db()
    assert order.sleeves_status == OrderStatus.PENDING
    assert not InventoryMovement.objects.exists()
    assert not order.line_items.filter(stock_deducted=True).exists()


def test_demand_on_shared_pool_is_validated_together(
    order_factory, product, bundle_variant
):
    # given - 6 units through the bundle and 95 directly; each fits alone
    order = order_factory(
        [
            LineItemData(quantity=2, variant=bundle_variant),
            LineItemData(quantity=95, product=product),
        ]
    )

    # when
    with pytest.raises(InsufficientStock) as exc:
        transition_order_status(order.pk, OrderStatus.READY_TO_SHIP)

    # then - nothing was written for the first item either
    assert exc.value.items[0].required_quantity == 101
    product.refresh_from_db()
    assert product.stock == 100
    assert not InventoryMovement.objects.exists()


def test_order_created_in_stock_affecting_status_deducts(order_factory, product):
    # when
    order = order_factory(
        [LineItemData(quantity=4, product=product)], status=OrderStatus.DELIVERED
    )

    # then
    product.refresh_from_db()
    assert product.stock == 96
    movement = InventoryMovement.objects.get()
    assert movement.order == order
    assert movement.movement_type == MovementType.ORDER_DELIVERED
    assert movement.order_status_from == ""


def test_order_created_with_insufficient_stock_is_not_saved(order_factory, product):
    # when
    with pytest.raises(InsufficientStock):
        order_factory(
            [LineItemData(quantity=500, product=product)],
            status=OrderStatus.SHIPPED,
        )

    # then
    assert not Order.objects.exists()
    assert not product.order_line_items.exists()
    product.refresh_from_db()
    assert product.stock == 100


@pytest.mark.parametrize("status", [OrderStatus.CANCELLED, OrderStatus.REJECTED])
def test_cancel_after_deduction_restores_stock(order, product, status):
    # given
    transition_order_status(order.pk, OrderStatus.SHIPPED)

    # when
    transition_order_status(order.pk, status)

    # then
    product.refresh_from_db()
    assert product.stock == 100

    line_item = order.line_items.get()
    assert line_item.stock_deducted is False
    assert line_item.deducted_from is None

    restore = InventoryMovement.objects.order_by("pk").last()
    assert restore.movement_type == MovementType.ORDER_CANCELLED
    assert restore.quantity_change == 10
    assert restore.order_status_to == status


def test_cancel_before_deduction_has_no_stock_effect(order, product):
    # when
    transition_order_status(order.pk, OrderStatus.CANCELLED)

    # then
    product.refresh_from_db()
    assert product.stock == 100
    assert not InventoryMovement.objects.exists()


def test_revert_to_pre_shipment_restores_and_rededucts(order, product):
    # given
    transition_order_status(order.pk, OrderStatus.READY_TO_SHIP)

    # when
    transition_order_status(order.pk, OrderStatus.CONFIRMED)

    # then
    product.refresh_from_db()
    assert product.stock == 100
    assert (
        InventoryMovement.objects.order_by("pk").last().movement_type
        == MovementType.ORDER_REVERTED
    )

    # when - it ships again
    transition_order_status(order.pk, OrderStatus.READY_TO_SHIP)

    # then
    product.refresh_from_db()
    assert product.stock == 90
    assert InventoryMovement.objects.count() == 3


def test_restore_uses_pack_size_recorded_at_deduction(
    bundle_order, product, bundle_variant
):
    # given
    transition_order_status(bundle_order.pk, OrderStatus.READY_TO_SHIP)
    bundle_variant.units_per_pack = 5
    bundle_variant.save(update_fields=["units_per_pack"])

    # when
    transition_order_status(bundle_order.pk, OrderStatus.CANCELLED)

    # then - 2 packs of 3, not of 5
    product.refresh_from_db()
    assert product.stock == 100


def test_unmapped_line_item_is_skipped(order_factory, product, caplog):
    # given
    order = order_factory(
        [
            LineItemData(quantity=1, product_name="Unknown", sku="NOPE-1"),
            LineItemData(quantity=3, product=product),
        ]
    )
    unmapped = order.line_items.get(product__isnull=True)

    # when
    result = apply_order_stock_effect(
        order, OrderStatus.CONFIRMED, OrderStatus.READY_TO_SHIP
    )

    # then
    assert [skip.line_item_id for skip in result.skipped] == [unmapped.pk]
    assert result.skipped[0].reason == SkipReason.UNMAPPED
    assert len(result.processed) == 1
    product.refresh_from_db()
    assert product.stock == 97
    unmapped.refresh_from_db()
    assert unmapped.stock_deducted is False
    assert f"line item {unmapped.pk}" in caplog.text


def test_unmapped_line_item_does_not_block_transition(order_factory):
    # given
    order = order_factory([LineItemData(quantity=1, sku="NOPE-1")])

    # when
    order = transition_order_status(order.pk, OrderStatus.SHIPPED)

    # then
    assert order.sleeves_status == OrderStatus.SHIPPED
    assert not InventoryMovement.objects.exists()


def test_line_item_is_mapped_by_sku_before_deduction(order_factory, product_factory):
    # given - the product is created after the order came in
    order = order_factory([LineItemData(quantity=2, sku="NEW-SKU")])
    line_item = order.line_items.get()
    assert line_item.product_id is None
    new_product = product_factory(name="New", sku=" new-sku ", stock=5)

    # when
    transition_order_status(order.pk, OrderStatus.READY_TO_SHIP)

    # then
    line_item.refresh_from_db()
    assert line_item.product == new_product
    assert line_item.stock_deducted is True
    new_product.refresh_from_db()
    assert new_product.stock == 3


def test_zero_quantity_line_item_is_skipped(order_factory, product):
    # given
    order = order_factory([LineItemData(quantity=0, product=product)])

    # when
    result = apply_order_stock_effect(
        order, OrderStatus.CONFIRMED, OrderStatus.READY_TO_SHIP
    )

    # then
    assert result.skipped[0].reason == SkipReason.INVALID_QUANTITY
    product.refresh_from_db()
    assert product.stock == 100
    assert not InventoryMovement.objects.exists()


def test_ledger_replays_to_current_stock(
    order_factory, product, bundle_variant, variation_variant
):
    # given
    first = order_factory(
        [
            LineItemData(quantity=10, product=product),
            LineItemData(quantity=2, variant=bundle_variant),
            LineItemData(quantity=4, variant=variation_variant),
        ]
    )
    second = order_factory([LineItemData(quantity=7, product=product)])

    # when
    transition_order_status(first.pk, OrderStatus.READY_TO_SHIP)
    transition_order_status(second.pk, OrderStatus.SHIPPED)
    transition_order_status(first.pk, OrderStatus.CANCELLED)
    record_inbound_receipt(product, 12)
    record_manual_adjustment(
        variation_variant.product, -3, "Damaged", variation_variant
    )

    # then
    product.refresh_from_db()
    ledger = InventoryMovement.objects.for_product_pool(product).aggregate(
        total=Sum("quantity_change")
    )["total"]
    assert product.stock == product.initial_stock + ledger == 105
    variation_variant.refresh_from_db()
    assert variation_variant.stock == 17
    verify_product_ledger(product)
    verify_product_ledger(variation_variant.product)

    for movement in InventoryMovement.objects.all():
        assert movement.stock_after == movement.stock_before + movement.quantity_change
        assert movement.stock_after >= 0


def test_manual_adjustment(product, staff_user):
    # when
    stock = record_manual_adjustment(
        product, -5, " Damaged in storage ", user=staff_user
    )

    # then
    assert stock == 95
    movement = InventoryMovement.objects.get()
    assert movement.movement_type == MovementType.MANUAL_ADJUSTMENT
    assert movement.notes == "Damaged in storage"
    assert movement.order is None
    assert movement.user == staff_user


def test_manual_adjustment_requires_reason(product):
    with pytest.raises(ValueError):
        record_manual_adjustment(product, 5, "  ")
    assert not InventoryMovement.objects.exists()


def test_manual_adjustment_rejects_zero(product):
    with pytest.raises(ValueError):
        record_manual_adjustment(product, 0, "Count")


def test_manual_adjustment_cannot_go_negative(product):
    # when
    with pytest.raises(InsufficientStock):
        record_manual_adjustment(product, -101, "Count")

    # then
    product.refresh_from_db()
    assert product.stock == 100
    assert not InventoryMovement.objects.exists()


def test_bundle_receipt_is_scaled_to_parent_units(product, bundle_variant):
    # when
    stock = record_inbound_receipt(product, 2, variant=bundle_variant)

    # then
    assert stock == 106
    movement = InventoryMovement.objects.get()
    assert movement.quantity_change == 6
    assert movement.stock_source == StockSource.PRODUCT
    assert movement.movement_type == MovementType.INBOUND_RECEIPT


def test_inbound_receipt_rejects_non_positive_quantity(product):
    with pytest.raises(ValueError):
        record_inbound_receipt(product, -1)


def test_inbound_correction(product):
    # when
    stock = record_inbound_correction(product, -4, "Supplier sent 4 less")

    # then
    assert stock == 96
    assert (
        InventoryMovement.objects.get().movement_type
        == MovementType.INBOUND_CORRECTION
    )


def test_adjustment_rejects_variant_of_other_product(product, variation_variant):
    with pytest.raises(ValueError):
        record_manual_adjustment(product, 1, "Count", variant=variation_variant)


def test_return_keeps_stock_until_accepted(order, product):
    # given
    transition_order_status(order.pk, OrderStatus.DELIVERED)

    # when
    transition_order_status(order.pk, OrderStatus.RETURNED)

    # then
    product.refresh_from_db()
    assert product.stock == 90

    # when
    result = accept_return(order)

    # then
    product.refresh_from_db()
    assert product.stock == 100
    assert len(result.processed) == 1
    movement = InventoryMovement.objects.order_by("pk").last()
    assert movement.movement_type == MovementType.RETURN_ACCEPTED
    assert movement.quantity_change == 10


def test_accept_return_requires_returned_order(order):
    # given
    transition_order_status(order.pk, OrderStatus.DELIVERED)

    # when / then
    with pytest.raises(InvalidOrderStatusForStock):
        accept_return(order)


def test_accept_return_of_selected_line_items(order_factory, product, bundle_variant):
    # given
    order = order_factory(
        [
            LineItemData(quantity=10, product=product),
            LineItemData(quantity=1, variant=bundle_variant, unit_price=Decimal(1)),
        ],
        status=OrderStatus.DELIVERED,
    )
    transition_order_status(order.pk, OrderStatus.RETURNED)
    bundle_line = order.line_items.get(variant=bundle_variant)

    # when
    accept_return(order, line_item_ids=[bundle_line.pk])

    # then
    product.refresh_from_db()
    assert product.stock == 90
    assert order.line_items.filter(stock_deducted=True).count() == 1
