import pytest

from ...core.exceptions import InsufficientStock
from ...order import OrderStatus
from ...order.actions import LineItemData, transition_order_status
from ...order.error_codes import OrderErrorCode
from ...order.exceptions import OrderNotFound
from ...product.models import Product, ProductVariant
from ..availability import check_stock_availability, get_variants_availability


def test_bundle_availability_is_computed_from_parent(product, bundle_variant):
    # given
    product.stock = 10
    product.save(update_fields=["stock"])

    # when
    availability = get_variants_availability(product)

    # then - floor(10 / 3)
    assert availability == {bundle_variant.pk: 3}


def test_variation_availability_is_own_stock(variation_product, variation_variant):
    assert get_variants_availability(variation_product) == {variation_variant.pk: 20}


def test_check_stock_availability_sufficient(order_factory, product, bundle_variant):
    # given
    order = order_factory(
        [
            LineItemData(quantity=10, product=product),
            LineItemData(quantity=2, variant=bundle_variant),
        ]
    )

    # when
    report = check_stock_availability(order.pk)

    # then - the bundle sees what is left after the first item, in packs
    assert [item.available_qty for item in report] == [100, 30]
    assert [item.required_qty for item in report] == [10, 2]
    assert all(item.sufficient for item in report)
    assert report[1].variant_id == bundle_variant.pk
    assert report[1].product_id == product.pk


def test_check_stock_availability_reports_shortage_on_shared_pool(
    order_factory, product, bundle_variant
):
    # given
    order = order_factory(
        [
            LineItemData(quantity=99, product=product),
            LineItemData(quantity=1, variant=bundle_variant),
        ]
    )

    # when
    report = check_stock_availability(order.pk)

    # then
    assert report[0].sufficient is True
    assert report[1].sufficient is False
    assert report[1].available_qty == 0
    assert report[1].shortage == 1


def test_check_stock_availability_variation(order_factory, variation_variant):
    # given
    order = order_factory([LineItemData(quantity=25, variant=variation_variant)])

    # when
    [item] = check_stock_availability(order.pk)

    # then
    assert item.available_qty == 20
    assert item.shortage == 5
    assert item.sufficient is False


def test_check_stock_availability_skips_deducted_and_unmapped(
    order_factory, product
):
    # given
    order = order_factory(
        [
            LineItemData(quantity=1, product=product),
            LineItemData(quantity=1, sku="UNKNOWN"),
        ]
    )
    transition_order_status(order.pk, OrderStatus.READY_TO_SHIP)

    # when
    report = check_stock_availability(order.pk)

    # then
    assert report == []


def test_check_stock_availability_does_not_write(order_factory, product):
    # given
    order = order_factory([LineItemData(quantity=500, product=product)])

    # when
    check_stock_availability(order.pk)

    # then
    product.refresh_from_db()
    assert product.stock == 100
    assert not order.line_items.filter(stock_deducted=True).exists()


def test_check_stock_availability_unknown_order(db):
    with pytest.raises(OrderNotFound) as exc:
        check_stock_availability(123456)
    assert exc.value.code == OrderErrorCode.NOT_FOUND


def test_check_stock_availability_is_scoped_to_store(order, other_store):
    with pytest.raises(OrderNotFound):
        check_stock_availability(order.pk, store=other_store)


def test_check_stock_availability_resolves_unmapped_items(
    order_factory, product_factory
):
    # given - the product shows up after the order was imported
    order = order_factory([LineItemData(quantity=5, sku="LATER-1")])
    later = product_factory(name="Later", sku="later-1", stock=2)

    # when
    [item] = check_stock_availability(order.pk)

    # then
    assert item.product_id == later.pk
    assert item.available_qty == 2
    assert item.shortage == 3
    assert item.sufficient is False
    assert order.line_items.get().product_id is None

    # then - the transition fails on the same shortage
    with pytest.raises(InsufficientStock):
        transition_order_status(order.pk, OrderStatus.READY_TO_SHIP)


def test_check_stock_availability_resolves_external_variant(order_factory, product):
    # given - the pack was added to the catalog after the order came in
    order = order_factory([LineItemData(quantity=40, external_variant_id="ext-var-9")])
    pack = ProductVariant.objects.create(
        product=product,
        name="Pack x3",
        external_id="ext-var-9",
        uses_shared_stock=True,
        units_per_pack=3,
    )

    # when
    [item] = check_stock_availability(order.pk)

    # then - floor(100 / 3) packs
    assert item.product_id == product.pk
    assert item.variant_id == pack.pk
    assert item.available_qty == 33
    assert item.shortage == 7


def test_check_stock_availability_skips_foreign_and_zero_quantity_items(
    order_factory, other_store, product
):
    # given
    foreign = Product.objects.create(store=other_store, name="Foreign", stock=5)
    order = order_factory(
        [
            LineItemData(quantity=1, product=foreign),
            LineItemData(quantity=0, product=product),
        ]
    )

    # when
    report = check_stock_availability(order.pk)

    # then
    assert report == []
