import attrs

from ..order.exceptions import OrderNotFound
from ..order.models import Order
from ..product.lookup import find_product_for_external_reference
from ..product.models import Product, ProductVariant


@attrs.frozen
class LineItemAvailability:
    line_item_id: int
    product_id: int
    variant_id: int | None
    required_qty: int
    available_qty: int
    sufficient: bool
    shortage: int


def get_variants_availability(product: Product) -> dict[int, int]:
    """Return sellable units per active variant of ``product``.

    Bundles report the number of full packs the parent stock can cover, read
    fresh from the parent on every call.
    """
    availability = {}
    for variant in product.variants.filter(is_active=True).order_by("pk"):
        variant.product = product
        availability[variant.pk] = variant.available_quantity
    return availability


def _resolve_line_item(order, line_item):
    """Return the (product_id, variant_id) the deduction would use.

    Unmapped items are looked up the same way the deduction maps them, but the
    match is not saved.
    """
    if line_item.product_id is not None:
        return line_item.product_id, line_item.variant_id
    match = find_product_for_external_reference(
        order.store,
        external_product_ref=line_item.external_product_id,
        external_variant_ref=line_item.external_variant_id,
        sku=line_item.sku,
    )
    return match.product_id, match.variant_id


def check_stock_availability(order_id, store=None) -> list[LineItemAvailability]:
    """Check whether the order's pending deductions can be covered.

    Read-only pre-flight for a transition into a stock-affecting status. Only
    line items that would be deducted are reported; already deducted items,
    non-positive quantities and items that cannot be mapped to a product of
    the order's store are left out. Quantities are in sellable units, so
    packs for bundles. Items drawing from the same pool are checked
    cumulatively in line item order, the same way the deduction validates
    them.

    Raises:
        OrderNotFound: if no active order of ``store`` has ``order_id``.

    """
    orders = Order.objects.active().select_related("store")
    if store is not None:
        orders = orders.for_store(store)
    try:
        order = orders.get(pk=order_id)
    except Order.DoesNotExist:
        raise OrderNotFound(order_id) from None

    resolved = []
    for line_item in order.line_items.filter(stock_deducted=False).order_by("pk"):
        if line_item.quantity <= 0:
            continue
        product_id, variant_id = _resolve_line_item(order, line_item)
        if product_id is not None:
            resolved.append((line_item, product_id, variant_id))

    variants = ProductVariant.objects.in_bulk(
        {variant_id for _, _, variant_id in resolved if variant_id}
    )
    products = Product.objects.in_bulk({product_id for _, product_id, _ in resolved})

    remaining = {}
    report = []
    for line_item, product_id, variant_id in resolved:
        product = products.get(product_id)
        if product is None or product.store_id != order.store_id:
            continue
        variant = None
        if variant_id:
            variant = variants.get(variant_id)
            if variant is None or variant.product_id != product.pk:
                continue

        if variant is not None and not variant.is_bundle:
            key, stock, pack = ("variant", variant.pk), variant.stock, 1
        else:
            pack = variant.units_per_pack if variant else 1
            key, stock = ("product", product.pk), product.stock

        units_left = remaining.setdefault(key, stock)
        available = units_left // pack
        required = line_item.quantity
        sufficient = required <= available
        remaining[key] = max(units_left - required * pack, 0)

        report.append(
            LineItemAvailability(
                line_item_id=line_item.pk,
                product_id=product.pk,
                variant_id=variant_id,
                required_qty=required,
                available_qty=available,
                sufficient=sufficient,
                shortage=max(required - available, 0),
            )
        )
    return report
