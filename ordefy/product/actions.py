import logging

from django.db import transaction

from ..order import OrderStatus
from ..order.exceptions import ImmutabilityViolation
from ..order.models import Order
from .models import Product

logger = logging.getLogger(__name__)


@transaction.atomic
def delete_product(product: Product):
    """Delete a product that no open order references.

    Orders that are delivered, cancelled, rejected or returned do not hold on
    to the product; their line items keep the name and SKU snapshot.

    Raises:
        ImmutabilityViolation: if an open order has a line item for it.

    """
    product = Product.objects.select_for_update().get(pk=product.pk)
    open_orders = (
        Order.objects.active()
        .filter(line_items__product=product)
        .exclude(sleeves_status__in=OrderStatus.CLOSED_STATUSES)
        .distinct()
        .order_by("pk")
    )
    order_numbers = list(open_orders.values_list("order_number", flat=True)[:5])
    if order_numbers:
        raise ImmutabilityViolation(
            f'Cannot delete product "{product.name}": it is used by open orders '
            f"({', '.join(order_numbers)}). Complete or cancel them first."
        )
    product_pk = product.pk
    product.delete()
    logger.info("Deleted product %s", product_pk)
