from decimal import Decimal

import pytest

from .. import OrderStatus
from ..actions import LineItemData, create_order


@pytest.fixture
def order_factory(store):
    """Create orders through the order actions so stock rules apply."""
    counter = iter(range(1000, 10000))

    def create(line_items=None, status=OrderStatus.PENDING, **kwargs):
        kwargs.setdefault("store", store)
        kwargs.setdefault("order_number", str(next(counter)))
        return create_order(line_items=line_items or [], status=status, **kwargs)

    return create


@pytest.fixture
def order(order_factory, product):
    """Pending order for 10 units of the plain product."""
    return order_factory(
        [LineItemData(quantity=10, product=product, unit_price=Decimal(10000))],
        total_price=Decimal(100000),
    )


@pytest.fixture
def bundle_order(order_factory, bundle_variant):
    """Pending order for 2 packs of 3 units."""
    return order_factory(
        [
            LineItemData(
                quantity=2, variant=bundle_variant, unit_price=Decimal(25000)
            )
        ],
        total_price=Decimal(50000),
    )
