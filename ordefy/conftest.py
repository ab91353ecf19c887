from .account.tests.fixtures import (  # noqa: F401
    customer,
    other_store,
    staff_user,
    store,
)
from .order.tests.fixtures import bundle_order, order, order_factory  # noqa: F401
from .product.tests.fixtures import (  # noqa: F401
    bundle_variant,
    product,
    product_factory,
    variation_product,
    variation_variant,
)
from .shipping.tests.fixtures import carrier  # noqa: F401
