import pytest

from ..models import Product, ProductVariant


@pytest.fixture
def product(store):
    """Plain product with 100 units on hand."""
    return Product.objects.create(
        store=store, name="Protein bar", sku="BAR-001", external_id="ext-100", stock=100
    )


@pytest.fixture
def bundle_variant(product):
    """Pack of 3 drawing from the parent product's stock."""
    return ProductVariant.objects.create(
        product=product,
        name="Pack x3",
        sku="BAR-001-X3",
        external_id="ext-var-3",
        uses_shared_stock=True,
        units_per_pack=3,
    )


@pytest.fixture
def variation_product(store):
    return Product.objects.create(
        store=store, name="T-shirt", sku="TSHIRT", external_id="ext-200", stock=0
    )


@pytest.fixture
def variation_variant(variation_product):
    """Size M with its own stock of 20 units."""
    return ProductVariant.objects.create(
        product=variation_product,
        name="M",
        sku="TSHIRT-M",
        external_id="ext-var-m",
        stock=20,
    )


@pytest.fixture
def product_factory(store):
    def create_product(name="Product", stock=0, **kwargs):
        kwargs.setdefault("store", store)
        return Product.objects.create(name=name, stock=stock, **kwargs)

    return create_product
