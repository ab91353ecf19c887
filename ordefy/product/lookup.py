"""Map line items coming from an external catalog onto local products."""

import logging

import attrs
from django.db.models.functions import Trim, Upper

from . import MatchMethod
from .models import Product, ProductVariant
from .utils import normalize_sku

logger = logging.getLogger(__name__)


@attrs.frozen
class ProductMatch:
    product_id: int | None
    variant_id: int | None
    match_method: str

    @property
    def found(self):
        return self.product_id is not None


NOT_FOUND = ProductMatch(None, None, MatchMethod.NOT_FOUND)


def _match_sku(queryset, sku):
    return queryset.annotate(normalized_sku=Upper(Trim("sku"))).filter(
        normalized_sku=sku
    )


def find_product_by_sku(store, sku) -> Product | None:
    """Return the active product whose SKU matches, ignoring case and padding."""
    sku = normalize_sku(sku)
    if not sku:
        return None
    return _match_sku(Product.objects.active().for_store(store), sku).first()


def find_product_for_external_reference(
    store, external_product_ref=None, external_variant_ref=None, sku=None
) -> ProductMatch:
    """Resolve external product/variant references to local ids.

    Tries, in order: the external variant id, the external product id (then a
    variant of that product with the same SKU), the product SKU and finally a
    variant SKU. Only active rows of ``store`` are considered.
    """
    variants = ProductVariant.objects.filter(
        product__store=store, product__is_active=True, is_active=True
    )
    products = Product.objects.active().for_store(store)
    sku = normalize_sku(sku)

    if external_variant_ref:
        variant = variants.filter(external_id=str(external_variant_ref)).first()
        if variant:
            return ProductMatch(
                variant.product_id, variant.pk, MatchMethod.EXTERNAL_VARIANT_ID
            )

    if external_product_ref:
        product = products.filter(external_id=str(external_product_ref)).first()
        if product:
            variant_id = None
            if sku:
                variant = _match_sku(variants.filter(product=product), sku).first()
                variant_id = variant.pk if variant else None
            return ProductMatch(
                product.pk, variant_id, MatchMethod.EXTERNAL_PRODUCT_ID
            )

    if sku:
        product = _match_sku(products, sku).first()
        if product:
            return ProductMatch(product.pk, None, MatchMethod.SKU)

        variant = _match_sku(variants, sku).first()
        if variant:
            return ProductMatch(variant.product_id, variant.pk, MatchMethod.VARIANT_SKU)

    logger.info(
        "No local product for store %s (product=%s, variant=%s, sku=%s)",
        store.pk,
        external_product_ref,
        external_variant_ref,
        sku,
    )
    return NOT_FOUND
