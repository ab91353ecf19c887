class VariantType:
    """How a variant draws physical stock.

    A bundle sells N units of its parent per pack and has no stock of its own;
    a variation (size, color, ...) keeps an independent counter.
    """

    BUNDLE = "bundle"
    VARIATION = "variation"

    CHOICES = [
        (BUNDLE, "Bundle (shared parent stock)"),
        (VARIATION, "Variation (independent stock)"),
    ]


class MatchMethod:
    """How an external catalog reference was resolved to a local product."""

    EXTERNAL_VARIANT_ID = "external_variant_id"
    EXTERNAL_PRODUCT_ID = "external_product_id"
    SKU = "sku"
    VARIANT_SKU = "variant_sku"
    NOT_FOUND = "not_found"
