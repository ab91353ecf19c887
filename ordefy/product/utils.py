from . import VariantType


def resolve_variant_type(payload_type=None, uses_shared_stock=None) -> str:
    """Classify a variant as bundle or variation.

    An explicit, valid type wins. Otherwise only an explicit shared-stock flag
    makes a bundle; anything unclear is a variation so it never draws from a
    parent pool it was not set up for.
    """
    if payload_type in (VariantType.BUNDLE, VariantType.VARIATION):
        return payload_type
    if uses_shared_stock is True:
        return VariantType.BUNDLE
    return VariantType.VARIATION


def normalize_sku(sku):
    if sku is None:
        return None
    sku = sku.strip()
    return sku.upper() or None
