"""Preset export profiles for common shop platforms."""
from typing import Any

from feedhub.utils.errors import NotFoundError

WOOCOMMERCE_FIELDS = [
    "title",
    "description",
    "sku",
    "price",
    "regular_price",
    "sale_price",
    "stock_quantity",
    "manage_stock",
    "stock_status",
    "category",
    "tags",
    "images",
    "attributes",
]

SHOPIFY_FIELDS = [
    "title",
    "body_html",
    "vendor",
    "product_type",
    "tags",
    "published",
    "option1_name",
    "option1_value",
    "option2_name",
    "option2_value",
    "option3_name",
    "option3_value",
    "variant_sku",
    "variant_grams",
    "variant_inventory_tracker",
    "variant_inventory_qty",
    "variant_inventory_policy",
    "variant_fulfillment_service",
    "variant_price",
    "variant_compare_at_price",
    "variant_requires_shipping",
    "variant_taxable",
    "variant_barcode",
    "image_src",
    "image_position",
    "image_alt_text",
    "gift_card",
    "seo_title",
    "seo_description",
    "google_shopping_category",
    "google_shopping_gender",
    "google_shopping_age_group",
    "google_shopping_mpn",
    "google_shopping_condition",
    "google_shopping_custom_product",
]

_TEMPLATES: dict[str, list[str]] = {
    "woocommerce": WOOCOMMERCE_FIELDS,
    "shopify": SHOPIFY_FIELDS,
}


def export_template(platform: str) -> dict[str, Any]:
    """
    Profile defaults for a platform, ready to be posted back as a new profile.

    Raises:
        NotFoundError: If there is no template for the platform
    """
    fields = _TEMPLATES.get(platform.lower())
    if fields is None:
        raise NotFoundError(
            f"No export template for platform '{platform}'",
            details={"available": sorted(_TEMPLATES)},
        )
    return {
        "output_format": "csv",
        "platform": platform.lower(),
        "field_selection": list(fields),
        "field_ordering": list(fields),
        "file_naming": f"{platform.lower()}_{{timestamp}}",
    }
