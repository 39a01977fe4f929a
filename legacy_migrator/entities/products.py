"""Legacy products."""

from typing import Any, Dict

from ..models.schema import EntityMapping, FieldMapping, TransformType
from ..models.record import SourceRow
from ..services.normalizers import slugify


def product_title(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    for column in ("title", "product_name"):
        candidate = row.get(column)
        if candidate and str(candidate).strip():
            return str(candidate).strip()
    return f"Product #{row.id}"


def product_handle(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    """Title slug plus the legacy id, so handles stay unique."""
    slug = slugify(row.get("title") or row.get("product_name") or "product")
    return f"{slug}-{row.id}" if slug else f"product-{row.id}"


TRANSFORMS = {
    "product_title": product_title,
    "product_handle": product_handle,
}

MAPPING = EntityMapping(
    name="products",
    source_table="products",
    target_table="products",
    description="Catalog products, matched by handle then SKU",
    source_filters={"deleted_at": None},
    natural_key=["store_id", "handle"],
    match_on=[["store_id", "sku"]],
    dependencies=["vendors"],
    field_mappings=[
        FieldMapping(None, "store_id", TransformType.TARGET_SCOPE),
        FieldMapping(None, "title", TransformType.CUSTOM, {"function": "product_title"}),
        FieldMapping(None, "handle", TransformType.CUSTOM, {"function": "product_handle"}),
        FieldMapping("sku", "sku", TransformType.DERIVED_KEY, {"prefix": "SKU"}),
        FieldMapping("description", "description", TransformType.DIRECT),
        FieldMapping("vendor_id", "vendor_id", TransformType.FOREIGN_KEY, {"entity": "vendors"}),
        FieldMapping("status", "status", TransformType.ENUM_MAP, {
            "mapping": {
                "active": "active",
                "published": "active",
                "draft": "draft",
                "archived": "archived",
                "inactive": "archived",
                "sold": "sold",
            },
            "default": "draft",
        }),
        FieldMapping("price", "price", TransformType.DECIMAL),
        FieldMapping("cost", "cost", TransformType.DECIMAL),
        FieldMapping("compare_at_price", "compare_at_price", TransformType.DECIMAL),
        FieldMapping("weight", "weight", TransformType.DECIMAL, {"places": 3}),
        FieldMapping("quantity", "quantity", TransformType.INTEGER),
        FieldMapping("upc", "upc", TransformType.TRIM),
        FieldMapping("is_published", "is_published", TransformType.BOOLEAN),
        FieldMapping("track_quantity", "track_quantity", TransformType.BOOLEAN),
        FieldMapping("charge_taxes", "charge_taxes", TransformType.BOOLEAN, {"default": True}),
        FieldMapping("created_at", "created_at", TransformType.TIMESTAMP),
        FieldMapping("updated_at", "updated_at", TransformType.TIMESTAMP),
    ],
)
