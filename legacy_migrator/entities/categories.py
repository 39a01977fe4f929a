"""Legacy categories, including their parent links."""

from typing import Any, Dict

from ..models.schema import EntityMapping, FieldMapping, TransformType
from ..models.record import SourceRow
from ..services.normalizers import slugify

DEFAULT_CATEGORY_TYPE = "transaction_item_category"


def category_slug(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    """Name slug plus the legacy id; sibling categories often share a name."""
    slug = slugify(row.get("name"))
    return f"{slug}-{row.id}" if slug else f"category-{row.id}"


TRANSFORMS = {
    "category_slug": category_slug,
}

# parent_id resolves through this entity's own map, so a parent must have
# been migrated before its children; a parent with a higher legacy id is
# linked by a later force-overwrite run.
MAPPING = EntityMapping(
    name="categories",
    source_table="categories",
    target_table="categories",
    description="Item categories matched by name and type; parents resolve through the category map",
    source_filters={"deleted_at": None},
    natural_key=["store_id", "name", "type"],
    tracked_fields=["description", "sort_order", "level", "parent_id"],
    field_mappings=[
        FieldMapping(None, "store_id", TransformType.TARGET_SCOPE),
        FieldMapping("name", "name", TransformType.TRIM, required=True),
        FieldMapping(None, "slug", TransformType.CUSTOM, {"function": "category_slug"}),
        FieldMapping("type", "type", TransformType.TRIM, default_value=DEFAULT_CATEGORY_TYPE),
        FieldMapping("description", "description", TransformType.DIRECT),
        FieldMapping("sort_order", "sort_order", TransformType.INTEGER),
        FieldMapping("level", "level", TransformType.INTEGER),
        FieldMapping("parent_id", "parent_id", TransformType.FOREIGN_KEY, {"entity": "categories"}),
        FieldMapping("created_at", "created_at", TransformType.TIMESTAMP),
        FieldMapping("updated_at", "updated_at", TransformType.TIMESTAMP),
    ],
)
