"""Legacy store tags. Rows sharing a name collapse into one tag."""

from typing import Any, Dict

from ..models.schema import EntityMapping, FieldMapping, TransformType, NOT_NULL
from ..models.record import SourceRow
from ..services.normalizers import tag_color


def color_for_tag(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    name = str(row.get("value") or "").strip()
    return tag_color(name) if name else None


TRANSFORMS = {
    "tag_color": color_for_tag,
}

MAPPING = EntityMapping(
    name="tags",
    source_table="store_tags",
    target_table="tags",
    description="One destination tag per distinct trimmed tag value",
    source_filters={"value": NOT_NULL},
    natural_key=["store_id", "name"],
    tracked_fields=["slug", "color"],
    field_mappings=[
        FieldMapping(None, "store_id", TransformType.TARGET_SCOPE),
        FieldMapping("value", "name", TransformType.TRIM, required=True),
        FieldMapping("value", "slug", TransformType.SLUG),
        FieldMapping(None, "color", TransformType.CUSTOM, {"function": "tag_color"}),
    ],
)
