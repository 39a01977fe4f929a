"""Links between tags and the records they were attached to."""

from typing import Any, Dict

from ..errors import RowSkipped
from ..models.schema import EntityMapping, FieldMapping, TransformType, NOT_NULL
from ..models.record import SourceRow

# Legacy polymorphic type -> (entity whose map resolves the id, destination type)
TAGGABLE_TYPES = {
    "App\\Models\\Product": ("products", "product"),
    "App\\Models\\Order": ("orders", "order"),
    "App\\Models\\Repair": ("repairs", "repair"),
}


def _target(row: SourceRow):
    legacy_type = row.get("tagable_type")
    if legacy_type not in TAGGABLE_TYPES:
        raise RowSkipped(f"taggables #{row.id}: {legacy_type} records are not migrated")
    return TAGGABLE_TYPES[legacy_type]


def taggable_type(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    return _target(row)[1]


def taggable_id(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    entity, _ = _target(row)
    identity_map = ctx.map_for(entity)
    destination_id = identity_map.get(value) if identity_map is not None else None
    if destination_id is None:
        raise RowSkipped(f"taggables #{row.id}: {entity} #{value} has no mapping")
    return destination_id


TRANSFORMS = {
    "taggable_type": taggable_type,
    "taggable_id": taggable_id,
}

MAPPING = EntityMapping(
    name="taggables",
    source_table="store_tags",
    target_table="taggables",
    description="Tag assignments resolved through the product, order and repair maps",
    source_filters={"value": NOT_NULL, "tagable_id": NOT_NULL},
    natural_key=["tag_id", "taggable_type", "taggable_id"],
    dependencies=["tags", "products", "orders", "repairs"],
    field_mappings=[
        FieldMapping("id", "tag_id", TransformType.FOREIGN_KEY, {"entity": "tags"}, required=True),
        FieldMapping(None, "taggable_type", TransformType.CUSTOM, {"function": "taggable_type"}),
        FieldMapping("tagable_id", "taggable_id", TransformType.CUSTOM, {"function": "taggable_id"}),
    ],
)
