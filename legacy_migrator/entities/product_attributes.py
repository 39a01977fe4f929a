"""Legacy product metas become normalized product attribute values."""

from ..models.schema import EntityMapping, FieldMapping, ScopeJoin, TransformType, NOT_NULL

PRODUCT_MODEL = "App\\Models\\Product"

MAPPING = EntityMapping(
    name="product_attributes",
    source_table="metas",
    target_table="product_attribute_values",
    description="Jewelry attributes, with color/clarity/weight values bucketed into ranges",
    scope_column=None,
    scope_via=ScopeJoin(column="metaable_id", parent_table="products"),
    source_filters={"metaable_type": PRODUCT_MODEL, "deleted_at": None, "value": NOT_NULL},
    natural_key=["product_id", "attribute"],
    dependencies=["products"],
    field_mappings=[
        FieldMapping("metaable_id", "product_id", TransformType.FOREIGN_KEY,
                     {"entity": "products"}, required=True),
        FieldMapping("field", "attribute", TransformType.LOWERCASE, required=True),
        FieldMapping("value", "value", TransformType.OPTION_MATCH, {"attribute_field": "field"}),
        FieldMapping("value", "original_value", TransformType.TRIM),
        FieldMapping("created_at", "created_at", TransformType.TIMESTAMP),
        FieldMapping("updated_at", "updated_at", TransformType.TIMESTAMP),
    ],
)
