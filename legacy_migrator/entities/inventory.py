"""Legacy product variants become inventory records."""

from ..models.schema import EntityMapping, FieldMapping, ScopeJoin, TransformType

MAPPING = EntityMapping(
    name="inventory",
    source_table="product_variants",
    target_table="inventory",
    description="Stock levels per SKU, scoped through the owning product",
    scope_column=None,
    scope_via=ScopeJoin(column="product_id", parent_table="products"),
    source_filters={"deleted_at": None},
    natural_key=["store_id", "sku"],
    dependencies=["products"],
    tracked_fields=["quantity", "unit_cost", "price"],
    field_mappings=[
        FieldMapping(None, "store_id", TransformType.TARGET_SCOPE),
        FieldMapping("product_id", "product_id", TransformType.FOREIGN_KEY, {"entity": "products"}),
        FieldMapping("sku", "sku", TransformType.DERIVED_KEY, {"prefix": "SKU"}),
        FieldMapping("quantity", "quantity", TransformType.INTEGER),
        FieldMapping("cost", "unit_cost", TransformType.DECIMAL),
        FieldMapping("price", "price", TransformType.DECIMAL),
        FieldMapping("created_at", "created_at", TransformType.TIMESTAMP),
        FieldMapping("updated_at", "updated_at", TransformType.TIMESTAMP),
    ],
)
