"""Legacy order line items."""

from ..models.schema import EntityMapping, FieldMapping, ScopeJoin, TransformType

MAPPING = EntityMapping(
    name="order_items",
    source_table="order_items",
    target_table="order_items",
    description="Order lines, scoped through their order",
    scope_column=None,
    scope_via=ScopeJoin(column="order_id", parent_table="orders"),
    natural_key=["order_id", "legacy_id"],
    dependencies=["orders", "products"],
    field_mappings=[
        FieldMapping("order_id", "order_id", TransformType.FOREIGN_KEY,
                     {"entity": "orders"}, required=True),
        FieldMapping("id", "legacy_id", TransformType.INTEGER),
        FieldMapping("product_id", "product_id", TransformType.FOREIGN_KEY, {"entity": "products"}),
        FieldMapping("sku", "sku", TransformType.TRIM),
        FieldMapping("title", "title", TransformType.TRIM, default_value="Item"),
        FieldMapping("quantity", "quantity", TransformType.INTEGER, {"default": 1}),
        FieldMapping("price", "price", TransformType.DECIMAL),
        FieldMapping("cost_per_item", "cost", TransformType.DECIMAL),
        FieldMapping("discount", "discount", TransformType.DECIMAL),
        FieldMapping("created_at", "created_at", TransformType.TIMESTAMP),
        FieldMapping("updated_at", "updated_at", TransformType.TIMESTAMP),
    ],
)
