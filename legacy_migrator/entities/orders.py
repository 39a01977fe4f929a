"""Legacy orders."""

from ..models.schema import EntityMapping, FieldMapping, TransformType

# Ambiguous or unknown legacy statuses land in "pending"
ORDER_STATUSES = {
    "draft": "draft",
    "pending": "pending",
    "awaiting_payment": "pending",
    "confirmed": "confirmed",
    "paid": "confirmed",
    "payment_received": "confirmed",
    "processing": "processing",
    "in_progress": "processing",
    "shipped": "shipped",
    "in_transit": "shipped",
    "delivered": "delivered",
    "completed": "completed",
    "complete": "completed",
    "fulfilled": "completed",
    "cancelled": "cancelled",
    "canceled": "cancelled",
    "voided": "cancelled",
    "refunded": "refunded",
    "partial": "partial_payment",
    "partial_payment": "partial_payment",
}

SERVICE_FEE_UNITS = {
    "percent": "percent",
    "percentage": "percent",
    "%": "percent",
    "fixed": "fixed",
    "amount": "fixed",
    "$": "fixed",
}

MAPPING = EntityMapping(
    name="orders",
    source_table="orders",
    target_table="orders",
    description="Sales orders keyed by invoice number",
    natural_key=["store_id", "invoice_number"],
    dependencies=["customers", "sales_channels"],
    tracked_fields=[
        "customer_id", "sales_channel_id", "status", "total", "sub_total",
        "sales_tax", "shipping_cost", "discount_cost",
    ],
    field_mappings=[
        FieldMapping(None, "store_id", TransformType.TARGET_SCOPE),
        FieldMapping(None, "invoice_number", TransformType.DERIVED_KEY, {
            "fields": ["order_id", "invoice_number"],
            "blank_values": ["0"],
            "prefix": "INV",
        }),
        FieldMapping("order_id", "order_id", TransformType.TRIM),
        FieldMapping("customer_id", "customer_id", TransformType.FOREIGN_KEY, {"entity": "customers"}),
        FieldMapping("store_marketplace_id", "sales_channel_id", TransformType.FOREIGN_KEY,
                     {"entity": "sales_channels"}),
        FieldMapping("status", "status", TransformType.ENUM_MAP,
                     {"mapping": ORDER_STATUSES, "default": "pending"}),
        FieldMapping("total", "total", TransformType.DECIMAL),
        FieldMapping("sub_total", "sub_total", TransformType.DECIMAL),
        FieldMapping("sales_tax", "sales_tax", TransformType.DECIMAL),
        FieldMapping("tax_rate", "tax_rate", TransformType.DECIMAL, {"places": 4}),
        FieldMapping("shipping_cost", "shipping_cost", TransformType.DECIMAL),
        FieldMapping("discount_cost", "discount_cost", TransformType.DECIMAL),
        FieldMapping("service_fee_value", "service_fee_value", TransformType.DECIMAL),
        FieldMapping("service_fee_unit", "service_fee_unit", TransformType.ENUM_MAP,
                     {"mapping": SERVICE_FEE_UNITS, "default": "fixed"}),
        FieldMapping("service_fee_reason", "service_fee_reason", TransformType.TRIM, default_value=""),
        FieldMapping("external_marketplace_id", "external_marketplace_id", TransformType.TRIM),
        FieldMapping("date_of_purchase", "date_of_purchase", TransformType.TIMESTAMP),
        FieldMapping("customer_note", "notes", TransformType.DIRECT),
        FieldMapping("created_at", "created_at", TransformType.TIMESTAMP),
        FieldMapping("updated_at", "updated_at", TransformType.TIMESTAMP),
    ],
)
