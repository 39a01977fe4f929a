"""Legacy repair tickets."""

from ..models.schema import EntityMapping, FieldMapping, TransformType, NOT_NULL

REPAIR_STATUSES = {
    "pending": "pending",
    "draft": "pending",
    "sent_to_vendor": "sent_to_vendor",
    "sent to vendor": "sent_to_vendor",
    "shipped": "sent_to_vendor",
    "received_by_vendor": "received_by_vendor",
    "received by vendor": "received_by_vendor",
    "received": "received_by_vendor",
    "payment_received": "payment_received",
    "payment received": "payment_received",
    "paid": "payment_received",
    "refunded": "refunded",
    "cancelled": "cancelled",
    "canceled": "cancelled",
    "voided": "cancelled",
    "archived": "archived",
    "closed": "archived",
}

MAPPING = EntityMapping(
    name="repairs",
    source_table="repairs",
    target_table="repairs",
    description="Repair tickets keyed by repair number; repairs without a customer are not migrated",
    source_filters={"customer_id": NOT_NULL},
    natural_key=["store_id", "repair_number"],
    dependencies=["customers", "vendors"],
    tracked_fields=["customer_id", "vendor_id", "status", "total"],
    field_mappings=[
        FieldMapping(None, "store_id", TransformType.TARGET_SCOPE),
        FieldMapping("invoice_number", "repair_number", TransformType.DERIVED_KEY, {"prefix": "REP"}),
        FieldMapping("customer_id", "customer_id", TransformType.FOREIGN_KEY, {"entity": "customers"}),
        FieldMapping("vendor_id", "vendor_id", TransformType.FOREIGN_KEY, {"entity": "vendors"}),
        FieldMapping("status", "status", TransformType.ENUM_MAP,
                     {"mapping": REPAIR_STATUSES, "default": "pending"}),
        FieldMapping("service_fee", "service_fee", TransformType.DECIMAL),
        FieldMapping("sub_total", "subtotal", TransformType.DECIMAL),
        FieldMapping("sales_tax", "tax", TransformType.DECIMAL),
        FieldMapping("tax_rate", "tax_rate", TransformType.DECIMAL, {"places": 4}),
        FieldMapping("discount", "discount", TransformType.DECIMAL),
        FieldMapping("shipping_cost", "shipping_cost", TransformType.DECIMAL),
        FieldMapping("total", "total", TransformType.DECIMAL),
        FieldMapping("description", "description", TransformType.DIRECT),
        FieldMapping("repair_days", "repair_days", TransformType.INTEGER, {"default": 7}),
        FieldMapping("is_appraisal", "is_appraisal", TransformType.BOOLEAN),
        FieldMapping(None, "date_sent_to_vendor", TransformType.COALESCE_FIELDS,
                     {"fields": ["vendor_sent_date_time", "date_sent_by_vendor"], "as_timestamp": True}),
        FieldMapping(None, "date_received_by_vendor", TransformType.COALESCE_FIELDS,
                     {"fields": ["vendor_received_date_time", "date_received_by_vendor"], "as_timestamp": True}),
        FieldMapping("created_at", "created_at", TransformType.TIMESTAMP),
        FieldMapping("updated_at", "updated_at", TransformType.TIMESTAMP),
    ],
)
