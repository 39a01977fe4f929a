"""Legacy customers (excluding vendors)."""

from ..models.schema import EntityMapping, FieldMapping, TransformType

MAPPING = EntityMapping(
    name="customers",
    source_table="customers",
    target_table="customers",
    description="Store customers, matched by email then phone",
    source_filters={"is_vendor": [0, None], "deleted_at": None},
    natural_key=["store_id", "email"],
    match_on=[["store_id", "phone_number"]],
    tracked_fields=[
        "first_name", "last_name", "phone_number", "company_name",
        "address", "city", "zip", "accepts_marketing", "is_active",
    ],
    field_mappings=[
        FieldMapping(None, "store_id", TransformType.TARGET_SCOPE),
        FieldMapping("first_name", "first_name", TransformType.TRIM, default_value="Unknown"),
        FieldMapping("last_name", "last_name", TransformType.TRIM, default_value="Customer"),
        FieldMapping("email", "email", TransformType.LOWERCASE),
        FieldMapping("phone_number", "phone_number", TransformType.CLEAN_PHONE, {"min_digits": 10}),
        FieldMapping("company_name", "company_name", TransformType.TRIM),
        FieldMapping("street_address", "address", TransformType.TRIM),
        FieldMapping("street_address2", "address2", TransformType.TRIM),
        FieldMapping("city", "city", TransformType.TRIM),
        FieldMapping("zip", "zip", TransformType.TRIM),
        FieldMapping("accepts_marketing", "accepts_marketing", TransformType.BOOLEAN),
        FieldMapping("is_active", "is_active", TransformType.BOOLEAN, {"default": True}),
        FieldMapping("number_of_sales", "number_of_sales", TransformType.INTEGER),
        FieldMapping("number_of_buys", "number_of_buys", TransformType.INTEGER),
        FieldMapping("last_sales_date", "last_sales_date", TransformType.TIMESTAMP),
        FieldMapping("created_at", "created_at", TransformType.TIMESTAMP),
        FieldMapping("updated_at", "updated_at", TransformType.TIMESTAMP),
    ],
)
