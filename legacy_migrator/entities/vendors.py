"""Legacy customers flagged as vendors become vendors."""

from typing import Any, Dict

from ..models.schema import EntityMapping, FieldMapping, TransformType
from ..models.record import SourceRow
from ..services.normalizers import vendor_code


def vendor_name(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    """First and last name, else company name, else ``Vendor #<id>``."""
    full_name = " ".join(
        str(row.get(c)).strip() for c in ("first_name", "last_name") if row.get(c)
    ).strip()
    if full_name:
        return full_name
    company = str(row.get("company_name") or "").strip()
    return company or f"Vendor #{row.id}"


def vendor_code_from_name(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    return vendor_code(vendor_name(value, config, row, ctx)) or None


TRANSFORMS = {
    "vendor_name": vendor_name,
    "vendor_code": vendor_code_from_name,
}

MAPPING = EntityMapping(
    name="vendors",
    source_table="customers",
    target_table="vendors",
    description="Legacy customers with is_vendor set",
    source_filters={"is_vendor": 1, "deleted_at": None},
    natural_key=["store_id", "email"],
    match_on=[["store_id", "name"]],
    field_mappings=[
        FieldMapping(None, "store_id", TransformType.TARGET_SCOPE),
        FieldMapping(None, "name", TransformType.CUSTOM, {"function": "vendor_name"}, required=True),
        FieldMapping(None, "code", TransformType.CUSTOM, {"function": "vendor_code"}),
        FieldMapping("email", "email", TransformType.LOWERCASE),
        FieldMapping("phone_number", "phone", TransformType.TRIM),
        FieldMapping("company_name", "company_name", TransformType.TRIM),
        FieldMapping("notes", "notes", TransformType.DIRECT),
        FieldMapping(None, "country", TransformType.CONSTANT, {"value": "US"}),
        FieldMapping(None, "is_active", TransformType.CONSTANT, {"value": True}),
        FieldMapping("created_at", "created_at", TransformType.TIMESTAMP),
        FieldMapping("updated_at", "updated_at", TransformType.TIMESTAMP),
    ],
)
