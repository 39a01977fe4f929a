"""Legacy consignment memos sent out to vendors."""

from typing import Any, Dict

from ..models.schema import EntityMapping, FieldMapping, TransformType
from ..models.record import SourceRow

# Unknown legacy statuses land in "pending"
MEMO_STATUSES = {
    "pending": "pending",
    "draft": "pending",
    "sent_to_vendor": "sent_to_vendor",
    "sent to vendor": "sent_to_vendor",
    "shipped": "sent_to_vendor",
    "vendor_received": "vendor_received",
    "vendor received": "vendor_received",
    "received": "vendor_received",
    "vendor_returned": "vendor_returned",
    "vendor returned": "vendor_returned",
    "returned": "vendor_returned",
    "payment_received": "payment_received",
    "payment received": "payment_received",
    "paid": "payment_received",
    "payment processed": "payment_received",
    "archived": "archived",
    "closed": "archived",
    "cancelled": "cancelled",
    "canceled": "cancelled",
    "voided": "cancelled",
}

DEFAULT_TENURE_DAYS = 30


def memo_tenure(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    """Days on memo; older rows spell the column ``tenor``."""
    for column in ("tenure", "tenor"):
        candidate = str(row.get(column) or "").strip()
        if candidate.isdigit() and int(candidate) > 0:
            return int(candidate)
    return DEFAULT_TENURE_DAYS


TRANSFORMS = {
    "memo_tenure": memo_tenure,
}

MAPPING = EntityMapping(
    name="memos",
    source_table="memos",
    target_table="memos",
    description="Consignment memos keyed by memo number",
    source_filters={"deleted_at": None},
    natural_key=["store_id", "memo_number"],
    dependencies=["vendors"],
    tracked_fields=["vendor_id", "status", "subtotal", "tax", "shipping_cost", "total"],
    field_mappings=[
        FieldMapping(None, "store_id", TransformType.TARGET_SCOPE),
        FieldMapping("invoice_number", "memo_number", TransformType.DERIVED_KEY, {"prefix": "MEMO"}),
        FieldMapping("vendor_id", "vendor_id", TransformType.FOREIGN_KEY, {"entity": "vendors"}),
        FieldMapping("status", "status", TransformType.ENUM_MAP,
                     {"mapping": MEMO_STATUSES, "default": "pending"}),
        FieldMapping(None, "tenure", TransformType.CUSTOM, {"function": "memo_tenure"}),
        FieldMapping("subtotal", "subtotal", TransformType.DECIMAL),
        FieldMapping("tax", "tax", TransformType.DECIMAL),
        FieldMapping("tax_rate", "tax_rate", TransformType.DECIMAL, {"places": 4}),
        FieldMapping("charge_taxes", "charge_taxes", TransformType.BOOLEAN),
        FieldMapping("shipping_cost", "shipping_cost", TransformType.DECIMAL),
        FieldMapping("total", "total", TransformType.DECIMAL),
        FieldMapping("description", "description", TransformType.DIRECT),
        FieldMapping("duration", "duration", TransformType.INTEGER, {"default": DEFAULT_TENURE_DAYS}),
        FieldMapping("created_at", "created_at", TransformType.TIMESTAMP),
        FieldMapping("updated_at", "updated_at", TransformType.TIMESTAMP),
    ],
)
