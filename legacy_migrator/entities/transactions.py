"""Legacy buy transactions (items bought from customers)."""

from typing import Any, Dict

from ..models.schema import EntityMapping, FieldMapping, TransformType
from ..models.record import SourceRow

# Legacy status_id -> status; ids missing here fall back to "pending"
TRANSACTION_STATUSES = {
    "1": "kit_sent",
    "2": "items_received",
    "3": "kit_request_rejected",
    "4": "offer_given",
    "5": "offer_accepted",
    "6": "offer_declined",
    "8": "payment_processed",
    "11": "items_returned",
    "12": "offer_declined",
    "13": "payment_processed",
    "18": "items_returned",
    "19": "offer_declined",
    "20": "kit_request_rejected",
    "25": "kit_request_on_hold",
    "50": "items_reviewed",
    "53": "kit_request_confirmed",
    "54": "kit_request_on_hold",
    "55": "items_reviewed",
    "60": "pending_kit_request",
    "62": "pending_kit_request",
    "66": "payment_processed",
    "67": "payment_processed",
    "68": "offer_declined",
    "69": "offer_declined",
    "71": "payment_processed",
    "72": "payment_processed",
}

TYPE_IN_STORE = "in_store"
TYPE_MAIL_IN = "mail_in"


def _in_house(row: SourceRow) -> bool:
    return str(row.get("is_in_house") or "0").strip().lower() not in ("0", "", "false")


def transaction_type(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    return TYPE_IN_STORE if _in_house(row) else TYPE_MAIL_IN


def transaction_source(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    return None if _in_house(row) else "legacy_online"


TRANSFORMS = {
    "transaction_type": transaction_type,
    "transaction_source": transaction_source,
}

MAPPING = EntityMapping(
    name="transactions",
    source_table="transactions",
    target_table="transactions",
    description="Buy transactions numbered by their legacy id",
    source_filters={"deleted_at": None},
    natural_key=["store_id", "transaction_number"],
    dependencies=["customers"],
    tracked_fields=[
        "customer_id", "status", "preliminary_offer", "final_offer",
        "estimated_value", "bin_location",
    ],
    field_mappings=[
        FieldMapping(None, "store_id", TransformType.TARGET_SCOPE),
        FieldMapping("id", "transaction_number", TransformType.TRIM, required=True),
        FieldMapping("customer_id", "customer_id", TransformType.FOREIGN_KEY, {"entity": "customers"}),
        FieldMapping("status_id", "status", TransformType.ENUM_MAP,
                     {"mapping": TRANSACTION_STATUSES, "default": "pending"}),
        FieldMapping(None, "type", TransformType.CUSTOM, {"function": "transaction_type"}),
        FieldMapping(None, "source", TransformType.CUSTOM, {"function": "transaction_source"}),
        FieldMapping("preliminary_offer", "preliminary_offer", TransformType.DECIMAL),
        FieldMapping("final_offer", "final_offer", TransformType.DECIMAL),
        FieldMapping("est_value", "estimated_value", TransformType.DECIMAL),
        FieldMapping("bin_location", "bin_location", TransformType.TRIM),
        FieldMapping("pub_note", "customer_notes", TransformType.DIRECT),
        FieldMapping("private_note", "internal_notes", TransformType.DIRECT),
        FieldMapping("customer_description", "customer_description", TransformType.DIRECT),
        FieldMapping("created_at", "created_at", TransformType.TIMESTAMP),
        FieldMapping("updated_at", "updated_at", TransformType.TIMESTAMP),
    ],
)
