"""Legacy order payments."""

from typing import Any, Dict

from ..errors import RowSkipped
from ..models.schema import EntityMapping, FieldMapping, ScopeJoin, TransformType
from ..models.record import SourceRow
from ..services.transformer import parse_timestamp

PAYMENT_METHODS = {
    "cash": "cash",
    "card": "card",
    "credit": "card",
    "credit_card": "card",
    "debit": "card",
    "debit_card": "card",
    "store_credit": "store_credit",
    "layaway": "layaway",
    "check": "check",
    "cheque": "check",
    "bank_transfer": "bank_transfer",
    "wire": "bank_transfer",
    "ach": "bank_transfer",
    "external": "external",
    "other": "external",
}

PAYMENT_STATUSES = {
    "pending": "pending",
    "processing": "pending",
    "completed": "completed",
    "complete": "completed",
    "success": "completed",
    "approved": "completed",
    "paid": "completed",
    "failed": "failed",
    "declined": "failed",
    "error": "failed",
    "refunded": "refunded",
    "partially_refunded": "partially_refunded",
    "partial_refund": "partially_refunded",
}

# Unknown gateway ids land in "other"
GATEWAYS = {"1": "square", "2": "stripe", "3": "paypal"}


def payment_order(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    """Payments only migrate alongside a migrated order."""
    orders = ctx.map_for("orders")
    order_id = orders.get(value) if orders is not None else None
    if order_id is None:
        raise RowSkipped(f"payments #{row.id}: order #{value} has no mapping")
    return order_id


def payment_gateway(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    if value is None or str(value).strip() == "":
        return None
    return GATEWAYS.get(str(value).strip(), "other")


def legacy_reference(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    return f"legacy_{row.id}"


def paid_at(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    status = str(row.get("status") or "").strip().lower()
    if status and PAYMENT_STATUSES.get(status) != "completed":
        return None
    return parse_timestamp(row.get("updated_at"))


TRANSFORMS = {
    "payment_order": payment_order,
    "payment_gateway": payment_gateway,
    "legacy_reference": legacy_reference,
    "paid_at": paid_at,
}

MAPPING = EntityMapping(
    name="payments",
    source_table="payments",
    target_table="payments",
    description="Order payments keyed by their legacy reference",
    scope_column=None,
    scope_via=ScopeJoin(column="order_id", parent_table="orders"),
    natural_key=["store_id", "reference"],
    dependencies=["orders"],
    tracked_fields=["payment_method", "status", "amount", "gateway"],
    field_mappings=[
        FieldMapping(None, "store_id", TransformType.TARGET_SCOPE),
        FieldMapping(None, "reference", TransformType.CUSTOM, {"function": "legacy_reference"}),
        FieldMapping("order_id", "order_id", TransformType.CUSTOM, {"function": "payment_order"}),
        FieldMapping("type", "payment_method", TransformType.ENUM_MAP,
                     {"mapping": PAYMENT_METHODS, "default": "cash"}),
        FieldMapping("status", "status", TransformType.ENUM_MAP,
                     {"mapping": PAYMENT_STATUSES, "default": "completed"}),
        FieldMapping("amount", "amount", TransformType.DECIMAL),
        FieldMapping("service_fee", "service_fee_amount", TransformType.DECIMAL),
        FieldMapping("currency", "currency", TransformType.UPPERCASE, default_value="USD"),
        FieldMapping("payment_gateway_id", "gateway", TransformType.CUSTOM, {"function": "payment_gateway"}),
        FieldMapping("payment_gateway_transaction_id", "transaction_id", TransformType.TRIM),
        FieldMapping("reference_id", "gateway_payment_id", TransformType.TRIM),
        FieldMapping("updated_at", "paid_at", TransformType.CUSTOM, {"function": "paid_at"}),
        FieldMapping("created_at", "created_at", TransformType.TIMESTAMP),
        FieldMapping("updated_at", "updated_at", TransformType.TIMESTAMP),
    ],
)
