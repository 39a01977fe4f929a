"""Legacy store marketplaces become sales channels."""

import re
from typing import Any, Dict

from ..models.schema import EntityMapping, FieldMapping, TransformType
from ..models.record import SourceRow

PLATFORMS = {
    "shopify": "shopify",
    "ebay": "ebay",
    "amazon": "amazon",
    "etsy": "etsy",
    "walmart": "walmart",
    "woocommerce": "woocommerce",
}

LOCAL_MARKETPLACES = {"pos", "square", "dejavoo"}

CHANNEL_CODES = {"pos": "in_store", "square": "square", **PLATFORMS}


def _marketplace(row: SourceRow) -> str:
    return str(row.get("marketplace") or "").strip().lower()


def channel_name(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    for column in ("name", "external_marketplace_name"):
        candidate = row.get(column)
        if candidate and str(candidate).strip():
            return str(candidate).strip()
    marketplace = str(row.get("marketplace") or "").strip()
    return marketplace[:1].upper() + marketplace[1:] if marketplace else f"Channel #{row.id}"


def channel_code(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    marketplace = _marketplace(row)
    if marketplace in CHANNEL_CODES:
        return CHANNEL_CODES[marketplace]
    return re.sub(r"[^a-z0-9]", "_", channel_name(value, config, row, ctx).lower())


def channel_platform(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    # POS, Square, Dejavoo, Rapnet and Shipstation are not platform marketplaces
    return PLATFORMS.get(_marketplace(row))


def channel_type(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    return PLATFORMS.get(_marketplace(row), "pos")


def channel_is_local(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    marketplace = _marketplace(row)
    return not marketplace or marketplace in LOCAL_MARKETPLACES


def channel_is_default(value: Any, config: Dict, row: SourceRow, ctx: Any) -> Any:
    return _marketplace(row) == "pos"


TRANSFORMS = {
    "channel_name": channel_name,
    "channel_code": channel_code,
    "channel_platform": channel_platform,
    "channel_type": channel_type,
    "channel_is_local": channel_is_local,
    "channel_is_default": channel_is_default,
}

MAPPING = EntityMapping(
    name="sales_channels",
    source_table="store_market_places",
    target_table="sales_channels",
    description="Marketplace connections and POS channels",
    source_filters={"deleted_at": None},
    natural_key=["store_id", "code"],
    field_mappings=[
        FieldMapping(None, "store_id", TransformType.TARGET_SCOPE),
        FieldMapping(None, "name", TransformType.CUSTOM, {"function": "channel_name"}),
        FieldMapping(None, "code", TransformType.CUSTOM, {"function": "channel_code"}),
        FieldMapping(None, "platform", TransformType.CUSTOM, {"function": "channel_platform"}),
        FieldMapping(None, "type", TransformType.CUSTOM, {"function": "channel_type"}),
        FieldMapping(None, "is_local", TransformType.CUSTOM, {"function": "channel_is_local"}),
        FieldMapping(None, "is_default", TransformType.CUSTOM, {"function": "channel_is_default"}),
        FieldMapping(None, "is_active", TransformType.CONSTANT, {"value": True}),
        FieldMapping("external_marketplace_id", "external_store_id", TransformType.TRIM),
        FieldMapping("connected_successfully", "status", TransformType.ENUM_MAP, {
            "mapping": {"1": "active", "true": "active", "0": "pending", "false": "pending"},
            "default": "pending",
        }),
        FieldMapping("created_at", "created_at", TransformType.TIMESTAMP),
        FieldMapping("updated_at", "updated_at", TransformType.TIMESTAMP),
    ],
)
