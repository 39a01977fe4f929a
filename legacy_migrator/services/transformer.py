"""Field transformer: converts one legacy row into one destination row."""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, Optional
from dateutil import parser as date_parser

from ..errors import RowRejected, RowTransformWarning
from ..models.schema import (
    TransformType,
    EntityMapping,
    FieldMapping,
)
from ..models.record import (
    SourceRow,
    TransformedRow,
)
from .identity_map import IdentityMap
from .normalizers import default_options, digits_only, match_option, slugify

logger = logging.getLogger(__name__)

TRUE_STRINGS = {"1", "true", "t", "yes", "y", "on"}
FALSE_STRINGS = {"0", "false", "f", "no", "n", "off"}
ZERO_DATES = {"0000-00-00", "0000-00-00 00:00:00"}

# Transform signature: (value, config, row, context) -> value
TransformFunc = Callable[[Any, Dict[str, Any], SourceRow, "TransformContext"], Any]


@dataclass
class TransformContext:
    """Read-only inputs shared by every row of a run."""
    identity_maps: Dict[str, IdentityMap] = field(default_factory=dict)
    target_scope: Any = None

    def map_for(self, entity: str) -> Optional[IdentityMap]:
        return self.identity_maps.get(entity)


def derive_key(prefix: str, source_id: Any) -> str:
    """Stable fallback identifier, e.g. ``INV-1A2B3C4D``."""
    digest = hashlib.md5(str(source_id).encode("utf-8")).hexdigest()
    return f"{prefix}-{digest[:8].upper()}"


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a legacy timestamp; MySQL zero dates become None."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if _blank(value) or str(value).strip() in ZERO_DATES:
        return None

    try:
        return date_parser.parse(str(value))
    except (ValueError, OverflowError):
        raise RowTransformWarning(f"unparseable timestamp {value!r}", None)


class FieldTransformer:
    """
    Applies an EntityMapping's field mappings to source rows.

    Recoverable problems (unmapped enum values, malformed numbers,
    unresolved foreign keys) become row warnings and a safe fallback value.
    A required field that ends up empty rejects the row.
    """

    def __init__(self):
        """Initialize the transformer."""
        self._custom_transforms: Dict[str, TransformFunc] = {}
        self._builtin_transforms = self._register_builtin_transforms()

    def _register_builtin_transforms(self) -> Dict[str, TransformFunc]:
        """Register all built-in transformation functions."""
        return {
            TransformType.DIRECT.value: self._transform_direct,
            TransformType.TRIM.value: self._transform_trim,
            TransformType.TRUNCATE.value: self._transform_truncate,
            TransformType.UPPERCASE.value: self._transform_uppercase,
            TransformType.LOWERCASE.value: self._transform_lowercase,
            TransformType.SLUG.value: self._transform_slug,
            TransformType.ENUM_MAP.value: self._transform_enum_map,
            TransformType.DECIMAL.value: self._transform_decimal,
            TransformType.INTEGER.value: self._transform_integer,
            TransformType.BOOLEAN.value: self._transform_boolean,
            TransformType.TIMESTAMP.value: self._transform_timestamp,
            TransformType.FOREIGN_KEY.value: self._transform_foreign_key,
            TransformType.COALESCE_FIELDS.value: self._transform_coalesce_fields,
            TransformType.CONSTANT.value: self._transform_constant,
            TransformType.TARGET_SCOPE.value: self._transform_target_scope,
            TransformType.CLEAN_PHONE.value: self._transform_clean_phone,
            TransformType.DERIVED_KEY.value: self._transform_derived_key,
            TransformType.OPTION_MATCH.value: self._transform_option_match,
        }

    def register_transform(self, name: str, func: TransformFunc) -> None:
        """Register a custom transformation function."""
        self._custom_transforms[name] = func

    def has_transform(self, name: str) -> bool:
        return name in self._custom_transforms or name in self._builtin_transforms

    def transform(
        self,
        row: SourceRow,
        mapping: EntityMapping,
        context: Optional[TransformContext] = None
    ) -> TransformedRow:
        """
        Transform a source row to destination format.

        Args:
            row: Legacy row
            mapping: Entity mapping to apply
            context: Dependency identity maps and the target scope

        Returns:
            Transformed row carrying its natural key and warnings

        Raises:
            RowRejected: a required field could not be resolved
            RowSkipped: a custom transform decided the row does not migrate
        """
        context = context or TransformContext()
        data: Dict[str, Any] = {}
        warnings: List[str] = []

        for field_mapping in mapping.field_mappings:
            value = row.get(field_mapping.source_field) if field_mapping.source_field else None
            transform_func = self._resolve(field_mapping)

            try:
                transformed_value = transform_func(
                    value,
                    field_mapping.transform_config,
                    row,
                    context
                )
            except RowTransformWarning as w:
                transformed_value = w.fallback
                message = f"{mapping.name} #{row.id} {field_mapping.target_field}: {w}"
                warnings.append(message)
                logger.warning(message)

            if transformed_value is None and field_mapping.default_value is not None:
                transformed_value = field_mapping.default_value

            if transformed_value is None and field_mapping.required:
                raise RowRejected(
                    f"{mapping.name} #{row.id}: required field {field_mapping.target_field} is empty"
                )

            data[field_mapping.target_field] = transformed_value

        return TransformedRow(
            source_id=row.id,
            entity=mapping.name,
            data=data,
            natural_key=list(mapping.natural_key),
            warnings=warnings,
        )

    def _resolve(self, field_mapping: FieldMapping) -> TransformFunc:
        transform_name = (
            field_mapping.transform.value
            if isinstance(field_mapping.transform, TransformType)
            else field_mapping.transform
        )

        transform_func = (
            self._custom_transforms.get(transform_name) or
            self._builtin_transforms.get(transform_name)
        )

        if not transform_func and transform_name == TransformType.CUSTOM.value:
            func_name = field_mapping.transform_config.get("function")
            transform_func = self._custom_transforms.get(func_name)

        if not transform_func:
            raise ValueError(
                f"No transform registered for {field_mapping.target_field}: {transform_name}"
            )
        return transform_func

    # Built-in transforms

    def _transform_direct(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        return value

    def _transform_trim(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def _transform_truncate(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        if value is None:
            return None
        max_length = config.get("max_length", 255)
        return str(value)[:max_length]

    def _transform_uppercase(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        if value is None:
            return None
        return str(value).strip().upper() or None

    def _transform_lowercase(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        if value is None:
            return None
        return str(value).strip().lower() or None

    def _transform_slug(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        return slugify(value) or None

    def _transform_enum_map(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        """Map value using a lookup table, matched case-insensitively."""
        default = config.get("default")
        if _blank(value):
            return default

        mapping = {str(k).strip().lower(): v for k, v in config.get("mapping", {}).items()}
        key = str(value).strip().lower()
        if key in mapping:
            return mapping[key]

        raise RowTransformWarning(f"unmapped value {value!r}, using {default!r}", default)

    def _transform_decimal(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        """Coerce money and quantities to a quantized Decimal; never raises."""
        places = Decimal(1).scaleb(-config.get("places", 2))
        default = Decimal(str(config.get("default", "0"))).quantize(places)

        if _blank(value):
            return default

        text = str(value).replace("$", "").replace(",", "").strip()
        try:
            number = Decimal(text)
        except InvalidOperation:
            raise RowTransformWarning(f"non-numeric value {value!r}, using {default}", default)

        if not number.is_finite():
            raise RowTransformWarning(f"non-finite value {value!r}, using {default}", default)

        return number.quantize(places, rounding=ROUND_HALF_UP)

    def _transform_integer(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        default = config.get("default", 0)
        if _blank(value):
            return default

        try:
            number = Decimal(str(value).replace(",", "").strip())
            if not number.is_finite():
                raise InvalidOperation
            return int(number)
        except InvalidOperation:
            raise RowTransformWarning(f"non-integer value {value!r}, using {default}", default)

    def _transform_boolean(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        default = config.get("default", False)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float, Decimal)):
            return value != 0

        text = str(value).strip().lower()
        if text == "":
            return default
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
        raise RowTransformWarning(f"non-boolean value {value!r}, using {default}", default)

    def _transform_timestamp(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        return parse_timestamp(value)

    def _transform_foreign_key(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        """Resolve a legacy id through a dependency map; unresolved ids become None."""
        if _blank(value) or str(value).strip() == "0":
            return None

        entity = config["entity"]
        identity_map = ctx.map_for(entity)
        if identity_map is None:
            raise RowTransformWarning(f"no {entity} map loaded, cannot resolve {value}", None)

        destination_id = identity_map.get(value)
        if destination_id is None:
            raise RowTransformWarning(f"{entity} #{value} has no mapping", None)
        return destination_id

    def _transform_coalesce_fields(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        """Return the first non-empty value among several source columns."""
        for field_name in config.get("fields", []):
            candidate = row.get(field_name)
            if _blank(candidate):
                continue
            if config.get("as_timestamp"):
                parsed = parse_timestamp(candidate)
                if parsed is None:
                    continue
                return parsed
            return candidate.strip() if isinstance(candidate, str) else candidate
        return None

    def _transform_constant(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        return config.get("value")

    def _transform_target_scope(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        return ctx.target_scope

    def _transform_clean_phone(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        """Strip phone formatting down to digits."""
        digits = digits_only(value)
        if not digits:
            return None
        min_digits = config.get("min_digits", 0)
        if len(digits) < min_digits:
            raise RowTransformWarning(f"phone {value!r} has fewer than {min_digits} digits", None)
        return digits

    def _transform_derived_key(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        """
        First usable identifier among ``fields``, else a hash of the row id.

        Values listed in ``blank_values`` (default ``["0"]``) count as missing.
        """
        blank_values = set(config.get("blank_values", ["0"]))
        fields = config.get("fields") or []
        candidates = [value] if not fields else [row.get(f) for f in fields]

        for candidate in candidates:
            if _blank(candidate):
                continue
            text = str(candidate).strip()
            if text not in blank_values:
                return text

        return derive_key(config.get("prefix", "ID"), row.id)

    def _transform_option_match(self, value: Any, config: Dict, row: SourceRow, ctx: TransformContext) -> Any:
        """Normalize a free-text attribute value to one of its select options."""
        if _blank(value):
            return None

        attribute = config.get("attribute") or row.get(config.get("attribute_field", "field")) or ""
        attribute = str(attribute).lower()
        options = config.get("options", {}).get(attribute) or default_options(attribute)
        if not options:
            return str(value).strip()

        matched = match_option(value, attribute, options)
        return matched if matched is not None else str(value).strip()
