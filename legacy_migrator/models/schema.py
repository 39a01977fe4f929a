"""Schema models for entity definitions and field mappings."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum


# Filter value meaning "column IS NOT NULL"; None means "column IS NULL".
NOT_NULL = "@not_null"


class TransformType(str, Enum):
    """Supported transformation types."""
    DIRECT = "direct"
    TRIM = "trim"
    TRUNCATE = "truncate"
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    SLUG = "slug"
    ENUM_MAP = "enum_map"
    DECIMAL = "decimal"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    FOREIGN_KEY = "foreign_key"
    COALESCE_FIELDS = "coalesce_fields"
    CONSTANT = "constant"
    TARGET_SCOPE = "target_scope"
    CLEAN_PHONE = "clean_phone"
    DERIVED_KEY = "derived_key"
    OPTION_MATCH = "option_match"
    CUSTOM = "custom"


@dataclass
class FieldMapping:
    """Mapping between a source column and a destination column."""
    source_field: Optional[str]  # None if generated/default
    target_field: str
    transform: TransformType = TransformType.DIRECT
    transform_config: Dict[str, Any] = field(default_factory=dict)
    notes: str = ""
    required: bool = False
    default_value: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        result = {
            "source_field": self.source_field,
            "target_field": self.target_field,
            "transform": self.transform.value if isinstance(self.transform, TransformType) else self.transform,
        }
        if self.transform_config:
            result["transform_config"] = self.transform_config
        if self.notes:
            result["notes"] = self.notes
        if self.required:
            result["required"] = self.required
        if self.default_value is not None:
            result["default"] = self.default_value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldMapping":
        """Create from dictionary representation."""
        transform = data.get("transform", "direct")
        if isinstance(transform, str):
            try:
                transform = TransformType(transform)
            except ValueError:
                transform = TransformType.CUSTOM

        return cls(
            source_field=data.get("source_field"),
            target_field=data.get("target_field", ""),
            transform=transform,
            transform_config=data.get("transform_config", {}),
            notes=data.get("notes", ""),
            required=data.get("required", False),
            default_value=data.get("default"),
        )


@dataclass
class ScopeJoin:
    """Scopes a child table through its parent, e.g. order items via orders."""
    column: str  # Child column referencing the parent
    parent_table: str
    parent_scope_column: str = "store_id"
    parent_pk: str = "id"
    parent_filters: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column": self.column,
            "parent_table": self.parent_table,
            "parent_scope_column": self.parent_scope_column,
            "parent_pk": self.parent_pk,
            "parent_filters": self.parent_filters,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScopeJoin":
        return cls(
            column=data["column"],
            parent_table=data["parent_table"],
            parent_scope_column=data.get("parent_scope_column", "store_id"),
            parent_pk=data.get("parent_pk", "id"),
            parent_filters=data.get("parent_filters", {}),
        )


@dataclass
class EntityMapping:
    """How one legacy table migrates into one destination table."""
    name: str
    source_table: str
    target_table: str
    description: str = ""
    source_pk: str = "id"
    scope_column: Optional[str] = "store_id"
    scope_via: Optional[ScopeJoin] = None
    source_filters: Dict[str, Any] = field(default_factory=dict)
    target_pk: str = "id"
    natural_key: List[str] = field(default_factory=list)
    match_on: List[List[str]] = field(default_factory=list)  # Secondary lookups, tried in order
    tracked_fields: List[str] = field(default_factory=list)  # Empty means every mapped field
    field_mappings: List[FieldMapping] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    notes: str = ""

    @property
    def target_fields(self) -> List[str]:
        return [fm.target_field for fm in self.field_mappings]

    @property
    def compared_fields(self) -> List[str]:
        """Fields compared to decide whether a forced overwrite is an update."""
        if self.tracked_fields:
            return list(self.tracked_fields)
        return [f for f in self.target_fields if f not in self.natural_key]

    @property
    def target_scope_field(self) -> Optional[str]:
        """Destination column holding the store id, if the table has one."""
        for fm in self.field_mappings:
            if fm.transform == TransformType.TARGET_SCOPE:
                return fm.target_field
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "source_table": self.source_table,
            "target_table": self.target_table,
            "description": self.description,
            "source_pk": self.source_pk,
            "scope_column": self.scope_column,
            "scope_via": self.scope_via.to_dict() if self.scope_via else None,
            "source_filters": self.source_filters,
            "target_pk": self.target_pk,
            "natural_key": self.natural_key,
            "match_on": self.match_on,
            "tracked_fields": self.tracked_fields,
            "field_mappings": [m.to_dict() for m in self.field_mappings],
            "dependencies": self.dependencies,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "EntityMapping":
        """Create from dictionary representation."""
        field_mappings = []
        for fm_data in data.get("field_mappings", []):
            field_mappings.append(FieldMapping.from_dict(fm_data))

        scope_via = data.get("scope_via")

        return cls(
            name=name,
            source_table=data.get("source_table", name),
            target_table=data.get("target_table", name),
            description=data.get("description", ""),
            source_pk=data.get("source_pk", "id"),
            scope_column=data.get("scope_column", "store_id"),
            scope_via=ScopeJoin.from_dict(scope_via) if scope_via else None,
            source_filters=data.get("source_filters", {}),
            target_pk=data.get("target_pk", "id"),
            natural_key=data.get("natural_key", []),
            match_on=data.get("match_on", []),
            tracked_fields=data.get("tracked_fields", []),
            field_mappings=field_mappings,
            dependencies=data.get("dependencies", []),
            notes=data.get("notes", ""),
        )
