"""Row models flowing through a migration run."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple
from enum import Enum
from datetime import datetime


class UpsertAction(str, Enum):
    """Outcome of applying one transformed row to the destination."""
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class SourceRow:
    """A row read from the legacy source. Immutable once read."""
    id: str
    entity: str
    data: Mapping[str, Any]
    read_at: datetime = field(default_factory=datetime.utcnow, compare=False)

    def __post_init__(self):
        if not isinstance(self.data, MappingProxyType):
            object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def get(self, column: str, default: Any = None) -> Any:
        """Get a column value, returning ``default`` for missing columns."""
        return self.data.get(column, default)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "entity": self.entity,
            "data": dict(self.data),
            "read_at": self.read_at.isoformat(),
        }


@dataclass
class TransformedRow:
    """A source row mapped into destination column names and values."""
    source_id: str
    entity: str
    data: Dict[str, Any] = field(default_factory=dict)
    natural_key: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def key_values(self) -> Tuple[Any, ...]:
        """Values of the natural key columns, in key order."""
        return tuple(self.data.get(column) for column in self.natural_key)

    @property
    def has_complete_key(self) -> bool:
        """True when every natural key column has a value."""
        return bool(self.natural_key) and all(
            value is not None and value != "" for value in self.key_values
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "source_id": self.source_id,
            "entity": self.entity,
            "data": {k: _jsonable(v) for k, v in self.data.items()},
            "natural_key": self.natural_key,
            "warnings": self.warnings,
        }


@dataclass
class UpsertResult:
    """Result of one UpsertExecutor.apply call."""
    action: UpsertAction
    destination_id: Optional[int] = None
    dry_run: bool = False
    changed_fields: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "destination_id": self.destination_id,
            "dry_run": self.dry_run,
            "changed_fields": self.changed_fields,
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)
