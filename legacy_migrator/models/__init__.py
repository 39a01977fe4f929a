"""Data models for the migration engine."""

from .schema import (
    NOT_NULL,
    TransformType,
    FieldMapping,
    ScopeJoin,
    EntityMapping,
)
from .migration import (
    MigrationConfig,
    MigrationScope,
    MigrationStatus,
    RunCounters,
    RunMode,
    RunSummary,
)
from .record import (
    SourceRow,
    TransformedRow,
    UpsertAction,
    UpsertResult,
)

__all__ = [
    "NOT_NULL",
    "TransformType",
    "FieldMapping",
    "ScopeJoin",
    "EntityMapping",
    "MigrationConfig",
    "MigrationScope",
    "MigrationStatus",
    "RunCounters",
    "RunMode",
    "RunSummary",
    "SourceRow",
    "TransformedRow",
    "UpsertAction",
    "UpsertResult",
]
