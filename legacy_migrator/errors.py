"""Exception taxonomy for migration runs.

Fatal errors abort a run and force a rollback. Row-level conditions
(``RowTransformWarning``, ``RowRejected``, ``RowSkipped``) are folded into
the run counters and never escape the run.
"""

from typing import Any, Optional


class MigrationError(Exception):
    """Base class for every error raised by the migration engine."""


class SourceUnavailable(MigrationError):
    """The source connection could not be established or queried."""


class ScopeNotFound(MigrationError):
    """The requested scope matched zero rows in its parent table."""

    def __init__(self, scope: Any, table: str = "stores"):
        self.scope = scope
        self.table = table
        super().__init__(f"Scope {scope!r} not found in {table}")


class ConflictingMapping(MigrationError):
    """A source id is already mapped to a different destination id."""

    def __init__(self, entity: str, source_id: str, existing: int, incoming: int):
        self.entity = entity
        self.source_id = source_id
        self.existing = existing
        self.incoming = incoming
        super().__init__(
            f"{entity} source id {source_id} already maps to {existing}, "
            f"refusing to remap to {incoming}"
        )


class WriteFailure(MigrationError):
    """A destination write violated a constraint."""

    def __init__(self, message: str, source_id: Optional[str] = None):
        self.source_id = source_id
        super().__init__(message)


class UnknownEntity(MigrationError):
    """No entity mapping is registered under the requested name."""


class RowTransformWarning(Exception):
    """A field could not be resolved; carries the value to use instead."""

    def __init__(self, message: str, fallback: Any = None):
        self.fallback = fallback
        super().__init__(message)


class RowRejected(Exception):
    """The row cannot be migrated and is counted as an error."""


class RowSkipped(Exception):
    """The row is intentionally passed over and counted as skipped."""
