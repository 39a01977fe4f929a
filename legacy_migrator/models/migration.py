"""Migration execution models."""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import datetime
import uuid

from .record import UpsertAction


class RunMode(str, Enum):
    """How a run treats the destination."""
    LIVE = "live"
    DRY_RUN = "dry_run"
    FORCE_OVERWRITE = "force_overwrite"

    @property
    def writes(self) -> bool:
        return self is not RunMode.DRY_RUN

    @classmethod
    def from_flags(cls, dry_run: bool = False, force: bool = False) -> "RunMode":
        """Resolve CLI style flags. A dry run wins over force."""
        if dry_run:
            return cls.DRY_RUN
        if force:
            return cls.FORCE_OVERWRITE
        return cls.LIVE


class MigrationStatus(str, Enum):
    """Status of a migration run."""
    INITIALIZED = "initialized"
    READING = "reading"
    TRANSFORMING = "transforming"
    WRITING = "writing"
    FINALIZING = "finalizing"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


@dataclass
class RunCounters:
    """Per-run accumulator, owned by exactly one MigrationRun."""
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    rows_seen: int = 0
    warnings: List[str] = field(default_factory=list)

    def record(self, action: UpsertAction) -> None:
        """Count one applied row."""
        if action == UpsertAction.CREATED:
            self.created += 1
        elif action == UpsertAction.UPDATED:
            self.updated += 1
        else:
            self.skipped += 1

    def record_error(self, message: str) -> None:
        self.errors += 1
        self.warnings.append(message)

    def record_skip(self, message: Optional[str] = None) -> None:
        self.skipped += 1
        if message:
            self.warnings.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": self.errors,
            "rows_seen": self.rows_seen,
            "warnings": list(self.warnings),
        }


def _store_id(value: Any) -> Any:
    """Store ids are numeric in both schemas; digit strings become ints."""
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return value


@dataclass
class MigrationScope:
    """Source store id and the destination store id it migrates into."""
    source: Any
    target: Any = None

    def __post_init__(self):
        self.source = _store_id(self.source)
        self.target = self.source if self.target is None else _store_id(self.target)

    @property
    def key(self) -> str:
        """
        Scope component of identity map names.

        A store migrated into a different destination store gets its own
        map per destination, e.g. ``63_to_7``.
        """
        if self.target == self.source:
            return str(self.source)
        return f"{self.source}_to_{self.target}"

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "target": self.target}


@dataclass
class RunSummary:
    """Outcome of one MigrationRun, handed to report sinks."""
    entity: str
    scope: MigrationScope
    mode: RunMode
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: MigrationStatus = MigrationStatus.INITIALIZED
    counters: RunCounters = field(default_factory=RunCounters)
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    map_size: int = 0
    committed: bool = False  # Destination transaction committed, even if the map save then failed

    @property
    def dry_run(self) -> bool:
        return self.mode == RunMode.DRY_RUN

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def succeeded(self) -> bool:
        return self.status in (MigrationStatus.COMMITTED, MigrationStatus.ROLLED_BACK)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "entity": self.entity,
            "scope": self.scope.to_dict(),
            "mode": self.mode.value,
            "dry_run": self.dry_run,
            "status": self.status.value,
            "counters": self.counters.to_dict(),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "error": self.error,
            "map_size": self.map_size,
            "committed": self.committed,
        }


@dataclass
class MigrationConfig:
    """Configuration for a migration."""
    # Connections
    source_url: Optional[str] = None
    source_dir: Optional[str] = None  # Directory of CSV/JSON/JSONL table exports
    destination_url: Optional[str] = None

    # Identity map persistence
    map_store: str = "file"  # "file" or "table"
    map_dir: str = "./storage/migration_maps"
    map_table: str = "migration_identity_maps"

    # Execution options
    chunk_size: int = 500
    scope_table: str = "stores"
    target_scope_table: Optional[str] = "stores"
    entities: List[str] = field(default_factory=list)  # Subset for "all"; empty means every entity

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "source_url": self.source_url,
            "source_dir": self.source_dir,
            "destination_url": self.destination_url,
            "map_store": self.map_store,
            "map_dir": self.map_dir,
            "map_table": self.map_table,
            "chunk_size": self.chunk_size,
            "scope_table": self.scope_table,
            "target_scope_table": self.target_scope_table,
            "entities": self.entities,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation."""
        map_store = data.get("map_store", "file")
        if map_store not in ("file", "table"):
            raise ValueError(f"map_store must be 'file' or 'table', got {map_store!r}")

        return cls(
            source_url=data.get("source_url"),
            source_dir=data.get("source_dir"),
            destination_url=data.get("destination_url"),
            map_store=map_store,
            map_dir=data.get("map_dir", "./storage/migration_maps"),
            map_table=data.get("map_table", "migration_identity_maps"),
            chunk_size=int(data.get("chunk_size", 500)),
            scope_table=data.get("scope_table", "stores"),
            target_scope_table=data.get("target_scope_table", "stores"),
            entities=data.get("entities", []),
        )

    @classmethod
    def from_json_file(cls, file_path: str) -> "MigrationConfig":
        """Load from JSON file."""
        with open(file_path) as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, base: Optional["MigrationConfig"] = None) -> "MigrationConfig":
        """
        Fill unset connection settings from the environment.

        Reads LEGACY_DATABASE_URL, DATABASE_URL and MIGRATION_MAP_DIR.
        """
        config = base or cls()
        if not config.source_url and not config.source_dir:
            config.source_url = os.environ.get("LEGACY_DATABASE_URL")
        if not config.destination_url:
            config.destination_url = os.environ.get("DATABASE_URL")
        if os.environ.get("MIGRATION_MAP_DIR"):
            config.map_dir = os.environ["MIGRATION_MAP_DIR"]
        return config
