"""Persistent source id to destination id maps, one per entity and scope."""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import sqlalchemy as sa
from sqlalchemy.engine import Engine

from ..errors import ConflictingMapping

logger = logging.getLogger(__name__)

# Returns the destination id of an existing record for the row, or None.
MatchStrategy = Callable[[Any], Optional[int]]


@dataclass
class IdentityMap:
    """
    Translation table for one ``(entity, scope)`` pair.

    At most one destination id per source id. Several source ids may share
    a destination id (e.g. two legacy customers matched by email).
    """
    entity: str
    scope: str
    entries: Dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, source_id: Any) -> bool:
        return str(source_id) in self.entries

    def __iter__(self) -> Iterator[Tuple[str, int]]:
        return iter(self.entries.items())

    def get(self, source_id: Any) -> Optional[int]:
        if source_id is None:
            return None
        return self.entries.get(str(source_id))

    def set(self, source_id: Any, destination_id: int) -> None:
        """Insert a mapping, refusing to remap a source id."""
        key = str(source_id)
        destination_id = int(destination_id)
        existing = self.entries.get(key)
        if existing is not None and existing != destination_id:
            raise ConflictingMapping(self.entity, key, existing, destination_id)
        self.entries[key] = destination_id

    def discard(self, source_id: Any) -> Optional[int]:
        return self.entries.pop(str(source_id), None)

    def to_dict(self) -> Dict[str, int]:
        """Flat ``{"source id": destination id}`` representation."""
        return dict(sorted(self.entries.items(), key=lambda kv: _sort_key(kv[0])))

    @classmethod
    def from_dict(cls, entity: str, scope: str, data: Dict[str, Any]) -> "IdentityMap":
        return cls(
            entity=entity,
            scope=str(scope),
            entries={str(k): int(v) for k, v in data.items()},
        )


def _sort_key(source_id: str) -> Tuple[int, Any]:
    return (0, int(source_id)) if source_id.isdigit() else (1, source_id)


class BaseMapStore(ABC):
    """Durable storage for identity maps."""

    @abstractmethod
    def load(self, entity: str, scope: str) -> Optional[IdentityMap]:
        """
        Load a persisted map.

        Returns:
            The map, or None if nothing was persisted for this pair
        """
        pass

    @abstractmethod
    def save(self, identity_map: IdentityMap) -> None:
        """Persist the full map, atomically replacing any previous version."""
        pass

    @abstractmethod
    def list_maps(self) -> List[Dict[str, Any]]:
        """List persisted maps as ``{"entity", "scope", "size"}`` dicts."""
        pass


class JsonFileMapStore(BaseMapStore):
    """
    One pretty-printed JSON file per map, named ``{entity}_map_{scope}.json``.

    Saves write a temp file in the same directory, fsync it and rename it
    over the target, so readers see either the old map or the new one.
    """

    def __init__(self, map_dir: str):
        self.map_dir = Path(map_dir)

    def path_for(self, entity: str, scope: str) -> Path:
        return self.map_dir / f"{entity}_map_{scope}.json"

    def load(self, entity: str, scope: str) -> Optional[IdentityMap]:
        path = self.path_for(entity, scope)
        if not path.exists():
            return None

        with open(path) as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Identity map {path} is not a JSON object")

        return IdentityMap.from_dict(entity, scope, data)

    def save(self, identity_map: IdentityMap) -> None:
        self.map_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(identity_map.entity, identity_map.scope)

        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(self.map_dir)
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(identity_map.to_dict(), f, indent=2)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info(f"Saved {len(identity_map)} {identity_map.entity} mappings to {path}")

    def list_maps(self) -> List[Dict[str, Any]]:
        if not self.map_dir.exists():
            return []

        maps = []
        for path in sorted(self.map_dir.glob("*_map_*.json")):
            entity, _, scope = path.stem.rpartition("_map_")
            with open(path) as f:
                size = len(json.load(f))
            maps.append({"entity": entity, "scope": scope, "size": size, "location": str(path)})
        return maps


class TableMapStore(BaseMapStore):
    """Identity maps stored as rows of a destination-side table."""

    def __init__(self, engine: Engine, table_name: str = "migration_identity_maps"):
        self.engine = engine
        self.metadata = sa.MetaData()
        self.table = sa.Table(
            table_name,
            self.metadata,
            sa.Column("entity", sa.String(64), primary_key=True),
            sa.Column("scope", sa.String(64), primary_key=True),
            sa.Column("source_id", sa.String(191), primary_key=True),
            sa.Column("destination_id", sa.BigInteger, nullable=False),
        )

    def _table_exists(self) -> bool:
        return sa.inspect(self.engine).has_table(self.table.name)

    def load(self, entity: str, scope: str) -> Optional[IdentityMap]:
        if not self._table_exists():
            return None

        t = self.table
        query = sa.select(t.c.source_id, t.c.destination_id).where(
            t.c.entity == entity, t.c.scope == str(scope)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(query).all()

        if not rows:
            return None
        return IdentityMap(
            entity=entity,
            scope=str(scope),
            entries={row.source_id: int(row.destination_id) for row in rows},
        )

    def save(self, identity_map: IdentityMap) -> None:
        t = self.table
        rows = [
            {
                "entity": identity_map.entity,
                "scope": identity_map.scope,
                "source_id": source_id,
                "destination_id": destination_id,
            }
            for source_id, destination_id in identity_map
        ]
        # Created on first save, never by load or list_maps
        self.metadata.create_all(self.engine)
        # Delete and reinsert in one transaction
        with self.engine.begin() as conn:
            conn.execute(
                t.delete().where(
                    t.c.entity == identity_map.entity, t.c.scope == identity_map.scope
                )
            )
            if rows:
                conn.execute(t.insert(), rows)

        logger.info(
            f"Saved {len(identity_map)} {identity_map.entity} mappings to table {t.name}"
        )

    def list_maps(self) -> List[Dict[str, Any]]:
        if not self._table_exists():
            return []

        t = self.table
        query = (
            sa.select(t.c.entity, t.c.scope, sa.func.count().label("size"))
            .group_by(t.c.entity, t.c.scope)
            .order_by(t.c.entity, t.c.scope)
        )
        with self.engine.connect() as conn:
            return [
                {"entity": row.entity, "scope": row.scope, "size": row.size, "location": t.name}
                for row in conn.execute(query)
            ]


class IdentityMapper:
    """Loads, queries, records and saves identity maps through a map store."""

    def __init__(self, store: BaseMapStore):
        self.store = store

    def load(self, entity: str, scope: Any) -> IdentityMap:
        """
        Load the persisted map for an entity and scope.

        Args:
            entity: Entity name (e.g. "customers")
            scope: Source scope (legacy store id)

        Returns:
            The persisted map, or an empty one if none was saved yet
        """
        identity_map = self.store.load(entity, str(scope))
        if identity_map is None:
            logger.debug(f"No {entity} map for scope {scope}, starting empty")
            return IdentityMap(entity=entity, scope=str(scope))
        logger.info(f"Loaded {len(identity_map)} {entity} mappings for scope {scope}")
        return identity_map

    @staticmethod
    def lookup(identity_map: IdentityMap, source_id: Any) -> Optional[int]:
        return identity_map.get(source_id)

    @staticmethod
    def record(identity_map: IdentityMap, source_id: Any, destination_id: int) -> None:
        """Record a mapping; raises ConflictingMapping on a remap."""
        identity_map.set(source_id, destination_id)

    def save(self, identity_map: IdentityMap) -> None:
        self.store.save(identity_map)

    def list_maps(self) -> List[Dict[str, Any]]:
        return self.store.list_maps()

    @staticmethod
    def resolve(strategies: Sequence[MatchStrategy], row: Any) -> Optional[int]:
        """Try each match strategy in order and return the first hit."""
        for strategy in strategies:
            destination_id = strategy(row)
            if destination_id is not None:
                return destination_id
        return None
