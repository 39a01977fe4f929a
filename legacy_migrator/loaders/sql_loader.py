"""SQLAlchemy upsert executor for the destination database."""

import logging
from typing import Any, Dict, List, Optional

import sqlalchemy as sa
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError, IntegrityError, NoSuchTableError

from .base import BaseUpsertExecutor
from ..errors import ScopeNotFound, WriteFailure
from ..models.schema import EntityMapping

logger = logging.getLogger(__name__)


def check_target_scope(connection: Connection, scope: Any, table_name: str = "stores") -> None:
    """Raise ScopeNotFound unless the destination scope table has this id."""
    try:
        table = sa.Table(table_name, sa.MetaData(), autoload_with=connection)
    except NoSuchTableError:
        raise ScopeNotFound(scope, table_name)

    count = connection.execute(
        sa.select(sa.func.count()).select_from(table).where(table.c.id == scope)
    ).scalar()
    if not count:
        raise ScopeNotFound(scope, table_name)


class SQLUpsertExecutor(BaseUpsertExecutor):
    """
    Upserts into one reflected destination table.

    Bound to the run's connection so every statement joins the run's outer
    transaction. Only columns that exist on the table are written.
    """

    def __init__(
        self,
        connection: Connection,
        mapping: EntityMapping,
        metadata: Optional[sa.MetaData] = None,
        target_scope: Any = None
    ):
        """
        Initialize the executor.

        Args:
            connection: Connection holding the run's transaction
            mapping: Entity mapping naming the target table
            metadata: Shared metadata for reflection
            target_scope: Destination store id checked by ``exists``
        """
        super().__init__(mapping, target_scope)
        self.connection = connection
        self.metadata = metadata if metadata is not None else sa.MetaData()

        if mapping.target_table in self.metadata.tables:
            self.table = self.metadata.tables[mapping.target_table]
        else:
            self.table = sa.Table(mapping.target_table, self.metadata, autoload_with=connection)

        self.pk = self.table.c[mapping.target_pk]
        scope_field = mapping.target_scope_field
        self.scope_column = self.table.c[scope_field] if scope_field and scope_field in self.table.c else None
        self._columns = [c.name for c in self.table.columns if c.name != mapping.target_pk]

        missing = [
            c for key_set in self._key_sets() for c in key_set if c not in self.table.c
        ]
        if missing:
            raise ValueError(
                f"{mapping.target_table} has no column(s) {', '.join(sorted(set(missing)))} "
                f"used as match keys for {mapping.name}"
            )

        dropped = [f for f in mapping.target_fields if f not in self.table.c]
        if dropped:
            logger.debug(f"{mapping.target_table} ignores mapped fields: {', '.join(dropped)}")

    def columns(self) -> List[str]:
        return self._columns

    def find_by(self, criteria: Dict[str, Any]) -> Optional[int]:
        query = (
            sa.select(self.pk)
            .where(*[self.table.c[column] == value for column, value in criteria.items()])
            .order_by(self.pk)
            .limit(1)
        )
        return self.connection.execute(query).scalar()

    def exists(self, destination_id: int) -> bool:
        query = sa.select(self.pk).where(self.pk == destination_id)
        if self.target_scope is not None and self.scope_column is not None:
            query = query.where(self.scope_column == self.target_scope)
        return self.connection.execute(query).first() is not None

    def fetch(self, destination_id: int) -> Optional[Dict[str, Any]]:
        query = sa.select(self.table).where(self.pk == destination_id)
        record = self.connection.execute(query).mappings().first()
        return dict(record) if record else None

    def insert(self, data: Dict[str, Any], source_id: str) -> int:
        try:
            result = self.connection.execute(self.table.insert().values(**data))
        except IntegrityError as e:
            raise WriteFailure(
                f"Insert into {self.table.name} for {self.mapping.name} #{source_id} violated a constraint: {e.orig}",
                source_id=source_id,
            ) from e
        except DBAPIError as e:
            raise WriteFailure(
                f"Insert into {self.table.name} for {self.mapping.name} #{source_id} failed: {e.orig}",
                source_id=source_id,
            ) from e
        return int(result.inserted_primary_key[0])

    def update(self, destination_id: int, data: Dict[str, Any], source_id: str) -> None:
        statement = self.table.update().where(self.pk == destination_id).values(**data)
        try:
            self.connection.execute(statement)
        except IntegrityError as e:
            raise WriteFailure(
                f"Update of {self.table.name} #{destination_id} for {self.mapping.name} #{source_id} violated a constraint: {e.orig}",
                source_id=source_id,
            ) from e
        except DBAPIError as e:
            raise WriteFailure(
                f"Update of {self.table.name} #{destination_id} for {self.mapping.name} #{source_id} failed: {e.orig}",
                source_id=source_id,
            ) from e
