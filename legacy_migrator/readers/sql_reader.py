"""SQLAlchemy reader for the legacy database."""

import logging
from typing import Any, Dict, List, Optional

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError, OperationalError, SQLAlchemyError

from .base import BaseSourceReader
from ..errors import ScopeNotFound, SourceUnavailable
from ..models.record import SourceRow
from ..models.schema import NOT_NULL, EntityMapping

logger = logging.getLogger(__name__)


def build_filter(table: sa.Table, column: str, value: Any):
    """Equality or null check on a known column."""
    if column not in table.c:
        raise ValueError(f"Unknown filter column {table.name}.{column}")

    col = table.c[column]
    if value is None:
        return col.is_(None)
    if value == NOT_NULL:
        return col.is_not(None)
    if isinstance(value, (list, tuple, set)):
        values = [v for v in value if v is not None]
        if len(values) < len(value):
            return sa.or_(col.is_(None), col.in_(values))
        return col.in_(values)
    return col == value


class SQLSourceReader(BaseSourceReader):
    """
    Reads one legacy table with keyset pagination.

    Each chunk is ``WHERE pk > :last ORDER BY pk LIMIT :chunk``, so the
    sequence is stable and can be restarted from the top.
    """

    def __init__(
        self,
        engine: Engine,
        mapping: EntityMapping,
        scope_table: Optional[str] = "stores",
        metadata: Optional[sa.MetaData] = None
    ):
        """
        Initialize the reader.

        Args:
            engine: Engine for the legacy database
            mapping: Entity mapping naming the source table
            scope_table: Parent table checked for the scope before reading
            metadata: Shared metadata, so tables are reflected once per process
        """
        super().__init__(mapping, scope_table)
        self.engine = engine
        self.metadata = metadata if metadata is not None else sa.MetaData()

    def _table(self, name: str) -> sa.Table:
        if name in self.metadata.tables:
            return self.metadata.tables[name]
        try:
            return sa.Table(name, self.metadata, autoload_with=self.engine)
        except NoSuchTableError:
            raise SourceUnavailable(f"Legacy table {name} does not exist")
        except OperationalError as e:
            raise SourceUnavailable(f"Cannot reach legacy database: {e}") from e

    def check_scope(self, scope: Any) -> None:
        if not self.scope_table:
            return

        stores = self._table(self.scope_table)
        query = sa.select(sa.func.count()).select_from(stores).where(stores.c.id == scope)
        try:
            with self.engine.connect() as conn:
                count = conn.execute(query).scalar()
        except OperationalError as e:
            raise SourceUnavailable(f"Cannot reach legacy database: {e}") from e

        if not count:
            raise ScopeNotFound(scope, self.scope_table)

    def _conditions(self, table: sa.Table, scope: Any, filters: Dict[str, Any]) -> List[Any]:
        conditions = []
        via = self.mapping.scope_via

        if via is not None:
            parent = self._table(via.parent_table)
            parent_query = sa.select(parent.c[via.parent_pk]).where(
                parent.c[via.parent_scope_column] == scope,
                *[build_filter(parent, c, v) for c, v in via.parent_filters.items()]
            )
            conditions.append(table.c[via.column].in_(parent_query))
        elif self.mapping.scope_column:
            conditions.append(build_filter(table, self.mapping.scope_column, scope))

        for column, value in filters.items():
            conditions.append(build_filter(table, column, value))

        return conditions

    def read_chunk(
        self,
        scope: Any,
        filters: Dict[str, Any],
        after: Optional[Any],
        limit: int
    ) -> List[SourceRow]:
        table = self._table(self.mapping.source_table)
        pk = table.c[self.mapping.source_pk]

        conditions = self._conditions(table, scope, filters)
        if after is not None:
            conditions.append(pk > after)

        query = sa.select(table).where(*conditions).order_by(pk).limit(limit)
        try:
            with self.engine.connect() as conn:
                records = conn.execute(query).mappings().all()
        except OperationalError as e:
            raise SourceUnavailable(f"Cannot reach legacy database: {e}") from e
        except SQLAlchemyError as e:
            raise SourceUnavailable(f"Query on {table.name} failed: {e}") from e

        return [self.create_row(dict(record)) for record in records]
