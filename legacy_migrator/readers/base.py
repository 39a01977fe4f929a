"""Base source reader interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional
import logging

from ..models.record import SourceRow
from ..models.schema import EntityMapping

logger = logging.getLogger(__name__)


def validate_chunk_size(chunk_size: Any) -> int:
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
        raise ValueError(f"chunk_size must be a positive integer, got {chunk_size!r}")
    return chunk_size


class BaseSourceReader(ABC):
    """
    Base class for legacy source readers.

    A reader is bound to one entity mapping and yields that entity's source
    rows for a scope, ordered by primary key and fetched a chunk at a time.
    Readers never write.
    """

    def __init__(self, mapping: EntityMapping, scope_table: Optional[str] = "stores"):
        """
        Initialize the reader.

        Args:
            mapping: Entity mapping naming the source table and scoping rules
            scope_table: Parent table checked for the scope before reading
        """
        self.mapping = mapping
        self.scope_table = scope_table

    @abstractmethod
    def check_scope(self, scope: Any) -> None:
        """
        Confirm the scope exists in the scope table.

        Raises:
            ScopeNotFound: no row of the scope table has this id
            SourceUnavailable: the source cannot be reached
        """
        pass

    @abstractmethod
    def read_chunk(
        self,
        scope: Any,
        filters: Dict[str, Any],
        after: Optional[Any],
        limit: int
    ) -> List[SourceRow]:
        """
        Read up to ``limit`` rows with a primary key greater than ``after``.

        Args:
            scope: Source scope (legacy store id)
            filters: Column equality / null checks
            after: Last primary key already read, or None to start at the top
            limit: Maximum rows to return

        Returns:
            Rows in ascending primary key order
        """
        pass

    def stream(
        self,
        scope: Any,
        filters: Optional[Dict[str, Any]] = None,
        chunk_size: int = 500
    ) -> Iterator[List[SourceRow]]:
        """
        Stream rows in chunks.

        Args:
            scope: Source scope (legacy store id)
            filters: Extra filters, combined with the mapping's own filters
            chunk_size: Rows fetched per query

        Yields:
            Chunks of SourceRow objects
        """
        chunk_size = validate_chunk_size(chunk_size)
        combined = {**self.mapping.source_filters, **(filters or {})}
        after = None

        while True:
            chunk = self.read_chunk(scope, combined, after, chunk_size)
            if not chunk:
                break

            yield chunk
            after = chunk[-1].get(self.mapping.source_pk)
            logger.debug(f"Read {len(chunk)} {self.mapping.source_table} rows up to id {after}")

            if len(chunk) < chunk_size:
                break

    def read(
        self,
        scope: Any,
        filters: Optional[Dict[str, Any]] = None,
        chunk_size: int = 500
    ) -> Iterator[SourceRow]:
        """Lazily yield rows one at a time, in primary key order."""
        for chunk in self.stream(scope, filters, chunk_size):
            yield from chunk

    def create_row(self, data: Dict[str, Any]) -> SourceRow:
        """Create a SourceRow from one fetched record."""
        return SourceRow(
            id=str(data[self.mapping.source_pk]),
            entity=self.mapping.name,
            data=data,
        )
