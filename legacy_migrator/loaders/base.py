"""Base upsert executor interface."""

from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple
import logging

from ..models.migration import RunMode
from ..models.record import TransformedRow, UpsertAction, UpsertResult
from ..models.schema import EntityMapping
from ..services.identity_map import IdentityMap, IdentityMapper, MatchStrategy

logger = logging.getLogger(__name__)


def _comparable(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value)).normalize()
    if isinstance(value, datetime):
        return value.replace(microsecond=0, tzinfo=None).isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    text = str(value)
    try:
        return Decimal(text).normalize()
    except InvalidOperation:
        return text


def values_differ(current: Any, incoming: Any) -> bool:
    """Compare a stored value with an incoming one, ignoring numeric formatting."""
    left, right = _comparable(current), _comparable(incoming)
    if left is None or right is None:
        return left is not right
    # Booleans are stored as 0/1 by most backends
    if isinstance(left, bool) or isinstance(right, bool):
        return bool(left) != bool(right)
    return left != right


class BaseUpsertExecutor(ABC):
    """
    Decides create, update or skip for each transformed row.

    An existing destination record is found with an ordered chain of match
    strategies: natural key, then the mapping's ``match_on`` column sets,
    then the row's previous identity map entry. In dry run mode nothing is
    written, but keys of would-be-created rows are remembered so a later
    row with the same key reports a skip.
    """

    def __init__(self, mapping: EntityMapping, target_scope: Any = None):
        """
        Initialize the executor.

        Args:
            mapping: Entity mapping naming the target table and match keys
            target_scope: Destination store id; records of other stores are
                never matched through the identity map
        """
        self.mapping = mapping
        self.target_scope = target_scope
        # Dry run only: key of each would-be-created row -> provisional id
        self._pending_keys: Dict[Tuple[Any, ...], int] = {}
        self._provisional_count = 0

    @abstractmethod
    def columns(self) -> List[str]:
        """Writable destination columns."""
        pass

    @abstractmethod
    def find_by(self, criteria: Dict[str, Any]) -> Optional[int]:
        """Return the id of the first record matching every column, or None."""
        pass

    @abstractmethod
    def exists(self, destination_id: int) -> bool:
        """Whether the record exists and belongs to the target scope, when one is set."""
        pass

    @abstractmethod
    def fetch(self, destination_id: int) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def insert(self, data: Dict[str, Any], source_id: str) -> int:
        """
        Insert one record.

        Returns:
            The new destination id

        Raises:
            WriteFailure: the destination rejected the row
        """
        pass

    @abstractmethod
    def update(self, destination_id: int, data: Dict[str, Any], source_id: str) -> None:
        pass

    def writable(self, row: TransformedRow) -> Dict[str, Any]:
        """Row data limited to destination columns."""
        columns = set(self.columns())
        return {k: v for k, v in row.data.items() if k in columns}

    def _key_sets(self) -> List[List[str]]:
        key_sets = []
        if self.mapping.natural_key:
            key_sets.append(list(self.mapping.natural_key))
        key_sets.extend(list(cols) for cols in self.mapping.match_on)
        return key_sets

    @staticmethod
    def _criteria(row: TransformedRow, columns: List[str]) -> Optional[Dict[str, Any]]:
        criteria = {c: row.data.get(c) for c in columns}
        if any(v is None or v == "" for v in criteria.values()):
            return None
        return criteria

    def match_strategies(
        self,
        row: TransformedRow,
        identity_map: Optional[IdentityMap] = None
    ) -> List[MatchStrategy]:
        """Ordered lookups for an existing destination record."""
        strategies: List[MatchStrategy] = []

        for columns in self._key_sets():
            criteria = self._criteria(row, columns)
            if criteria is not None:
                strategies.append(lambda r, criteria=criteria: self.find_by(criteria))

        if identity_map is not None:
            def previous_mapping(r: TransformedRow) -> Optional[int]:
                destination_id = identity_map.get(r.source_id)
                if destination_id is not None and self.exists(destination_id):
                    return destination_id
                return None

            strategies.append(previous_mapping)

        return strategies

    def _pending(self, row: TransformedRow) -> List[Tuple[Any, ...]]:
        keys = []
        for columns in self._key_sets():
            criteria = self._criteria(row, columns)
            if criteria is not None:
                keys.append((tuple(columns),) + tuple(str(v) for v in criteria.values()))
        return keys

    def changed_fields(self, current: Dict[str, Any], row: TransformedRow) -> List[str]:
        data = self.writable(row)
        return [
            f for f in self.mapping.compared_fields
            if f in data and f in current and values_differ(current[f], data[f])
        ]

    def apply(
        self,
        row: TransformedRow,
        mode: RunMode,
        identity_map: Optional[IdentityMap] = None
    ) -> UpsertResult:
        """
        Create, update or skip one row.

        Args:
            row: Transformed row
            mode: LIVE, DRY_RUN or FORCE_OVERWRITE
            identity_map: The entity's own map, used as the last match strategy

        Returns:
            UpsertResult with the action taken (or that would be taken)
        """
        dry_run = mode == RunMode.DRY_RUN
        existing_id = IdentityMapper.resolve(self.match_strategies(row, identity_map), row)

        if existing_id is None:
            if dry_run:
                pending = self._pending(row)
                for key in pending:
                    if key in self._pending_keys:
                        return UpsertResult(UpsertAction.SKIPPED, self._pending_keys[key], dry_run=True)

                # Negative ids never collide with real ones and are never persisted
                self._provisional_count += 1
                provisional_id = -self._provisional_count
                for key in pending:
                    self._pending_keys[key] = provisional_id
                return UpsertResult(UpsertAction.CREATED, provisional_id, dry_run=True)

            new_id = self.insert(self.writable(row), row.source_id)
            logger.debug(f"Created {self.mapping.target_table} #{new_id} from {row.entity} #{row.source_id}")
            return UpsertResult(UpsertAction.CREATED, new_id)

        if mode == RunMode.FORCE_OVERWRITE:
            current = self.fetch(existing_id) or {}
            changed = self.changed_fields(current, row)
            if changed:
                data = self.writable(row)
                self.update(existing_id, {f: data[f] for f in changed}, row.source_id)
                logger.debug(
                    f"Updated {self.mapping.target_table} #{existing_id}: {', '.join(changed)}"
                )
                return UpsertResult(UpsertAction.UPDATED, existing_id, changed_fields=changed)

        return UpsertResult(UpsertAction.SKIPPED, existing_id, dry_run=dry_run)
