"""Reader for legacy tables exported as CSV, JSON or JSONL files."""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .base import BaseSourceReader
from ..errors import ScopeNotFound, SourceUnavailable
from ..models.record import SourceRow
from ..models.schema import NOT_NULL, EntityMapping

logger = logging.getLogger(__name__)

NULL_STRINGS = {"", "NULL", "\\N"}
EXTENSIONS = (".csv", ".jsonl", ".json")


def _same(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is right
    return str(left) == str(right)


def _pk_sort_key(value: Any):
    text = str(value)
    return (0, int(text), "") if text.lstrip("-").isdigit() else (1, 0, text)


class FileSourceReader(BaseSourceReader):
    """
    Reads ``<table>.csv``, ``<table>.jsonl`` or ``<table>.json`` from a
    directory of exports.

    Files are loaded once and cached. Empty strings, ``NULL`` and ``\\N``
    in CSV exports are read as null.
    """

    def __init__(
        self,
        directory: str,
        mapping: EntityMapping,
        scope_table: Optional[str] = "stores",
        encoding: str = "utf-8",
        cache: Optional[Dict[str, List[Dict[str, Any]]]] = None
    ):
        """
        Initialize the file reader.

        Args:
            directory: Directory holding one export file per table
            mapping: Entity mapping naming the source table
            scope_table: Parent table checked for the scope before reading
            encoding: File encoding
            cache: Shared table cache, so each file is parsed once per process
        """
        super().__init__(mapping, scope_table)
        self.directory = Path(directory)
        self.encoding = encoding
        self._cache = cache if cache is not None else {}

        if not self.directory.is_dir():
            raise SourceUnavailable(f"Export directory not found: {self.directory}")

    def _file_for(self, table: str) -> Path:
        for ext in EXTENSIONS:
            path = self.directory / f"{table}{ext}"
            if path.exists():
                return path
        raise SourceUnavailable(f"No export file for table {table} in {self.directory}")

    def _rows(self, table: str) -> List[Dict[str, Any]]:
        if table not in self._cache:
            path = self._file_for(table)
            logger.info(f"Loading {path}")
            if path.suffix == ".csv":
                rows = self._load_csv(path)
            elif path.suffix == ".jsonl":
                rows = self._load_jsonl(path)
            else:
                rows = self._load_json(path)
            self._cache[table] = rows
        return self._cache[table]

    def _load_csv(self, path: Path) -> List[Dict[str, Any]]:
        try:
            with open(path, "r", encoding=self.encoding, newline="") as f:
                return [
                    {k: (None if v in NULL_STRINGS else v) for k, v in row.items()}
                    for row in csv.DictReader(f)
                ]
        except UnicodeDecodeError:
            logger.warning(f"{self.encoding} decode failed, trying latin-1 for {path}")
            with open(path, "r", encoding="latin-1", newline="") as f:
                return [
                    {k: (None if v in NULL_STRINGS else v) for k, v in row.items()}
                    for row in csv.DictReader(f)
                ]

    def _load_jsonl(self, path: Path) -> List[Dict[str, Any]]:
        rows = []
        with open(path, "r", encoding=self.encoding) as f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    rows.append(json.loads(line))
                except json.JSONDecodeError as e:
                    raise SourceUnavailable(f"{path}:{line_num} is not valid JSON: {e}") from e
        return rows

    def _load_json(self, path: Path) -> List[Dict[str, Any]]:
        with open(path, "r", encoding=self.encoding) as f:
            data = json.load(f)

        # Handle different JSON structures
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in ["data", "records", "items", "rows"]:
                if key in data and isinstance(data[key], list):
                    return data[key]
        raise SourceUnavailable(f"Unexpected JSON structure in {path}")

    def check_scope(self, scope: Any) -> None:
        if not self.scope_table:
            return
        if not any(_same(row.get("id"), scope) for row in self._rows(self.scope_table)):
            raise ScopeNotFound(scope, self.scope_table)

    def _matches(self, row: Dict[str, Any], filters: Dict[str, Any], columns: set) -> bool:
        for column, expected in filters.items():
            if column not in columns:
                raise ValueError(f"Unknown filter column {self.mapping.source_table}.{column}")
            actual = row.get(column)
            if expected is None:
                if actual is not None:
                    return False
            elif expected == NOT_NULL:
                if actual is None:
                    return False
            elif isinstance(expected, (list, tuple, set)):
                if not any(_same(actual, e) for e in expected):
                    return False
            elif not _same(actual, expected):
                return False
        return True

    def _scoped_rows(self, scope: Any, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        rows = self._rows(self.mapping.source_table)
        columns = set(rows[0].keys()) if rows else set(filters)
        via = self.mapping.scope_via

        if via is not None:
            parents = self._rows(via.parent_table)
            parent_columns = set(parents[0].keys()) if parents else set(via.parent_filters)
            parent_ids = {
                str(p.get(via.parent_pk))
                for p in parents
                if _same(p.get(via.parent_scope_column), scope)
                and self._matches(p, via.parent_filters, parent_columns)
            }
            rows = [r for r in rows if r.get(via.column) is not None and str(r.get(via.column)) in parent_ids]
        elif self.mapping.scope_column:
            if rows and self.mapping.scope_column not in columns:
                raise ValueError(
                    f"Unknown scope column {self.mapping.source_table}.{self.mapping.scope_column}"
                )
            rows = [r for r in rows if _same(r.get(self.mapping.scope_column), scope)]

        return [r for r in rows if self._matches(r, filters, columns)]

    def read_chunk(
        self,
        scope: Any,
        filters: Dict[str, Any],
        after: Optional[Any],
        limit: int
    ) -> List[SourceRow]:
        pk = self.mapping.source_pk
        rows = sorted(self._scoped_rows(scope, filters), key=lambda r: _pk_sort_key(r.get(pk)))
        if after is not None:
            after_key = _pk_sort_key(after)
            rows = [r for r in rows if _pk_sort_key(r.get(pk)) > after_key]
        return [self.create_row(dict(r)) for r in rows[:limit]]
