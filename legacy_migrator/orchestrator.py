"""Migration orchestrator - runs entity migrations against a scope."""

import logging
from datetime import datetime
from itertools import islice
from typing import Any, Callable, Dict, Iterable, List, Optional

import sqlalchemy as sa
from sqlalchemy.engine import Connection, Engine

from .entities import build_transformer, dependency_order, get_entity
from .errors import MigrationError, RowRejected, RowSkipped
from .loaders.base import BaseUpsertExecutor
from .loaders.sql_loader import SQLUpsertExecutor, check_target_scope
from .models.migration import (
    MigrationConfig,
    MigrationScope,
    MigrationStatus,
    RunMode,
    RunSummary,
)
from .models.record import SourceRow, TransformedRow
from .models.schema import EntityMapping
from .readers.base import BaseSourceReader, validate_chunk_size
from .readers.file_reader import FileSourceReader
from .readers.sql_reader import SQLSourceReader
from .services.identity_map import (
    IdentityMap,
    IdentityMapper,
    JsonFileMapStore,
    TableMapStore,
)
from .services.transformer import FieldTransformer, TransformContext

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 500

# Called with each finished RunSummary, failed runs included
ReportSink = Callable[[RunSummary], None]


class MigrationRun:
    """
    One entity migration for one scope, inside one destination transaction.

    Status moves INITIALIZED -> READING -> TRANSFORMING -> WRITING (per row)
    -> FINALIZING -> COMMITTED | ROLLED_BACK | FAILED. Row-level problems are
    counted and passed over; anything else rolls the whole run back.
    """

    def __init__(
        self,
        mapping: EntityMapping,
        reader: BaseSourceReader,
        connection: Connection,
        mapper: IdentityMapper,
        transformer: FieldTransformer,
        scope: MigrationScope,
        mode: RunMode = RunMode.LIVE,
        limit: int = 0,
        chunk_size: int = 500,
        upstream_maps: Optional[Dict[str, IdentityMap]] = None,
        target_scope_table: Optional[str] = "stores",
        executor: Optional[BaseUpsertExecutor] = None,
        metadata: Optional[sa.MetaData] = None
    ):
        """
        Initialize the run.

        Args:
            mapping: Entity mapping to migrate
            reader: Source reader bound to the same mapping
            connection: Destination connection; the run owns its transaction
            mapper: Identity mapper used to load and save maps
            transformer: Field transformer with custom transforms registered
            scope: Source and target store ids
            mode: LIVE, DRY_RUN or FORCE_OVERWRITE
            limit: Maximum rows to process, 0 for no limit
            chunk_size: Rows fetched per source query
            upstream_maps: Already loaded dependency maps, keyed by entity
            target_scope_table: Destination table checked for the target scope
            executor: Upsert executor; defaults to a SQLUpsertExecutor on ``connection``
            metadata: Shared metadata for destination reflection
        """
        if limit < 0:
            raise ValueError(f"limit must be 0 or positive, got {limit}")

        self.mapping = mapping
        self.reader = reader
        self.connection = connection
        self.mapper = mapper
        self.transformer = transformer
        self.scope = scope
        self.mode = mode
        self.limit = limit
        self.chunk_size = validate_chunk_size(chunk_size)
        self.upstream_maps = upstream_maps or {}
        self.target_scope_table = target_scope_table
        self.executor = executor
        self.metadata = metadata

        self.identity_map: Optional[IdentityMap] = None
        self.summary = RunSummary(entity=mapping.name, scope=scope, mode=mode)

    @property
    def status(self) -> MigrationStatus:
        return self.summary.status

    def execute(self) -> RunSummary:
        """
        Run the migration to a terminal status.

        Returns:
            RunSummary with counters; status COMMITTED or ROLLED_BACK

        Raises:
            MigrationError: a fatal error; the run was rolled back and
                ``self.summary`` holds status FAILED
        """
        summary = self.summary
        transaction = None
        logger.info(
            f"Migrating {self.mapping.name} for scope {self.scope.source} -> "
            f"{self.scope.target} ({self.mode.value})"
        )

        try:
            self.reader.check_scope(self.scope.source)
            transaction = self.connection.begin()
            if self.target_scope_table:
                check_target_scope(self.connection, self.scope.target, self.target_scope_table)

            executor = self.executor or SQLUpsertExecutor(
                self.connection, self.mapping, self.metadata, target_scope=self.scope.target
            )
            self.identity_map = self.mapper.load(self.mapping.name, self.scope.key)
            # The entity's own map is visible so self-references resolve
            context = TransformContext(
                identity_maps={**self._dependency_maps(), self.mapping.name: self.identity_map},
                target_scope=self.scope.target,
            )

            summary.status = MigrationStatus.READING
            rows: Iterable[SourceRow] = self.reader.read(self.scope.source, chunk_size=self.chunk_size)
            if self.limit:
                rows = islice(rows, self.limit)

            for row in rows:
                summary.counters.rows_seen += 1
                self._process_row(row, executor, context)

                if summary.counters.rows_seen % PROGRESS_EVERY == 0:
                    logger.info(
                        f"{self.mapping.name}: {summary.counters.rows_seen} rows processed "
                        f"({summary.counters.created} created, {summary.counters.skipped} skipped)"
                    )

            summary.status = MigrationStatus.FINALIZING
            if self.mode.writes:
                transaction.commit()
                summary.committed = True
                try:
                    self.mapper.save(self.identity_map)
                except Exception as e:
                    raise MigrationError(
                        f"{self.mapping.name} rows were committed but the identity map could not be saved: {e}"
                    ) from e
                summary.status = MigrationStatus.COMMITTED
            else:
                transaction.rollback()
                summary.status = MigrationStatus.ROLLED_BACK

            logger.info(
                f"{self.mapping.name} {summary.status.value}: {summary.counters.created} created, "
                f"{summary.counters.updated} updated, {summary.counters.skipped} skipped, "
                f"{summary.counters.errors} errors"
            )

        except Exception as e:
            if transaction is not None and transaction.is_active:
                transaction.rollback()
            summary.status = MigrationStatus.FAILED
            summary.error = str(e)
            if summary.committed:
                logger.error(f"Migration of {self.mapping.name} committed without saving its identity map: {e}")
            else:
                logger.error(f"Migration of {self.mapping.name} failed, rolled back: {e}")
            raise

        finally:
            summary.completed_at = datetime.utcnow()
            summary.map_size = len(self.identity_map) if self.identity_map is not None else 0

        return summary

    def _dependency_maps(self) -> Dict[str, IdentityMap]:
        maps = {}
        for dependency in self.mapping.dependencies:
            if dependency in self.upstream_maps:
                maps[dependency] = self.upstream_maps[dependency]
            else:
                maps[dependency] = self.mapper.load(dependency, self.scope.key)
        return maps

    def _process_row(
        self,
        row: SourceRow,
        executor: BaseUpsertExecutor,
        context: TransformContext
    ) -> None:
        counters = self.summary.counters

        self.summary.status = MigrationStatus.TRANSFORMING
        try:
            transformed = self.transformer.transform(row, self.mapping, context)
        except RowRejected as e:
            logger.warning(str(e))
            counters.record_error(str(e))
            return
        except RowSkipped as e:
            logger.info(str(e))
            counters.record_skip(str(e))
            return

        for warning in transformed.warnings:
            counters.warn(warning)

        self.summary.status = MigrationStatus.WRITING
        result = executor.apply(transformed, self.mode, self.identity_map)

        if result.destination_id is not None:
            self._record_mapping(transformed, result.destination_id, executor)
        counters.record(result.action)

    def _record_mapping(
        self,
        row: TransformedRow,
        destination_id: int,
        executor: BaseUpsertExecutor
    ) -> None:
        previous = self.identity_map.get(row.source_id)
        if previous is not None and previous != destination_id and not executor.exists(previous):
            message = (
                f"{self.mapping.name} #{row.source_id}: mapped {self.mapping.target_table} "
                f"#{previous} no longer exists, remapping to #{destination_id}"
            )
            logger.warning(message)
            self.summary.counters.warn(message)
            self.identity_map.discard(row.source_id)

        IdentityMapper.record(self.identity_map, row.source_id, destination_id)


class MigrationOrchestrator:
    """
    Builds readers, executors and identity mappers from a MigrationConfig
    and runs entities one at a time or as a dependency-ordered pipeline.
    """

    def __init__(
        self,
        config: MigrationConfig,
        source_engine: Optional[Engine] = None,
        destination_engine: Optional[Engine] = None,
        mapper: Optional[IdentityMapper] = None,
        transformer: Optional[FieldTransformer] = None,
        reports: Optional[List[ReportSink]] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Migration configuration
            source_engine: Legacy engine; created from ``config.source_url`` when omitted
            destination_engine: Destination engine; created from ``config.destination_url``
            mapper: Identity mapper; built from the config's map store settings
            transformer: Field transformer; defaults to one with every entity transform
            reports: Sinks called with each finished run summary
        """
        self.config = config
        self._source_engine = source_engine
        self._destination_engine = destination_engine
        self._mapper = mapper
        self.transformer = transformer or build_transformer()
        self.reports = reports or []

        self.source_metadata = sa.MetaData()
        self._file_cache: Dict[str, List[Dict[str, Any]]] = {}
        self.history: List[RunSummary] = []

    @property
    def source_engine(self) -> Engine:
        if self._source_engine is None:
            if not self.config.source_url:
                raise MigrationError("No source configured (set LEGACY_DATABASE_URL or --source-dir)")
            self._source_engine = sa.create_engine(self.config.source_url)
        return self._source_engine

    @property
    def destination_engine(self) -> Engine:
        if self._destination_engine is None:
            if not self.config.destination_url:
                raise MigrationError("No destination configured (set DATABASE_URL)")
            self._destination_engine = sa.create_engine(self.config.destination_url)
        return self._destination_engine

    @property
    def mapper(self) -> IdentityMapper:
        if self._mapper is None:
            if self.config.map_store == "table":
                store = TableMapStore(self.destination_engine, self.config.map_table)
            else:
                store = JsonFileMapStore(self.config.map_dir)
            self._mapper = IdentityMapper(store)
        return self._mapper

    def create_reader(self, mapping: EntityMapping) -> BaseSourceReader:
        """Create a source reader for an entity."""
        if self.config.source_dir and self._source_engine is None:
            return FileSourceReader(
                self.config.source_dir,
                mapping,
                scope_table=self.config.scope_table,
                cache=self._file_cache,
            )
        return SQLSourceReader(
            self.source_engine,
            mapping,
            scope_table=self.config.scope_table,
            metadata=self.source_metadata,
        )

    def run_entity(
        self,
        entity: str,
        scope: MigrationScope,
        mode: RunMode = RunMode.LIVE,
        limit: int = 0,
        upstream_maps: Optional[Dict[str, IdentityMap]] = None
    ) -> MigrationRun:
        """
        Migrate one entity for a scope.

        Args:
            entity: Registered entity name
            scope: Source and target store ids
            mode: LIVE, DRY_RUN or FORCE_OVERWRITE
            limit: Maximum rows to process, 0 for no limit
            upstream_maps: Dependency maps already in memory (pipeline runs)

        Returns:
            The finished MigrationRun; its ``identity_map`` holds the result

        Raises:
            UnknownEntity: the entity is not registered
            MigrationError: the run failed and was rolled back
        """
        mapping = get_entity(entity)
        reader = self.create_reader(mapping)

        with self.destination_engine.connect() as connection:
            run = MigrationRun(
                mapping=mapping,
                reader=reader,
                connection=connection,
                mapper=self.mapper,
                transformer=self.transformer,
                scope=scope,
                mode=mode,
                limit=limit,
                chunk_size=self.config.chunk_size,
                upstream_maps=upstream_maps,
                target_scope_table=self.config.target_scope_table,
            )
            try:
                run.execute()
            finally:
                self.history.append(run.summary)
                self._report(run.summary)

        return run

    def run_all(
        self,
        scope: MigrationScope,
        mode: RunMode = RunMode.LIVE,
        limit: int = 0,
        entities: Optional[List[str]] = None
    ) -> List[RunSummary]:
        """
        Migrate entities in dependency order, stopping at the first failure.

        Each finished run's map is handed to the runs that depend on it, so a
        dry run of the whole pipeline resolves foreign keys to the rows it
        would have created.

        Returns:
            Summaries of the runs performed, the failed one last
        """
        names = dependency_order(entities or self.config.entities or None)
        logger.info(f"Pipeline for scope {scope.source}: {', '.join(names)}")

        maps: Dict[str, IdentityMap] = {}
        summaries: List[RunSummary] = []

        for name in names:
            attempted = len(self.history)
            try:
                run = self.run_entity(name, scope, mode=mode, limit=limit, upstream_maps=maps)
            except Exception:
                # Failures before the run started have no summary to report
                if len(self.history) == attempted:
                    raise
                summaries.append(self.history[-1])
                logger.error(f"Pipeline stopped at {name}")
                break
            maps[name] = run.identity_map
            summaries.append(run.summary)

        return summaries

    def preview(
        self,
        entity: str,
        rows: List[Dict[str, Any]],
        scope: Optional[MigrationScope] = None
    ) -> List[Dict[str, Any]]:
        """
        Transform sample rows without touching any database.

        Foreign keys resolve against persisted maps when they exist.

        Returns:
            One dict per row with ``outcome`` (transformed, rejected or
            skipped), the transformed row and any message
        """
        mapping = get_entity(entity)
        maps: Dict[str, IdentityMap] = {}
        if scope is not None:
            maps = {
                name: self.mapper.load(name, scope.key)
                for name in [*mapping.dependencies, mapping.name]
            }
        context = TransformContext(
            identity_maps=maps,
            target_scope=scope.target if scope is not None else None,
        )

        results = []
        for data in rows:
            source_row = SourceRow(
                id=str(data.get(mapping.source_pk, "")),
                entity=mapping.name,
                data=data,
            )
            try:
                transformed = self.transformer.transform(source_row, mapping, context)
                results.append({"outcome": "transformed", "row": transformed.to_dict()})
            except RowRejected as e:
                results.append({"outcome": "rejected", "message": str(e)})
            except RowSkipped as e:
                results.append({"outcome": "skipped", "message": str(e)})
        return results

    def _report(self, summary: RunSummary) -> None:
        for report in self.reports:
            report(summary)
