"""End-to-end tests of single entity runs against SQLite."""

import io

import pytest
import sqlalchemy as sa

from legacy_migrator.errors import (
    ConflictingMapping,
    MigrationError,
    ScopeNotFound,
    UnknownEntity,
    WriteFailure,
)
from legacy_migrator.models.migration import MigrationConfig, MigrationScope, MigrationStatus, RunMode
from legacy_migrator.orchestrator import MigrationOrchestrator, MigrationRun
from legacy_migrator.readers import SQLSourceReader
from legacy_migrator.entities import build_transformer, customers
from legacy_migrator.reporting import ConsoleReport
from legacy_migrator.services.identity_map import IdentityMap, IdentityMapper, JsonFileMapStore


def map_file(map_dir, entity, scope_key="63_to_7"):
    return map_dir / f"{entity}_map_{scope_key}.json"


class TestCustomersRun:

    def test_live_run(self, orchestrator, scope, count_rows, fetch_rows, map_dir):
        run = orchestrator.run_entity("customers", scope)
        counters = run.summary.counters

        assert run.status == MigrationStatus.COMMITTED
        assert (counters.rows_seen, counters.created, counters.skipped, counters.errors) == (5, 4, 1, 0)
        assert counters.warning_count == 1
        assert counters.warnings[0].startswith("customers #7 phone_number:")
        assert count_rows("customers") == 4

        rows = {row["email"]: row for row in fetch_rows("customers")}
        assert rows["john@example.com"]["created_at"] is None
        assert rows["jane@example.com"]["phone_number"] == "5551234567"
        assert rows["jane@example.com"]["store_id"] == 7

        saved = orchestrator.mapper.load("customers", scope.key)
        assert map_file(map_dir, "customers").exists()
        assert len(saved) == 5
        # Duplicate legacy customer collapses onto the first one
        assert saved.get("8") == saved.get("1")
        assert run.summary.map_size == 5

    def test_second_run_is_a_no_op(self, orchestrator, scope, count_rows):
        orchestrator.run_entity("customers", scope)
        first_map = orchestrator.mapper.load("customers", scope.key).to_dict()

        run = orchestrator.run_entity("customers", scope)

        assert run.summary.counters.created == 0
        assert run.summary.counters.updated == 0
        assert run.summary.counters.skipped == 5
        assert count_rows("customers") == 4
        assert orchestrator.mapper.load("customers", scope.key).to_dict() == first_map

    def test_dry_run_writes_nothing(self, orchestrator, scope, count_rows, map_dir):
        run = orchestrator.run_entity("customers", scope, mode=RunMode.DRY_RUN)

        assert run.status == MigrationStatus.ROLLED_BACK
        assert run.summary.dry_run
        assert run.summary.counters.created == 4
        assert run.summary.counters.skipped == 1
        assert count_rows("customers") == 0
        assert not map_file(map_dir, "customers").exists()
        # Provisional ids stay in memory only
        assert all(destination_id < 0 for _, destination_id in run.identity_map)

    def test_dry_run_after_live_run_reports_skips(self, orchestrator, scope, count_rows):
        orchestrator.run_entity("customers", scope)

        run = orchestrator.run_entity("customers", scope, mode=RunMode.DRY_RUN)

        assert run.summary.counters.skipped == 5
        assert count_rows("customers") == 4

    def test_force_overwrite_updates_changed_rows(self, orchestrator, scope, legacy_engine, fetch_rows):
        orchestrator.run_entity("customers", scope)
        with legacy_engine.begin() as conn:
            conn.execute(sa.text("UPDATE customers SET first_name = 'Johnny' WHERE id = 2"))

        plain = orchestrator.run_entity("customers", scope)
        forced = orchestrator.run_entity("customers", scope, mode=RunMode.FORCE_OVERWRITE)

        assert plain.summary.counters.updated == 0
        assert forced.summary.counters.updated == 1
        assert forced.summary.counters.skipped == 4
        assert forced.status == MigrationStatus.COMMITTED
        names = [row["first_name"] for row in fetch_rows("customers")]
        assert "Johnny" in names and "John" not in names

    def test_limit(self, orchestrator, scope, count_rows):
        run = orchestrator.run_entity("customers", scope, limit=2)

        assert run.summary.counters.rows_seen == 2
        assert count_rows("customers") == 2

    def test_stale_mapping_is_replaced(self, orchestrator, scope, destination_engine):
        orchestrator.run_entity("customers", scope)
        old_id = orchestrator.mapper.load("customers", scope.key).get("1")
        with destination_engine.begin() as conn:
            conn.execute(sa.text("DELETE FROM customers WHERE id = :id"), {"id": old_id})

        run = orchestrator.run_entity("customers", scope)

        saved = orchestrator.mapper.load("customers", scope.key)
        assert run.summary.counters.created == 1
        assert saved.get("1") != old_id
        assert saved.get("8") == saved.get("1")
        assert any("no longer exists" in w for w in run.summary.counters.warnings)


class TestTargetScopes:

    def test_scope_key(self):
        assert MigrationScope(source="63").key == "63"
        assert MigrationScope(source=63, target="7").key == "63_to_7"

    def test_new_target_store_gets_its_own_rows_and_map(
        self, orchestrator, scope, destination_engine, fetch_rows, map_dir
    ):
        orchestrator.run_entity("customers", scope)
        with destination_engine.begin() as conn:
            conn.execute(sa.text("INSERT INTO stores (id, name) VALUES (8, 'Second Store')"))

        run = orchestrator.run_entity("customers", MigrationScope(source=63, target=8))

        counters = run.summary.counters
        assert (counters.created, counters.skipped) == (4, 1)
        store_ids = [row["store_id"] for row in fetch_rows("customers")]
        assert store_ids.count(7) == 4
        assert store_ids.count(8) == 4
        assert map_file(map_dir, "customers").exists()
        assert map_file(map_dir, "customers", "63_to_8").exists()
        first = orchestrator.mapper.load("customers", "63_to_7")
        second = orchestrator.mapper.load("customers", "63_to_8")
        assert set(first.entries.values()).isdisjoint(second.entries.values())

    def test_orders_resolve_customers_of_the_same_target_store(self, orchestrator, destination_engine, fetch_rows):
        with destination_engine.begin() as conn:
            conn.execute(sa.text("INSERT INTO stores (id, name) VALUES (8, 'Second Store')"))
        orchestrator.run_all(MigrationScope(source=63, target=7), entities=["customers", "orders"])

        orchestrator.run_all(MigrationScope(source=63, target=8), entities=["customers", "orders"])

        customer_stores = {row["id"]: row["store_id"] for row in fetch_rows("customers")}
        for order in fetch_rows("orders"):
            if order["customer_id"] is not None:
                assert customer_stores[order["customer_id"]] == order["store_id"]
        assert len(fetch_rows("orders")) == 6


class TestFailedRuns:

    def test_write_failure_rolls_back_everything(
        self, orchestrator, scope, legacy_engine, destination_engine, count_rows, map_dir
    ):
        with destination_engine.begin() as conn:
            conn.execute(sa.text("CREATE UNIQUE INDEX uq_customers_last_name ON customers (last_name)"))
        with legacy_engine.begin() as conn:
            conn.execute(sa.text(
                "INSERT INTO customers (id, store_id, first_name, last_name, email, is_vendor) "
                "VALUES (9, 63, 'Richard', 'Doe', 'richard@example.com', 0)"
            ))

        with pytest.raises(WriteFailure):
            orchestrator.run_entity("customers", scope)

        summary = orchestrator.history[-1]
        assert summary.status == MigrationStatus.FAILED
        assert "customers #9" in summary.error
        assert count_rows("customers") == 0
        assert not map_file(map_dir, "customers").exists()

    def test_conflicting_mapping_rolls_back_everything(
        self, orchestrator, scope, destination_engine, count_rows, map_dir
    ):
        with destination_engine.begin() as conn:
            conn.execute(sa.text(
                "INSERT INTO customers (id, store_id, first_name, email) VALUES "
                "(50, 7, 'Mary', 'mary@example.com'), (60, 7, 'Someone', 'someone@example.com')"
            ))
        # Legacy customer 7 was once mapped to a different, still existing row
        JsonFileMapStore(str(map_dir)).save(
            IdentityMap(entity="customers", scope=scope.key, entries={"7": 60})
        )

        with pytest.raises(ConflictingMapping) as exc_info:
            orchestrator.run_entity("customers", scope)

        assert (exc_info.value.existing, exc_info.value.incoming) == (60, 50)
        assert orchestrator.history[-1].status == MigrationStatus.FAILED
        assert not orchestrator.history[-1].committed
        # Rows created for legacy customers 1, 2 and 3 were rolled back
        assert count_rows("customers") == 2
        assert orchestrator.mapper.load("customers", scope.key).to_dict() == {"7": 60}

    def test_map_save_failure_after_commit(self, orchestrator, scope, count_rows, map_dir, monkeypatch):
        def disk_full(identity_map):
            raise OSError("disk full")

        monkeypatch.setattr(orchestrator.mapper, "save", disk_full)
        stream = io.StringIO()
        orchestrator.reports.append(ConsoleReport(stream=stream))

        with pytest.raises(MigrationError, match="identity map could not be saved: disk full"):
            orchestrator.run_entity("customers", scope)

        summary = orchestrator.history[-1]
        assert summary.status == MigrationStatus.FAILED
        assert summary.committed
        assert count_rows("customers") == 4
        assert not map_file(map_dir, "customers").exists()
        output = stream.getvalue()
        assert "Rows were committed; identity map was NOT saved." in output
        assert "rolled back" not in output

    def test_unknown_source_scope(self, orchestrator, count_rows, map_dir):
        with pytest.raises(ScopeNotFound):
            orchestrator.run_entity("customers", MigrationScope(source=999, target=7))

        assert orchestrator.history[-1].status == MigrationStatus.FAILED
        assert count_rows("customers") == 0
        assert not map_dir.exists()

    def test_unknown_target_scope(self, orchestrator, count_rows):
        with pytest.raises(ScopeNotFound) as exc_info:
            orchestrator.run_entity("customers", MigrationScope(source=63, target=99))

        assert exc_info.value.scope == 99
        assert count_rows("customers") == 0

    def test_unknown_entity(self, orchestrator, scope):
        with pytest.raises(UnknownEntity):
            orchestrator.run_entity("widgets", scope)
        assert orchestrator.history == []

    def test_report_sinks_see_failed_runs(self, orchestrator):
        seen = []
        orchestrator.reports.append(seen.append)

        with pytest.raises(ScopeNotFound):
            orchestrator.run_entity("customers", MigrationScope(source=999))

        assert [s.status for s in seen] == [MigrationStatus.FAILED]


class TestFileSource:

    def test_runs_from_csv_exports(self, tmp_path, destination_engine, fetch_rows):
        exports = tmp_path / "exports"
        exports.mkdir()
        (exports / "stores.csv").write_text("id,name\n63,Legacy Jewelers\n")
        (exports / "store_tags.csv").write_text(
            "id,store_id,value,tagable_type,tagable_id\n"
            "701,63,VIP,Order,101\n"
            "702,63,NULL,Order,102\n"
            "703,63,Rush,Order,103\n"
        )
        config = MigrationConfig(source_dir=str(exports), map_dir=str(tmp_path / "maps"))
        orchestrator = MigrationOrchestrator(config, destination_engine=destination_engine)

        run = orchestrator.run_entity("tags", MigrationScope(source="63", target="7"))

        assert run.summary.counters.created == 2
        assert sorted(row["name"] for row in fetch_rows("tags")) == ["Rush", "VIP"]
        assert orchestrator.mapper.load("tags", "63_to_7").to_dict() == {"701": 1, "703": 2}


class TestMigrationRun:

    def test_negative_limit_is_rejected(self, legacy_engine, destination_engine, tmp_path, scope):
        with destination_engine.connect() as connection:
            with pytest.raises(ValueError):
                MigrationRun(
                    mapping=customers.MAPPING,
                    reader=SQLSourceReader(legacy_engine, customers.MAPPING),
                    connection=connection,
                    mapper=IdentityMapper(JsonFileMapStore(str(tmp_path))),
                    transformer=build_transformer(),
                    scope=scope,
                    limit=-1,
                )

    def test_status_before_execute(self, legacy_engine, destination_engine, tmp_path, scope):
        with destination_engine.connect() as connection:
            run = MigrationRun(
                mapping=customers.MAPPING,
                reader=SQLSourceReader(legacy_engine, customers.MAPPING),
                connection=connection,
                mapper=IdentityMapper(JsonFileMapStore(str(tmp_path))),
                transformer=build_transformer(),
                scope=scope,
                chunk_size=1,
            )

            assert run.status == MigrationStatus.INITIALIZED
            summary = run.execute()

        assert summary.status == MigrationStatus.COMMITTED
        assert summary.counters.created == 4
        assert summary.completed_at is not None
