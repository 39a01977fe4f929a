"""Tests for identity maps and their stores."""

import json

import pytest
import sqlalchemy as sa

from legacy_migrator.errors import ConflictingMapping
from legacy_migrator.services.identity_map import (
    IdentityMap,
    IdentityMapper,
    JsonFileMapStore,
    TableMapStore,
)


class TestIdentityMap:

    def test_source_ids_are_normalized_to_strings(self):
        identity_map = IdentityMap(entity="customers", scope="63")
        identity_map.set(12, 900)

        assert identity_map.get("12") == 900
        assert identity_map.get(12) == 900
        assert 12 in identity_map
        assert identity_map.get(None) is None

    def test_remapping_a_source_id_raises(self):
        identity_map = IdentityMap(entity="customers", scope="63")
        identity_map.set("1", 10)
        identity_map.set("1", 10)  # Same mapping again is fine

        with pytest.raises(ConflictingMapping) as exc_info:
            identity_map.set("1", 11)

        assert exc_info.value.existing == 10
        assert exc_info.value.incoming == 11
        assert identity_map.get("1") == 10

    def test_many_to_one_is_allowed(self):
        identity_map = IdentityMap(entity="customers", scope="63")
        identity_map.set("1", 10)
        identity_map.set("8", 10)

        assert len(identity_map) == 2

    def test_to_dict_sorts_numeric_ids_first(self):
        identity_map = IdentityMap(entity="tags", scope="63")
        for source_id in ["10", "b", "2", "a"]:
            identity_map.set(source_id, 1)

        assert list(identity_map.to_dict()) == ["2", "10", "a", "b"]


class TestJsonFileMapStore:

    def test_load_missing_map_returns_none(self, tmp_path):
        store = JsonFileMapStore(str(tmp_path))
        assert store.load("customers", "63") is None

    def test_save_writes_flat_json_object(self, tmp_path):
        store = JsonFileMapStore(str(tmp_path / "maps"))
        identity_map = IdentityMap(entity="customers", scope="63", entries={"2": 20, "1": 10})

        store.save(identity_map)

        path = tmp_path / "maps" / "customers_map_63.json"
        assert json.loads(path.read_text()) == {"1": 10, "2": 20}
        assert store.load("customers", "63").entries == {"1": 10, "2": 20}

    def test_save_leaves_no_temp_files(self, tmp_path):
        store = JsonFileMapStore(str(tmp_path))
        store.save(IdentityMap(entity="orders", scope="63", entries={"1": 1}))
        store.save(IdentityMap(entity="orders", scope="63", entries={"1": 1, "2": 2}))

        assert [p.name for p in tmp_path.iterdir()] == ["orders_map_63.json"]

    def test_failed_save_keeps_previous_map(self, tmp_path, monkeypatch):
        store = JsonFileMapStore(str(tmp_path))
        store.save(IdentityMap(entity="orders", scope="63", entries={"1": 1}))

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("legacy_migrator.services.identity_map.os.replace", broken_replace)
        with pytest.raises(OSError):
            store.save(IdentityMap(entity="orders", scope="63", entries={"1": 1, "2": 2}))

        assert store.load("orders", "63").entries == {"1": 1}
        assert [p.name for p in tmp_path.iterdir()] == ["orders_map_63.json"]

    def test_non_object_file_is_rejected(self, tmp_path):
        (tmp_path / "orders_map_63.json").write_text("[1, 2]")
        with pytest.raises(ValueError):
            JsonFileMapStore(str(tmp_path)).load("orders", "63")

    def test_list_maps(self, tmp_path):
        store = JsonFileMapStore(str(tmp_path))
        store.save(IdentityMap(entity="sales_channels", scope="63", entries={"1": 1, "2": 2}))
        store.save(IdentityMap(entity="orders", scope="64", entries={"5": 5}))

        maps = store.list_maps()

        assert [(m["entity"], m["scope"], m["size"]) for m in maps] == [
            ("orders", "64", 1),
            ("sales_channels", "63", 2),
        ]


class TestTableMapStore:

    @pytest.fixture
    def store(self, tmp_path):
        engine = sa.create_engine(f"sqlite:///{tmp_path / 'maps.db'}")
        yield TableMapStore(engine)
        engine.dispose()

    def test_table_is_created_on_first_save(self, store):
        assert not sa.inspect(store.engine).has_table("migration_identity_maps")
        assert store.load("customers", "63") is None
        assert store.list_maps() == []
        assert not sa.inspect(store.engine).has_table("migration_identity_maps")

        store.save(IdentityMap(entity="customers", scope="63", entries={"1": 10}))

        assert sa.inspect(store.engine).has_table("migration_identity_maps")
        assert store.load("customers", "63").entries == {"1": 10}

    def test_round_trip_replaces_previous_rows(self, store):
        store.save(IdentityMap(entity="customers", scope="63", entries={"1": 10, "2": 20}))
        store.save(IdentityMap(entity="customers", scope="63", entries={"1": 10, "3": 30}))

        loaded = store.load("customers", "63")

        assert loaded.entries == {"1": 10, "3": 30}
        assert store.load("customers", "64") is None

    def test_list_maps(self, store):
        store.save(IdentityMap(entity="customers", scope="63", entries={"1": 10, "2": 20}))
        store.save(IdentityMap(entity="orders", scope="63", entries={"9": 90}))

        assert [(m["entity"], m["size"]) for m in store.list_maps()] == [("customers", 2), ("orders", 1)]


class TestIdentityMapper:

    def test_load_returns_empty_map_when_nothing_saved(self, tmp_path):
        mapper = IdentityMapper(JsonFileMapStore(str(tmp_path)))

        identity_map = mapper.load("customers", 63)

        assert identity_map.entity == "customers"
        assert identity_map.scope == "63"
        assert len(identity_map) == 0

    def test_record_lookup_and_save(self, tmp_path):
        mapper = IdentityMapper(JsonFileMapStore(str(tmp_path)))
        identity_map = mapper.load("customers", 63)

        mapper.record(identity_map, 5, 50)
        mapper.save(identity_map)

        assert mapper.lookup(mapper.load("customers", 63), "5") == 50

    def test_resolve_stops_at_first_match(self):
        calls = []

        def strategy(result):
            def _match(row):
                calls.append(result)
                return result
            return _match

        found = IdentityMapper.resolve([strategy(None), strategy(42), strategy(7)], row=object())

        assert found == 42
        assert calls == [None, 42]

    def test_resolve_without_match(self):
        assert IdentityMapper.resolve([lambda row: None], row=object()) is None
        assert IdentityMapper.resolve([], row=object()) is None
