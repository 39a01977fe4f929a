"""
Shared fixtures: file-backed SQLite legacy and destination databases.

The legacy store is id 63; it migrates into destination store 7.
"""

import pytest
import sqlalchemy as sa

from legacy_migrator.models.migration import MigrationConfig, MigrationScope
from legacy_migrator.orchestrator import MigrationOrchestrator

LEGACY_STORE = 63
TARGET_STORE = 7


def _legacy_metadata() -> sa.MetaData:
    metadata = sa.MetaData()
    sa.Table(
        "stores", metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(100)),
    )
    sa.Table(
        "customers", metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("store_id", sa.Integer),
        sa.Column("first_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("email", sa.String(191)),
        sa.Column("phone_number", sa.String(50)),
        sa.Column("company_name", sa.String(191)),
        sa.Column("is_vendor", sa.Integer),
        sa.Column("notes", sa.Text),
        sa.Column("deleted_at", sa.String(30)),
        sa.Column("created_at", sa.String(30)),
        sa.Column("updated_at", sa.String(30)),
    )
    sa.Table(
        "store_market_places", metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("store_id", sa.Integer),
        sa.Column("name", sa.String(100)),
        sa.Column("marketplace", sa.String(50)),
        sa.Column("external_marketplace_id", sa.String(100)),
        sa.Column("connected_successfully", sa.Integer),
        sa.Column("deleted_at", sa.String(30)),
    )
    sa.Table(
        "products", metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("store_id", sa.Integer),
        sa.Column("title", sa.String(191)),
        sa.Column("sku", sa.String(100)),
        sa.Column("vendor_id", sa.Integer),
        sa.Column("status", sa.String(30)),
        sa.Column("price", sa.String(30)),
        sa.Column("quantity", sa.String(30)),
        sa.Column("deleted_at", sa.String(30)),
    )
    sa.Table(
        "metas", metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("metaable_type", sa.String(100)),
        sa.Column("metaable_id", sa.Integer),
        sa.Column("field", sa.String(100)),
        sa.Column("value", sa.String(191)),
        sa.Column("deleted_at", sa.String(30)),
    )
    sa.Table(
        "orders", metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("store_id", sa.Integer),
        sa.Column("order_id", sa.String(50)),
        sa.Column("invoice_number", sa.String(50)),
        sa.Column("customer_id", sa.Integer),
        sa.Column("store_marketplace_id", sa.Integer),
        sa.Column("status", sa.String(30)),
        sa.Column("total", sa.String(30)),
        sa.Column("created_at", sa.String(30)),
    )
    sa.Table(
        "order_items", metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("order_id", sa.Integer),
        sa.Column("product_id", sa.Integer),
        sa.Column("title", sa.String(191)),
        sa.Column("quantity", sa.String(10)),
        sa.Column("price", sa.String(30)),
    )
    sa.Table(
        "payments", metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("order_id", sa.Integer),
        sa.Column("type", sa.String(30)),
        sa.Column("status", sa.String(30)),
        sa.Column("amount", sa.String(30)),
        sa.Column("currency", sa.String(3)),
        sa.Column("payment_gateway_id", sa.Integer),
        sa.Column("updated_at", sa.String(30)),
    )
    sa.Table(
        "repairs", metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("store_id", sa.Integer),
        sa.Column("customer_id", sa.Integer),
        sa.Column("vendor_id", sa.Integer),
        sa.Column("invoice_number", sa.String(50)),
        sa.Column("status", sa.String(30)),
        sa.Column("total", sa.String(30)),
        sa.Column("repair_days", sa.String(10)),
        sa.Column("is_appraisal", sa.Integer),
    )
    sa.Table(
        "store_tags", metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("store_id", sa.Integer),
        sa.Column("value", sa.String(100)),
        sa.Column("tagable_type", sa.String(100)),
        sa.Column("tagable_id", sa.Integer),
    )
    sa.Table(
        "product_variants", metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("product_id", sa.Integer),
        sa.Column("sku", sa.String(100)),
        sa.Column("quantity", sa.String(10)),
        sa.Column("cost", sa.String(30)),
        sa.Column("price", sa.String(30)),
        sa.Column("deleted_at", sa.String(30)),
    )
    sa.Table(
        "categories", metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("store_id", sa.Integer),
        sa.Column("name", sa.String(100)),
        sa.Column("type", sa.String(50)),
        sa.Column("description", sa.Text),
        sa.Column("parent_id", sa.Integer),
        sa.Column("sort_order", sa.String(10)),
        sa.Column("level", sa.String(10)),
        sa.Column("deleted_at", sa.String(30)),
    )
    sa.Table(
        "transactions", metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("store_id", sa.Integer),
        sa.Column("customer_id", sa.Integer),
        sa.Column("status_id", sa.Integer),
        sa.Column("is_in_house", sa.Integer),
        sa.Column("preliminary_offer", sa.String(30)),
        sa.Column("final_offer", sa.String(30)),
        sa.Column("est_value", sa.String(30)),
        sa.Column("bin_location", sa.String(50)),
        sa.Column("private_note", sa.Text),
        sa.Column("deleted_at", sa.String(30)),
        sa.Column("created_at", sa.String(30)),
    )
    sa.Table(
        "memos", metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("store_id", sa.Integer),
        sa.Column("invoice_number", sa.String(50)),
        sa.Column("vendor_id", sa.Integer),
        sa.Column("status", sa.String(30)),
        sa.Column("tenure", sa.String(10)),
        sa.Column("tenor", sa.String(10)),
        sa.Column("total", sa.String(30)),
        sa.Column("charge_taxes", sa.Integer),
        sa.Column("deleted_at", sa.String(30)),
    )
    return metadata


def _destination_metadata() -> sa.MetaData:
    metadata = sa.MetaData()

    def table(name, *columns):
        return sa.Table(name, metadata, sa.Column("id", sa.Integer, primary_key=True), *columns)

    table("stores", sa.Column("name", sa.String(100)))
    table(
        "sales_channels",
        sa.Column("store_id", sa.Integer),
        sa.Column("name", sa.String(100)),
        sa.Column("code", sa.String(100)),
        sa.Column("platform", sa.String(50)),
        sa.Column("type", sa.String(50)),
        sa.Column("is_local", sa.Boolean),
        sa.Column("is_default", sa.Boolean),
        sa.Column("is_active", sa.Boolean),
        sa.Column("status", sa.String(30)),
    )
    table(
        "vendors",
        sa.Column("store_id", sa.Integer),
        sa.Column("name", sa.String(191), nullable=False),
        sa.Column("code", sa.String(20)),
        sa.Column("email", sa.String(191)),
        sa.Column("company_name", sa.String(191)),
        sa.Column("country", sa.String(2)),
    )
    table(
        "customers",
        sa.Column("store_id", sa.Integer),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100)),
        sa.Column("email", sa.String(191)),
        sa.Column("phone_number", sa.String(50)),
        sa.Column("company_name", sa.String(191)),
        sa.Column("accepts_marketing", sa.Boolean),
        sa.Column("is_active", sa.Boolean),
        sa.Column("created_at", sa.DateTime),
        sa.Column("updated_at", sa.DateTime),
    )
    table(
        "products",
        sa.Column("store_id", sa.Integer),
        sa.Column("title", sa.String(191)),
        sa.Column("handle", sa.String(191)),
        sa.Column("sku", sa.String(100)),
        sa.Column("vendor_id", sa.Integer),
        sa.Column("status", sa.String(30)),
        sa.Column("price", sa.Numeric(12, 2)),
        sa.Column("quantity", sa.Integer),
    )
    table(
        "product_attribute_values",
        sa.Column("product_id", sa.Integer),
        sa.Column("attribute", sa.String(100)),
        sa.Column("value", sa.String(191)),
        sa.Column("original_value", sa.String(191)),
    )
    table(
        "orders",
        sa.Column("store_id", sa.Integer),
        sa.Column("invoice_number", sa.String(50)),
        sa.Column("order_id", sa.String(50)),
        sa.Column("customer_id", sa.Integer),
        sa.Column("sales_channel_id", sa.Integer),
        sa.Column("status", sa.String(30)),
        sa.Column("total", sa.Numeric(12, 2)),
        sa.Column("created_at", sa.DateTime),
    )
    table(
        "order_items",
        sa.Column("order_id", sa.Integer, nullable=False),
        sa.Column("legacy_id", sa.Integer),
        sa.Column("product_id", sa.Integer),
        sa.Column("title", sa.String(191)),
        sa.Column("quantity", sa.Integer),
        sa.Column("price", sa.Numeric(12, 2)),
    )
    table(
        "payments",
        sa.Column("store_id", sa.Integer),
        sa.Column("reference", sa.String(100)),
        sa.Column("order_id", sa.Integer),
        sa.Column("payment_method", sa.String(30)),
        sa.Column("status", sa.String(30)),
        sa.Column("amount", sa.Numeric(12, 2)),
        sa.Column("currency", sa.String(3)),
        sa.Column("gateway", sa.String(30)),
        sa.Column("paid_at", sa.DateTime),
    )
    table(
        "repairs",
        sa.Column("store_id", sa.Integer),
        sa.Column("repair_number", sa.String(50)),
        sa.Column("customer_id", sa.Integer),
        sa.Column("vendor_id", sa.Integer),
        sa.Column("status", sa.String(30)),
        sa.Column("total", sa.Numeric(12, 2)),
        sa.Column("repair_days", sa.Integer),
        sa.Column("is_appraisal", sa.Boolean),
    )
    table(
        "tags",
        sa.Column("store_id", sa.Integer),
        sa.Column("name", sa.String(100)),
        sa.Column("slug", sa.String(100)),
        sa.Column("color", sa.String(10)),
    )
    table(
        "taggables",
        sa.Column("tag_id", sa.Integer),
        sa.Column("taggable_type", sa.String(30)),
        sa.Column("taggable_id", sa.Integer),
    )
    table(
        "inventory",
        sa.Column("store_id", sa.Integer),
        sa.Column("product_id", sa.Integer),
        sa.Column("sku", sa.String(100)),
        sa.Column("quantity", sa.Integer),
        sa.Column("unit_cost", sa.Numeric(12, 2)),
        sa.Column("price", sa.Numeric(12, 2)),
    )
    table(
        "categories",
        sa.Column("store_id", sa.Integer),
        sa.Column("name", sa.String(100)),
        sa.Column("slug", sa.String(120)),
        sa.Column("type", sa.String(50)),
        sa.Column("description", sa.Text),
        sa.Column("sort_order", sa.Integer),
        sa.Column("level", sa.Integer),
        sa.Column("parent_id", sa.Integer),
    )
    table(
        "transactions",
        sa.Column("store_id", sa.Integer),
        sa.Column("transaction_number", sa.String(50)),
        sa.Column("customer_id", sa.Integer),
        sa.Column("status", sa.String(50)),
        sa.Column("type", sa.String(20)),
        sa.Column("source", sa.String(30)),
        sa.Column("preliminary_offer", sa.Numeric(12, 2)),
        sa.Column("final_offer", sa.Numeric(12, 2)),
        sa.Column("estimated_value", sa.Numeric(12, 2)),
        sa.Column("bin_location", sa.String(50)),
        sa.Column("internal_notes", sa.Text),
        sa.Column("created_at", sa.DateTime),
    )
    table(
        "memos",
        sa.Column("store_id", sa.Integer),
        sa.Column("memo_number", sa.String(50)),
        sa.Column("vendor_id", sa.Integer),
        sa.Column("status", sa.String(30)),
        sa.Column("tenure", sa.Integer),
        sa.Column("total", sa.Numeric(12, 2)),
        sa.Column("charge_taxes", sa.Boolean),
    )
    return metadata


LEGACY_ROWS = {
    "stores": [
        {"id": LEGACY_STORE, "name": "Legacy Jewelers"},
        {"id": 64, "name": "Another Store"},
    ],
    "customers": [
        {"id": 1, "store_id": 63, "first_name": "Jane", "last_name": "Doe", "email": "jane@example.com",
         "phone_number": "(555) 123-4567", "is_vendor": 0, "created_at": "2023-05-01 10:00:00"},
        {"id": 2, "store_id": 63, "first_name": "John", "last_name": "Smith", "email": "JOHN@Example.com ",
         "phone_number": None, "is_vendor": None, "created_at": "0000-00-00 00:00:00"},
        {"id": 3, "store_id": 63, "first_name": None, "last_name": "", "email": None,
         "phone_number": "555.987.6543", "is_vendor": 0},
        {"id": 4, "store_id": 63, "first_name": None, "last_name": None, "email": "sales@gems.example",
         "company_name": "Gem Supply Co", "is_vendor": 1},
        {"id": 5, "store_id": 63, "first_name": "Gone", "last_name": "Away", "email": "gone@example.com",
         "is_vendor": 0, "deleted_at": "2023-01-01 00:00:00"},
        {"id": 6, "store_id": 64, "first_name": "Other", "last_name": "Store", "email": "other@example.com",
         "is_vendor": 0},
        {"id": 7, "store_id": 63, "first_name": "Mary", "last_name": "Major", "email": "mary@example.com",
         "phone_number": "123", "is_vendor": 0},
        {"id": 8, "store_id": 63, "first_name": "Jane", "last_name": "Doe", "email": "jane@example.com",
         "phone_number": "555-123-4567", "is_vendor": 0},
    ],
    "store_market_places": [
        {"id": 11, "store_id": 63, "name": None, "marketplace": "pos", "connected_successfully": 1},
        {"id": 12, "store_id": 63, "name": "My eBay", "marketplace": "ebay", "connected_successfully": 0},
    ],
    "products": [
        {"id": 21, "store_id": 63, "title": "Diamond Ring", "sku": "RING-1", "vendor_id": 4,
         "status": "Active", "price": "$1,499.99", "quantity": "2"},
        {"id": 22, "store_id": 63, "title": "Pearl Necklace", "sku": "0", "vendor_id": None,
         "status": "mystery", "price": "", "quantity": None},
    ],
    "metas": [
        {"id": 31, "metaable_type": "App\\Models\\Product", "metaable_id": 21,
         "field": "clarity_range", "value": "VS2"},
        {"id": 32, "metaable_type": "App\\Models\\Product", "metaable_id": 21,
         "field": "main_stone_weight_range", "value": "0.63 carat"},
        {"id": 33, "metaable_type": "App\\Models\\Order", "metaable_id": 21,
         "field": "clarity_range", "value": "VS1"},
    ],
    "orders": [
        {"id": 101, "store_id": 63, "order_id": "1001", "customer_id": 1, "store_marketplace_id": 11,
         "status": "Paid", "total": "$1,200.50", "created_at": "2024-01-15 09:30:00"},
        {"id": 102, "store_id": 63, "order_id": "0", "invoice_number": "", "customer_id": 2,
         "status": "weird", "total": "80"},
        {"id": 103, "store_id": 63, "order_id": None, "invoice_number": "A-77", "customer_id": 999,
         "status": None, "total": "abc"},
        {"id": 104, "store_id": 64, "order_id": "2001", "customer_id": 6, "status": "paid", "total": "5"},
    ],
    "order_items": [
        {"id": 201, "order_id": 101, "product_id": 21, "title": "Diamond Ring", "quantity": "1",
         "price": "1200.50"},
        {"id": 202, "order_id": 102, "product_id": 777, "title": None, "quantity": None, "price": "80"},
        {"id": 203, "order_id": 104, "product_id": 21, "title": "Other store", "quantity": "1",
         "price": "5"},
    ],
    "payments": [
        {"id": 501, "order_id": 101, "type": "credit_card", "status": "paid", "amount": "1200.50",
         "currency": "usd", "payment_gateway_id": 2, "updated_at": "2024-01-15 09:45:00"},
        {"id": 502, "order_id": 102, "type": "bitcoin", "status": None, "amount": "80",
         "currency": None, "payment_gateway_id": 9},
    ],
    "repairs": [
        {"id": 601, "store_id": 63, "customer_id": 1, "vendor_id": 4, "invoice_number": "R-1",
         "status": "Sent to Vendor", "total": "150", "repair_days": None, "is_appraisal": 0},
        {"id": 602, "store_id": 63, "customer_id": None, "invoice_number": "R-2", "status": "pending"},
    ],
    "store_tags": [
        {"id": 701, "store_id": 63, "value": "VIP", "tagable_type": "App\\Models\\Order", "tagable_id": 101},
        {"id": 702, "store_id": 63, "value": "VIP ", "tagable_type": "App\\Models\\Order", "tagable_id": 102},
        {"id": 703, "store_id": 63, "value": "Rush", "tagable_type": "App\\Models\\Customer", "tagable_id": 1},
    ],
    "product_variants": [
        {"id": 801, "product_id": 21, "sku": "RING-1-7", "quantity": "3", "cost": "700", "price": "1499.99"},
        {"id": 802, "product_id": 22, "sku": None, "quantity": "1", "cost": "40.5", "price": "99"},
    ],
    "categories": [
        {"id": 41, "store_id": 63, "name": "Rings", "parent_id": 0, "sort_order": "1", "level": "0"},
        {"id": 42, "store_id": 63, "name": " Gold Rings ", "parent_id": 41, "sort_order": "2", "level": "1"},
        {"id": 43, "store_id": 63, "name": "Watches", "type": "product_category", "parent_id": 45},
        {"id": 44, "store_id": 63, "name": "Old", "deleted_at": "2022-01-01 00:00:00"},
        {"id": 45, "store_id": 63, "name": "Luxury", "parent_id": None},
        {"id": 46, "store_id": 64, "name": "Rings"},
    ],
    "transactions": [
        {"id": 301, "store_id": 63, "customer_id": 1, "status_id": 4, "is_in_house": 1,
         "preliminary_offer": "250", "final_offer": "300.5", "est_value": "$1,000", "bin_location": " B-12 ",
         "private_note": "Gold lot", "created_at": "2024-02-01 12:00:00"},
        {"id": 302, "store_id": 63, "customer_id": 999, "status_id": 99, "is_in_house": 0},
        {"id": 303, "store_id": 63, "customer_id": 1, "status_id": 8, "deleted_at": "2024-03-01 00:00:00"},
        {"id": 304, "store_id": 64, "customer_id": 6, "status_id": 4},
    ],
    "memos": [
        {"id": 401, "store_id": 63, "invoice_number": "M-100", "vendor_id": 4, "status": "Sent to Vendor",
         "tenure": None, "tenor": "60", "total": "500", "charge_taxes": 1},
        {"id": 402, "store_id": 63, "invoice_number": None, "vendor_id": None, "status": None},
        {"id": 403, "store_id": 64, "invoice_number": "M-200", "status": "paid"},
    ],
}


@pytest.fixture
def legacy_engine(tmp_path):
    """Legacy database seeded with LEGACY_ROWS."""
    engine = sa.create_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    metadata = _legacy_metadata()
    metadata.create_all(engine)
    with engine.begin() as conn:
        for name, rows in LEGACY_ROWS.items():
            table = metadata.tables[name]
            # Fill omitted columns so executemany sees uniform rows
            conn.execute(table.insert(), [{c.name: row.get(c.name) for c in table.columns} for row in rows])
    yield engine
    engine.dispose()


@pytest.fixture
def destination_engine(tmp_path):
    """Empty destination database holding store 7."""
    engine = sa.create_engine(f"sqlite:///{tmp_path / 'destination.db'}")
    metadata = _destination_metadata()
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(metadata.tables["stores"].insert(), [{"id": TARGET_STORE, "name": "New Store"}])
    yield engine
    engine.dispose()


@pytest.fixture
def map_dir(tmp_path):
    return tmp_path / "maps"


@pytest.fixture
def config(map_dir):
    return MigrationConfig(map_dir=str(map_dir), chunk_size=2)


@pytest.fixture
def scope():
    return MigrationScope(source=LEGACY_STORE, target=TARGET_STORE)


@pytest.fixture
def orchestrator(config, legacy_engine, destination_engine):
    return MigrationOrchestrator(
        config,
        source_engine=legacy_engine,
        destination_engine=destination_engine,
    )


@pytest.fixture
def count_rows(destination_engine):
    """Row count of a destination table."""
    def _count(table_name: str) -> int:
        with destination_engine.connect() as conn:
            return conn.execute(sa.text(f"SELECT COUNT(*) FROM {table_name}")).scalar()
    return _count


@pytest.fixture
def fetch_rows(destination_engine):
    """All rows of a destination table as dicts, ordered by id."""
    def _fetch(table_name: str):
        with destination_engine.connect() as conn:
            result = conn.execute(sa.text(f"SELECT * FROM {table_name} ORDER BY id"))
            return [dict(row) for row in result.mappings()]
    return _fetch
