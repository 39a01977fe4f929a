"""
Legacy Migrator

An idempotent migration engine that moves a legacy point-of-sale store
(vendors, customers, products, orders, payments, repairs, tags, inventory)
into the redesigned schema.

Supports:
- Reading legacy tables from a database or from CSV/JSON exports
- Re-runnable migrations backed by persisted source-to-destination id maps
- Dry runs that compute every decision without writing
- Forced overwrites of records whose tracked fields changed
"""

__version__ = "0.1.0"
