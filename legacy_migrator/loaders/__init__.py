"""Upsert executors for the destination database."""

from .base import BaseUpsertExecutor
from .sql_loader import SQLUpsertExecutor, check_target_scope

__all__ = [
    "BaseUpsertExecutor",
    "SQLUpsertExecutor",
    "check_target_scope",
]
