"""Source readers for legacy data."""

from .base import BaseSourceReader
from .sql_reader import SQLSourceReader
from .file_reader import FileSourceReader

__all__ = [
    "BaseSourceReader",
    "SQLSourceReader",
    "FileSourceReader",
]
