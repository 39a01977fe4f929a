"""Shared FastAPI dependencies."""

from ..models.migration import MigrationConfig


def get_config() -> MigrationConfig:
    """Connection settings from the environment; override in tests."""
    return MigrationConfig.from_env()
