"""Service layer for the migration engine."""

from .identity_map import (
    IdentityMap,
    IdentityMapper,
    BaseMapStore,
    JsonFileMapStore,
    TableMapStore,
)
from .transformer import FieldTransformer, TransformContext

__all__ = [
    "IdentityMap",
    "IdentityMapper",
    "BaseMapStore",
    "JsonFileMapStore",
    "TableMapStore",
    "FieldTransformer",
    "TransformContext",
]
