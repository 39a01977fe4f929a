"""
Registered entity mappings.

Each module defines a ``MAPPING`` and, when it needs row-aware logic, a
``TRANSFORMS`` dict of custom transform functions referenced by name from
its field mappings.
"""

from typing import Dict, Iterable, List, Optional

from ..errors import UnknownEntity
from ..models.schema import EntityMapping
from ..services.transformer import FieldTransformer
from . import (
    sales_channels,
    vendors,
    customers,
    products,
    product_attributes,
    orders,
    order_items,
    payments,
    repairs,
    tags,
    taggables,
    inventory,
    categories,
    transactions,
    memos,
)

_MODULES = [
    sales_channels,
    vendors,
    customers,
    products,
    product_attributes,
    orders,
    order_items,
    payments,
    repairs,
    tags,
    taggables,
    inventory,
    categories,
    transactions,
    memos,
]

ENTITIES: Dict[str, EntityMapping] = {module.MAPPING.name: module.MAPPING for module in _MODULES}


def entity_names() -> List[str]:
    return list(ENTITIES)


def get_entity(name: str) -> EntityMapping:
    """
    Look up a registered mapping.

    Raises:
        UnknownEntity: no mapping is registered under ``name``
    """
    try:
        return ENTITIES[name]
    except KeyError:
        raise UnknownEntity(
            f"Unknown entity {name!r}; expected one of: {', '.join(ENTITIES)}"
        ) from None


def dependency_order(names: Optional[Iterable[str]] = None) -> List[str]:
    """
    Order entities so every entity follows the entities it depends on.

    Ties keep registration order. Dependencies outside ``names`` are
    assumed to have been migrated already.

    Raises:
        UnknownEntity: a name is not registered
        ValueError: the dependencies form a cycle
    """
    selected = list(ENTITIES) if names is None else [get_entity(n).name for n in names]
    wanted = set(selected)
    remaining = [n for n in ENTITIES if n in wanted]
    ordered: List[str] = []

    while remaining:
        ready = [
            n for n in remaining
            if all(dep in ordered or dep not in wanted for dep in ENTITIES[n].dependencies)
        ]
        if not ready:
            raise ValueError(f"Circular entity dependencies among: {', '.join(remaining)}")
        ordered.append(ready[0])
        remaining.remove(ready[0])

    return ordered


def build_transformer() -> FieldTransformer:
    """A FieldTransformer with every entity's custom transforms registered."""
    transformer = FieldTransformer()
    for module in _MODULES:
        for name, func in getattr(module, "TRANSFORMS", {}).items():
            transformer.register_transform(name, func)
    return transformer


__all__ = [
    "ENTITIES",
    "entity_names",
    "get_entity",
    "dependency_order",
    "build_transformer",
]
