"""Entity listing endpoints."""

from fastapi import APIRouter, HTTPException

from ..models import EntityListResponse, EntityResponse
from ...entities import ENTITIES, dependency_order, get_entity
from ...errors import UnknownEntity
from ...models.schema import EntityMapping

router = APIRouter()


def _to_response(mapping: EntityMapping) -> EntityResponse:
    return EntityResponse(
        name=mapping.name,
        source_table=mapping.source_table,
        target_table=mapping.target_table,
        description=mapping.description,
        natural_key=mapping.natural_key,
        dependencies=mapping.dependencies,
    )


@router.get("", response_model=EntityListResponse)
async def list_entities():
    """List entities in pipeline order."""
    entities = [_to_response(ENTITIES[name]) for name in dependency_order()]
    return EntityListResponse(entities=entities, total=len(entities))


@router.get("/{entity}")
async def get_entity_mapping(entity: str):
    """Full field mapping of one entity."""
    try:
        return get_entity(entity).to_dict()
    except UnknownEntity as e:
        raise HTTPException(status_code=404, detail=str(e))
