"""Identity map audit endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_config
from ..models import IdentityMapInfo, IdentityMapListResponse, IdentityMapResponse
from ...entities import get_entity
from ...errors import UnknownEntity
from ...models.migration import MigrationConfig
from ...orchestrator import MigrationOrchestrator

router = APIRouter()


@router.get("", response_model=IdentityMapListResponse)
async def list_identity_maps(config: MigrationConfig = Depends(get_config)):
    """List persisted identity maps."""
    maps = [IdentityMapInfo(**m) for m in MigrationOrchestrator(config).mapper.list_maps()]
    return IdentityMapListResponse(maps=maps, total=len(maps))


@router.get("/{entity}/{scope}", response_model=IdentityMapResponse)
async def get_identity_map(entity: str, scope: str, config: MigrationConfig = Depends(get_config)):
    """Get one persisted map."""
    try:
        get_entity(entity)
    except UnknownEntity as e:
        raise HTTPException(status_code=404, detail=str(e))

    identity_map = MigrationOrchestrator(config).mapper.store.load(entity, scope)
    if identity_map is None:
        raise HTTPException(status_code=404, detail="Identity map not found")

    return IdentityMapResponse(
        entity=entity,
        scope=scope,
        size=len(identity_map),
        entries=identity_map.to_dict(),
    )
