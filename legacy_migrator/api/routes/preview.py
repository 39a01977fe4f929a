"""Transformation preview endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_config
from ..models import PreviewRequest, PreviewResponse, PreviewResultItem
from ...errors import UnknownEntity
from ...models.migration import MigrationConfig, MigrationScope
from ...orchestrator import MigrationOrchestrator

router = APIRouter()


@router.post("/{entity}", response_model=PreviewResponse)
async def preview_transform(
    entity: str,
    data: PreviewRequest,
    config: MigrationConfig = Depends(get_config)
):
    """Transform sample legacy rows without writing anything."""
    scope = None
    if data.scope is not None:
        scope = MigrationScope(source=data.scope, target=data.target_scope)

    try:
        results = MigrationOrchestrator(config).preview(entity, data.rows, scope)
    except UnknownEntity as e:
        raise HTTPException(status_code=404, detail=str(e))

    return PreviewResponse(
        entity=entity,
        results=[PreviewResultItem(**r) for r in results],
    )
