"""Migration run endpoints."""

import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from ..deps import get_config
from ..models import RunCreate, RunListResponse, RunRequestStatusEnum, RunResponse
from ..storage import RunConflict, run_storage
from ...entities import get_entity
from ...errors import UnknownEntity
from ...models.migration import MigrationConfig, MigrationScope, RunMode
from ...orchestrator import MigrationOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=RunResponse, status_code=202)
async def create_run(
    data: RunCreate,
    background_tasks: BackgroundTasks,
    config: MigrationConfig = Depends(get_config)
):
    """Queue a run of one entity, or of the whole pipeline with entity "all"."""
    try:
        names = data.only if data.entity == "all" else [data.entity]
        for name in names:
            get_entity(name)
    except UnknownEntity as e:
        raise HTTPException(status_code=404, detail=str(e))

    try:
        run = run_storage.create(data)
    except RunConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    background_tasks.add_task(run_migration_task, run.id, config)
    return run


@router.get("", response_model=RunListResponse)
async def list_runs():
    """List runs, newest first."""
    runs = run_storage.list_all()
    return RunListResponse(runs=runs, total=len(runs))


@router.get("/{run_id}", response_model=RunResponse)
async def get_run(run_id: str):
    """Get a specific run."""
    run = run_storage.get(run_id)
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")
    return run


def run_migration_task(run_id: str, config: MigrationConfig) -> None:
    """Background task executing a queued run."""
    run = run_storage.get(run_id)
    if not run:
        return

    request = run.request
    run_storage.update_status(run_id, RunRequestStatusEnum.RUNNING)

    orchestrator = MigrationOrchestrator(
        config,
        reports=[lambda summary: run_storage.add_summary(run_id, summary)],
    )
    scope = MigrationScope(source=request.scope, target=request.target_scope)
    mode = RunMode.from_flags(dry_run=request.dry_run, force=request.force)

    try:
        if request.entity == "all":
            summaries = orchestrator.run_all(
                scope, mode=mode, limit=request.limit, entities=request.only or None
            )
            failed = [s for s in summaries if not s.succeeded]
            if failed:
                run_storage.update_status(run_id, RunRequestStatusEnum.FAILED, failed[-1].error)
                return
        else:
            orchestrator.run_entity(request.entity, scope, mode=mode, limit=request.limit)
    except Exception as e:
        logger.error(f"Run {run_id} failed: {e}")
        run_storage.update_status(run_id, RunRequestStatusEnum.FAILED, str(e))
        return

    run_storage.update_status(run_id, RunRequestStatusEnum.COMPLETED)
