"""In-memory registry of API-triggered runs."""

import threading
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from .models import RunCreate, RunRequestStatusEnum, RunResponse, RunSummaryResponse
from ..models.migration import MigrationScope, RunSummary

ACTIVE_STATUSES = (RunRequestStatusEnum.PENDING, RunRequestStatusEnum.RUNNING)


class RunConflict(Exception):
    """An overlapping run for the same scope is still pending or running."""

    def __init__(self, run: RunResponse):
        self.run = run
        super().__init__(
            f"Run {run.id} ({run.request.entity}, scope {run.request.scope}) is still {run.status.value}"
        )


def _overlaps(first: RunCreate, second: RunCreate) -> bool:
    first_scope = MigrationScope(source=first.scope, target=first.target_scope)
    second_scope = MigrationScope(source=second.scope, target=second.target_scope)
    if first_scope.key != second_scope.key:
        return False
    return "all" in (first.entity, second.entity) or first.entity == second.entity


class RunStorage:
    """Thread-safe store of run requests; lost on restart."""

    def __init__(self):
        self._runs: Dict[str, RunResponse] = {}
        self._lock = threading.Lock()

    def create(self, data: RunCreate) -> RunResponse:
        """
        Register a pending run.

        Raises:
            RunConflict: a run over the same entity and scope is pending or running
        """
        run = RunResponse(
            id=str(uuid.uuid4()),
            request=data,
            status=RunRequestStatusEnum.PENDING,
            created_at=datetime.utcnow(),
        )
        with self._lock:
            for existing in self._runs.values():
                if existing.status in ACTIVE_STATUSES and _overlaps(existing.request, data):
                    raise RunConflict(existing)
            self._runs[run.id] = run
        return run

    def get(self, run_id: str) -> Optional[RunResponse]:
        with self._lock:
            return self._runs.get(run_id)

    def list_all(self) -> List[RunResponse]:
        with self._lock:
            return sorted(self._runs.values(), key=lambda r: r.created_at, reverse=True)

    def update_status(self, run_id: str, status: RunRequestStatusEnum, error: Optional[str] = None) -> None:
        with self._lock:
            run = self._runs.get(run_id)
            if not run:
                return
            run.status = status
            if error:
                run.error = error
            if status in (RunRequestStatusEnum.COMPLETED, RunRequestStatusEnum.FAILED):
                run.completed_at = datetime.utcnow()

    def add_summary(self, run_id: str, summary: RunSummary) -> None:
        with self._lock:
            run = self._runs.get(run_id)
            if run:
                run.summaries.append(RunSummaryResponse(**summary.to_dict()))

    def clear(self) -> None:
        with self._lock:
            self._runs.clear()


run_storage = RunStorage()
