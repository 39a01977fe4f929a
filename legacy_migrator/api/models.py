"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime


class RunRequestStatusEnum(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# Request Models
class RunCreate(BaseModel):
    entity: str  # Entity name or "all"
    scope: Union[int, str]
    target_scope: Optional[Union[int, str]] = None
    dry_run: bool = True
    force: bool = False
    limit: int = Field(default=0, ge=0)
    only: List[str] = Field(default_factory=list)  # Subset when entity is "all"


class PreviewRequest(BaseModel):
    rows: List[Dict[str, Any]]
    scope: Optional[Union[int, str]] = None
    target_scope: Optional[Union[int, str]] = None


# Response Models
class CountersResponse(BaseModel):
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    rows_seen: int = 0
    warnings: List[str] = Field(default_factory=list)


class RunSummaryResponse(BaseModel):
    id: str
    entity: str
    scope: Dict[str, Any]
    mode: str
    dry_run: bool
    status: str
    counters: CountersResponse
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    error: Optional[str] = None
    map_size: int = 0
    committed: bool = False


class RunResponse(BaseModel):
    id: str
    request: RunCreate
    status: RunRequestStatusEnum
    created_at: datetime
    completed_at: Optional[datetime] = None
    summaries: List[RunSummaryResponse] = Field(default_factory=list)
    error: Optional[str] = None


class RunListResponse(BaseModel):
    runs: List[RunResponse]
    total: int


class EntityResponse(BaseModel):
    name: str
    source_table: str
    target_table: str
    description: str = ""
    natural_key: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)


class EntityListResponse(BaseModel):
    entities: List[EntityResponse]
    total: int


class IdentityMapInfo(BaseModel):
    entity: str
    scope: str
    size: int
    location: str


class IdentityMapListResponse(BaseModel):
    maps: List[IdentityMapInfo]
    total: int


class IdentityMapResponse(BaseModel):
    entity: str
    scope: str
    size: int
    entries: Dict[str, int]


class PreviewResultItem(BaseModel):
    outcome: str  # "transformed", "rejected" or "skipped"
    row: Optional[Dict[str, Any]] = None
    message: Optional[str] = None


class PreviewResponse(BaseModel):
    entity: str
    results: List[PreviewResultItem]
