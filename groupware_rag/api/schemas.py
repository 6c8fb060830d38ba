"""
Request and response models for the HTTP API.
"""

from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    source_apps: List[str]
    scheduler: Dict[str, Any] = {}


class SearchRequest(BaseModel):
    query: str
    source_app: Optional[str] = None
    use_summary: bool = True

    @field_validator('source_app')
    @classmethod
    def blank_source_app_means_all(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class SearchHit(BaseModel):
    doc_id: str
    source_app: str
    score: float
    text: str
    metadata: Dict[str, Any] = {}
    updated_at: Optional[datetime] = None


class SearchResponse(BaseModel):
    query: str
    results: List[SearchHit]
    summary: Optional[str] = None


class StatsResponse(BaseModel):
    total: int
    by_app: Dict[str, int]
    source_counts: Dict[str, int] = {}


class HookResponse(BaseModel):
    queued: bool
    queue_id: Optional[int] = None
    source_app: str
    item_id: str
    action: str


class DrainRequest(BaseModel):
    batch_size: int = 10
    collapse_duplicates: bool = True

    @field_validator('batch_size')
    @classmethod
    def batch_size_in_range(cls, v):
        if v < 1 or v > 1000:
            raise ValueError('batch_size must be between 1 and 1000')
        return v


class DrainError(BaseModel):
    queue_id: int
    message: str


class DrainResponse(BaseModel):
    claimed: int
    completed: int
    failed: int
    skipped: int
    superseded: int
    errors: List[DrainError] = []


class QueueItemResponse(BaseModel):
    queue_id: int
    source_app: str
    item_id: str
    action: str
    status: str
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None


class QueueStatusResponse(BaseModel):
    counts: Dict[str, int]


class QueueFailedResponse(BaseModel):
    items: List[QueueItemResponse]


class RequeueResponse(BaseModel):
    requeued: int


class IndexResponse(BaseModel):
    source_app: str
    indexed: int
    skipped: int
    errors: List[str] = []
    success: bool


class ClearResponse(BaseModel):
    removed: int


class ErrorResponse(BaseModel):
    error: str
    detail: str


class ProviderStatus(BaseModel):
    provider: str
    api_key_set: bool
    api_key_chars: int
    api_url: Optional[str] = None
    model: str


class ConfigStatusResponse(BaseModel):
    embedding: ProviderStatus
    llm: ProviderStatus


class ConnectionTestResponse(BaseModel):
    success: bool
    dimension: Optional[int] = None
    sample: List[float] = []
    reason: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[str] = None
