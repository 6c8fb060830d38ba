"""
HTTP API over the retrieval index.

Run with: uvicorn groupware_rag.api.main:create_app --factory
"""

from typing import Any, Mapping, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .schemas import (
    ClearResponse,
    ConfigStatusResponse,
    ConnectionTestResponse,
    DrainRequest,
    DrainResponse,
    ErrorResponse,
    HealthResponse,
    HookResponse,
    IndexResponse,
    QueueFailedResponse,
    QueueItemResponse,
    QueueStatusResponse,
    RequeueResponse,
    SearchHit,
    SearchRequest,
    SearchResponse,
    StatsResponse,
)
from ..core import heartbeat
from ..core.config import VERSION, configuration_status, debug_enabled
from ..core.db import health_check
from ..core.errors import (
    CodecError,
    ConfigurationError,
    EmbeddingProviderError,
    RagError,
    StorageError,
    SummarizerProviderError,
    UnknownSourceAppError,
    ValidationError,
)
from ..core.hooks import on_record_changed, on_record_deleted
from ..core.services import Services, build_services
from ..util.logging import logger
from ..vector.embeddings import check_embedding_connection
from ..vector.types import ACTION_DELETE, ACTION_INDEX

# Error class -> HTTP status; the most specific registered class wins
ERROR_STATUS = (
    (ValidationError, 400),
    (UnknownSourceAppError, 404),
    (ConfigurationError, 503),
    (EmbeddingProviderError, 502),
    (SummarizerProviderError, 502),
    (StorageError, 500),
    (CodecError, 500),
    (RagError, 500),
)


def _extract_user_id(headers: Optional[Mapping[str, Any]] = None) -> str:
    """Owner id from the X-User-Id header, or 'default'."""
    if headers and 'x-user-id' in headers:
        return headers['x-user-id'] or 'default'
    return 'default'


def _error_handler(status_code: int):
    def handler(request: Request, exc: RagError):
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc}")
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(error=type(exc).__name__, detail=str(exc)).model_dump(),
        )
    return handler


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Build the FastAPI application around a service graph."""
    services = services or build_services()

    app = FastAPI(
        title="Groupware RAG API",
        version=VERSION,
        description="Semantic search over contacts, calendar events and infolog entries",
        docs_url="/docs" if debug_enabled() else None,
        redoc_url="/redoc" if debug_enabled() else None
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for error_class, status_code in ERROR_STATUS:
        app.add_exception_handler(error_class, _error_handler(status_code))

    @app.get("/health", response_model=HealthResponse)
    def health_check_endpoint():
        """Check system health."""
        db_health = health_check(services.store.db_path)
        return HealthResponse(
            status="healthy" if db_health else "unhealthy",
            version=VERSION,
            db_health=db_health,
            source_apps=services.pipeline.registry.source_apps(),
            scheduler=heartbeat.get_status(),
        )

    @app.post("/search", response_model=SearchResponse)
    def search_endpoint(req: SearchRequest, request: Request):
        """Answer a query from the caller's indexed records."""
        owner_id = _extract_user_id(request.headers)
        result = services.engine.answer(owner_id, req.query, source_app=req.source_app,
                                        use_summary=req.use_summary)
        return SearchResponse(
            query=result.query,
            results=[
                SearchHit(
                    doc_id=hit.doc_id,
                    source_app=hit.source_app,
                    score=hit.score,
                    text=hit.text,
                    metadata=hit.metadata,
                    updated_at=hit.document.updated_at,
                )
                for hit in result.documents
            ],
            summary=result.summary,
        )

    @app.get("/config/status", response_model=ConfigStatusResponse)
    def config_status_endpoint():
        """Provider settings overview; API keys are reported by length only."""
        return ConfigStatusResponse(**configuration_status(services.settings))

    @app.post("/config/test", response_model=ConnectionTestResponse)
    def config_test_endpoint():
        """Send one test embedding request to the configured provider."""
        result = check_embedding_connection(lambda: services.pipeline.embedder)
        if not result["success"]:
            logger.warning(f"Embedding connection test failed ({result['reason']}): {result['error']}")
        return ConnectionTestResponse(**result)

    @app.get("/stats", response_model=StatsResponse)
    def stats_endpoint(request: Request):
        owner_id = _extract_user_id(request.headers)
        stats = services.engine.statistics(owner_id)
        return StatsResponse(
            total=stats["total"],
            by_app=stats["by_app"],
            source_counts=services.pipeline.source_counts(owner_id),
        )

    @app.post("/hooks/{source_app}/{item_id}", response_model=HookResponse)
    def hook_endpoint(source_app: str, item_id: str, request: Request, deleted: bool = False):
        """Record change notification from the host."""
        if source_app not in services.pipeline.registry:
            raise HTTPException(status_code=404, detail=f"Unknown source app: {source_app}")

        owner_id = _extract_user_id(request.headers)
        if deleted:
            queue_id = on_record_deleted(services.queue, owner_id, source_app, item_id)
        else:
            queue_id = on_record_changed(services.queue, owner_id, source_app, item_id)

        return HookResponse(
            queued=True,
            queue_id=queue_id,
            source_app=source_app,
            item_id=item_id,
            action=ACTION_DELETE if deleted else ACTION_INDEX,
        )

    @app.post("/queue/drain", response_model=DrainResponse)
    def drain_endpoint(request: Request, req: Optional[DrainRequest] = None):
        """Drain one batch of the caller's pending queue items."""
        req = req or DrainRequest()
        owner_id = _extract_user_id(request.headers)
        report = services.pipeline.drain(
            batch_size=req.batch_size,
            owner_id=owner_id,
            collapse_duplicates=req.collapse_duplicates,
        )
        return DrainResponse(**report.to_dict())

    @app.get("/queue/status", response_model=QueueStatusResponse)
    def queue_status_endpoint(request: Request):
        owner_id = _extract_user_id(request.headers)
        return QueueStatusResponse(counts=services.queue.count_by_status(owner_id))

    @app.get("/queue/failed", response_model=QueueFailedResponse)
    def queue_failed_endpoint(request: Request, limit: int = 100):
        owner_id = _extract_user_id(request.headers)
        items = services.queue.list_failed(owner_id, limit=limit)
        return QueueFailedResponse(items=[
            QueueItemResponse(
                queue_id=item.queue_id,
                source_app=item.source_app,
                item_id=item.item_id,
                action=item.action,
                status=item.status,
                error_message=item.error_message,
                created_at=item.created_at,
                processed_at=item.processed_at,
            )
            for item in items
        ])

    @app.post("/queue/requeue-failed", response_model=RequeueResponse)
    def requeue_failed_endpoint(request: Request):
        owner_id = _extract_user_id(request.headers)
        return RequeueResponse(requeued=services.queue.requeue_failed(owner_id))

    @app.post("/index/{source_app}", response_model=IndexResponse)
    def reindex_endpoint(source_app: str, request: Request, limit: int = 0):
        """Rebuild the caller's documents for one source app."""
        owner_id = _extract_user_id(request.headers)
        report = services.pipeline.reindex_source(owner_id, source_app, limit=limit)
        return IndexResponse(**report.to_dict())

    @app.delete("/index", response_model=ClearResponse)
    def clear_index_endpoint(request: Request):
        """Delete all of the caller's indexed documents."""
        owner_id = _extract_user_id(request.headers)
        return ClearResponse(removed=services.store.clear_all(owner_id))

    return app
