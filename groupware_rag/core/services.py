"""
Wiring of the store, queue, pipeline and retrieval engine from configuration.
"""

from dataclasses import dataclass
from typing import Optional

from . import config
from .document_store import DocumentStore
from .ingest_queue import IngestQueue
from .pipeline import IngestPipeline
from .retrieval import RetrievalEngine
from ..adapters.registry import AdapterRegistry, build_default_registry
from ..agents.summarizer import create_summarizer
from ..vector.embeddings import IEmbeddingProvider


@dataclass
class Services:
    store: DocumentStore
    queue: IngestQueue
    pipeline: IngestPipeline
    engine: RetrievalEngine
    settings: config.ProviderSettings


def build_services(db_path: Optional[str] = None, source_db_path: Optional[str] = None,
                   settings: Optional[config.ProviderSettings] = None,
                   registry: Optional[AdapterRegistry] = None,
                   embedder: Optional[IEmbeddingProvider] = None) -> Services:
    """Build the service graph.

    Providers are created lazily by the pipeline and engine, so missing
    credentials only fail the operations that need them.
    """
    db_path = db_path or config.DB_PATH
    if settings is None:
        settings = config.settings_from_env()
    if registry is None:
        registry = build_default_registry(source_db_path or config.SOURCE_DB_PATH)

    store = DocumentStore(db_path)
    queue = IngestQueue(db_path)
    pipeline = IngestPipeline(store, queue, registry, embedder=embedder, settings=settings)
    engine = RetrievalEngine(store, embedder=embedder, summarizer=create_summarizer(settings), settings=settings)
    return Services(store=store, queue=queue, pipeline=pipeline, engine=engine, settings=settings)
