"""
Ingestion pipeline: drains the ingest queue into the document store and
rebuilds a source app's documents in bulk.

Queue items are isolated from each other; a failing item is marked failed
with its error text and the batch continues. A ConfigurationError is the
exception, since every later item would fail the same way: the item is
marked failed and the drain is aborted by re-raising.
"""

import time
from typing import Dict, Optional

from .config import ProviderSettings, settings_from_env
from .document_store import DocumentStore
from .errors import CodecError, ConfigurationError, StorageError
from .ingest_queue import IngestQueue
from ..adapters.registry import AdapterRegistry
from ..util.logging import logger
from ..vector.embeddings import IEmbeddingProvider, create_embedding_provider
from ..vector.types import ACTION_DELETE, DrainReport, IndexReport, QueueItem


class IngestPipeline:
    """Turns queue items into document upserts and deletes."""

    def __init__(self, store: DocumentStore, queue: IngestQueue, registry: AdapterRegistry,
                 embedder: Optional[IEmbeddingProvider] = None,
                 settings: Optional[ProviderSettings] = None):
        self.store = store
        self.queue = queue
        self.registry = registry
        self._embedder = embedder
        self._settings = settings

    @property
    def embedder(self) -> IEmbeddingProvider:
        """Embedding provider, built from settings on first use.

        Building lazily means missing credentials surface as a
        ConfigurationError on the first item that needs an embedding.
        """
        if self._embedder is None:
            settings = self._settings if self._settings is not None else settings_from_env()
            self._embedder = create_embedding_provider(settings)
        return self._embedder

    def drain(self, batch_size: int = 10, owner_id: Optional[str] = None,
              collapse_duplicates: bool = True) -> DrainReport:
        """Process up to batch_size pending items in queue order."""
        start_time = time.time()
        report = DrainReport()

        if collapse_duplicates:
            report.superseded = self.queue.supersede_duplicates(owner_id)

        for item in self.queue.fetch_pending(batch_size, owner_id):
            if not self.queue.claim(item.queue_id):
                # Another worker got there first
                report.skipped += 1
                continue
            report.claimed += 1

            try:
                self.process_item(item)
            except ConfigurationError as e:
                self._record_failure(report, item, e)
                logger.log_drain(report.to_dict(), (time.time() - start_time) * 1000)
                raise
            except Exception as e:
                self._record_failure(report, item, e)
            else:
                self.queue.mark_completed(item.queue_id)
                report.completed += 1

        logger.log_drain(report.to_dict(), (time.time() - start_time) * 1000)
        return report

    def _record_failure(self, report: DrainReport, item: QueueItem, error: Exception):
        message = str(error) or type(error).__name__
        logger.error(
            f"Queue item {item.queue_id} ({item.source_app}/{item.item_id}, {item.action}) failed: "
            f"{type(error).__name__}: {message}"
        )
        self.queue.mark_failed(item.queue_id, message)
        report.failed += 1
        report.errors.append((item.queue_id, message))

    def process_item(self, item: QueueItem):
        """Apply one claimed queue item to the document store."""
        if item.action == ACTION_DELETE:
            self.store.delete(item.owner_id, item.item_id, item.source_app)
            return

        adapter = self.registry.get(item.source_app)
        raw = adapter.fetch(item.owner_id, item.item_id)
        if raw is None or adapter.is_deleted(raw):
            # Source record is gone, so the index entry goes too
            self.store.delete(item.owner_id, item.item_id, item.source_app)
            return

        adapted = adapter.adapt(raw)
        if adapted is None:
            # Nothing left to index; drop any stale document
            self.store.delete(item.owner_id, item.item_id, item.source_app)
            return

        vector = self.embedder.embed_text(adapted.text)
        self.store.upsert(
            item.owner_id, item.item_id, item.source_app,
            adapted.text, vector, adapted.metadata,
        )

    def reindex_source(self, owner_id: str, source_app: str, limit: int = 0) -> IndexReport:
        """Embed and upsert every live record the owner has in one source app."""
        adapter = self.registry.get(source_app)
        report = IndexReport(source_app=source_app)
        start_time = time.time()

        for raw in adapter.iter_records(owner_id, limit):
            if adapter.is_deleted(raw):
                report.skipped += 1
                continue

            adapted = adapter.adapt(raw)
            if adapted is None:
                report.skipped += 1
                continue

            try:
                vector = self.embedder.embed_text(adapted.text)
                self.store.upsert(owner_id, adapted.item_id, source_app, adapted.text, vector, adapted.metadata)
                report.indexed += 1
            except (ConfigurationError, StorageError, CodecError):
                # Store-wide failures abort the rebuild
                raise
            except Exception as e:
                report.errors.append(f"{source_app} {adapted.item_id}: {e}")
                logger.error(f"Reindex of {source_app} item {adapted.item_id} failed: {e}")

        logger.log_operation(
            "index.reindex_source",
            "success" if report.success else "partial",
            {**report.to_dict(), "owner_id": owner_id, "duration_ms": round((time.time() - start_time) * 1000, 2)},
        )
        return report

    def source_counts(self, owner_id: str) -> Dict[str, int]:
        """Live source records per registered source app."""
        return {source_app: self.registry.get(source_app).count(owner_id)
                for source_app in self.registry.source_apps()}
