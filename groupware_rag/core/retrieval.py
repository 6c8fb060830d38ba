"""
Query answering: embed the query, search the owner's documents, and
optionally summarize the hits.
"""

from typing import Any, Dict, Optional

from .config import SEARCH_TOP_K, ProviderSettings, settings_from_env
from .document_store import DocumentStore
from .errors import ValidationError
from ..agents.summarizer import ISummarizer, build_extractive_summary
from ..util.logging import logger
from ..vector.embeddings import IEmbeddingProvider, create_embedding_provider
from ..vector.types import RetrievalResult


class RetrievalEngine:
    """Answers an owner's question from their indexed documents."""

    def __init__(self, store: DocumentStore, embedder: Optional[IEmbeddingProvider] = None,
                 summarizer: Optional[ISummarizer] = None,
                 settings: Optional[ProviderSettings] = None):
        self.store = store
        self.summarizer = summarizer
        self._embedder = embedder
        self._settings = settings

    @property
    def embedder(self) -> IEmbeddingProvider:
        if self._embedder is None:
            settings = self._settings if self._settings is not None else settings_from_env()
            self._embedder = create_embedding_provider(settings)
        return self._embedder

    def answer(self, owner_id: str, query: str, source_app: Optional[str] = None,
               use_summary: bool = True) -> RetrievalResult:
        """Retrieve the top documents for query and, if asked, a summary of them.

        Embedding failures propagate. Summarizer failures never do: the
        extractive summary is used instead.
        """
        if query is None or not query.strip():
            raise ValidationError("Query must not be empty")
        query = query.strip()

        query_vector = self.embedder.embed_text(query)
        documents = self.store.search(owner_id, query_vector, source_app=source_app, top_k=SEARCH_TOP_K)

        summary = None
        if use_summary and documents:
            summary = self._summarize(query, documents)

        logger.log_operation("retrieval.answer", "success", {
            "owner_id": owner_id,
            "source_app": source_app or "*",
            "query_chars": len(query),
            "results": len(documents),
            "summary": summary is not None,
        })
        return RetrievalResult(query=query, documents=documents, summary=summary)

    def _summarize(self, query, documents) -> str:
        if self.summarizer is None:
            return build_extractive_summary(query, documents)
        try:
            return self.summarizer.summarize(query, documents)
        except Exception as e:
            logger.warning(f"Summarizer failed, using extractive summary: {type(e).__name__}: {e}")
            return build_extractive_summary(query, documents)

    def statistics(self, owner_id: str) -> Dict[str, Any]:
        """Indexed document totals for the owner."""
        by_app = self.store.count_by_source_app(owner_id)
        return {"total": sum(by_app.values()), "by_app": by_app}
