"""
Tests for query answering over the document store.
"""

from unittest.mock import MagicMock, patch

import pytest

from groupware_rag.core.config import ProviderSettings
from groupware_rag.core.document_store import DocumentStore
from groupware_rag.core.errors import EmbeddingProviderError, SummarizerProviderError, ValidationError
from groupware_rag.core.retrieval import RetrievalEngine
from groupware_rag.vector.embeddings import HttpEmbeddingProvider


@pytest.fixture
def store(tmp_path):
    store = DocumentStore(str(tmp_path / "rag.db"))
    store.upsert("alice", "A", "addressbook", "Contact: Ann Lee", [1.0, 0.0], {"name": "Ann Lee"})
    store.upsert("alice", "B", "calendar", "Calendar Event: Board meeting", [0.0, 1.0])
    return store


@pytest.fixture
def embedder():
    embedder = MagicMock()
    embedder.embed_text.return_value = [1.0, 0.0]
    return embedder


class TestAnswer:

    def test_returns_ranked_documents(self, store, embedder):
        engine = RetrievalEngine(store, embedder=embedder)

        result = engine.answer("alice", "Ann", use_summary=False)

        assert result.query == "Ann"
        assert [d.doc_id for d in result.documents] == ["A", "B"]
        assert result.documents[0].score == 1.0
        assert result.summary is None

    def test_summarizer_used(self, store, embedder):
        summarizer = MagicMock()
        summarizer.summarize.return_value = "Ann Lee is a contact."
        engine = RetrievalEngine(store, embedder=embedder, summarizer=summarizer)

        result = engine.answer("alice", "Who is Ann?")

        assert result.summary == "Ann Lee is a contact."
        query, documents = summarizer.summarize.call_args.args
        assert query == "Who is Ann?"
        assert len(documents) == 2

    def test_summarizer_failure_falls_back(self, store, embedder):
        summarizer = MagicMock()
        summarizer.summarize.side_effect = SummarizerProviderError("Summarizer provider API error: HTTP 500")
        engine = RetrievalEngine(store, embedder=embedder, summarizer=summarizer)

        result = engine.answer("alice", "Who is Ann?")

        assert len(result.documents) == 2
        assert result.summary.startswith("Based on the available data:")
        assert "[addressbook] Contact: Ann Lee" in result.summary

    def test_no_summarizer_uses_extractive(self, store, embedder):
        result = RetrievalEngine(store, embedder=embedder).answer("alice", "Ann")
        assert result.summary.startswith("Based on the available data:")

    def test_empty_results_have_no_summary(self, store, embedder):
        summarizer = MagicMock()
        engine = RetrievalEngine(store, embedder=embedder, summarizer=summarizer)

        result = engine.answer("bob", "anything")

        assert result.documents == []
        assert result.summary is None
        summarizer.summarize.assert_not_called()

    def test_source_app_filter(self, store, embedder):
        result = RetrievalEngine(store, embedder=embedder).answer("alice", "meeting", source_app="calendar")
        assert [d.doc_id for d in result.documents] == ["B"]

    def test_top_k_fixed_at_five(self, tmp_path, embedder):
        store = DocumentStore(str(tmp_path / "many.db"))
        for i in range(8):
            store.upsert("alice", str(i), "infolog", f"InfoLog: item {i}", [1.0, float(i)])

        result = RetrievalEngine(store, embedder=embedder).answer("alice", "item", use_summary=False)
        assert len(result.documents) == 5

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_empty_query_rejected(self, store, embedder, query):
        with pytest.raises(ValidationError):
            RetrievalEngine(store, embedder=embedder).answer("alice", query)
        embedder.embed_text.assert_not_called()

    @patch("groupware_rag.vector.embeddings.requests.post")
    def test_unauthorized_embedding_propagates(self, mock_post, store):
        mock_post.return_value = MagicMock(status_code=401, text="invalid api key")
        settings = ProviderSettings(embedding_api_key="sk-wrong", embedding_api_url="https://api.example.test/v1")
        summarizer = MagicMock()
        engine = RetrievalEngine(store, embedder=HttpEmbeddingProvider(settings), summarizer=summarizer)

        with pytest.raises(EmbeddingProviderError) as exc_info:
            engine.answer("alice", "Who is Ann?")

        assert exc_info.value.reason == "unauthorized"
        assert "authentication failed (401 Unauthorized)" in str(exc_info.value)
        summarizer.summarize.assert_not_called()


def test_statistics(store):
    engine = RetrievalEngine(store, embedder=MagicMock())
    assert engine.statistics("alice") == {"total": 2, "by_app": {"addressbook": 1, "calendar": 1}}
    assert engine.statistics("nobody") == {"total": 0, "by_app": {}}
