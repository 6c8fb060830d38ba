"""
Answer summarization over retrieved documents.

ChatCompletionSummarizer asks an OpenAI-compatible chat endpoint to answer
from the retrieved context. build_extractive_summary is the no-LLM fallback
used when the summarizer is missing or fails.
"""

from abc import ABC, abstractmethod
import time
from typing import List, Optional, Sequence

import requests

from ..core.config import PROVIDER_TIMEOUT_SEC, ProviderSettings
from ..core.errors import BAD_RESPONSE, NETWORK, SummarizerProviderError
from ..util.logging import logger
from ..vector.embeddings import endpoint_url
from ..vector.types import ScoredDocument

SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions based on the provided context "
    "from a groupware system. Use the context to provide accurate and relevant answers. "
    "If the context doesn't contain enough information to answer the question, say so clearly."
)


class ISummarizer(ABC):
    """Abstract interface for answer summarizers."""

    @abstractmethod
    def summarize(self, query: str, documents: Sequence[ScoredDocument]) -> str:
        """Produce a natural-language answer to query from the documents."""
        pass


def build_context_text(documents: Sequence[ScoredDocument]) -> str:
    """Join document texts as ``[source_app] text`` blocks."""
    blocks = []
    for doc in documents:
        if doc.text:
            blocks.append(f"[{doc.source_app or 'unknown'}] {doc.text}")
    return "\n\n".join(blocks)


def build_user_prompt(query: str, documents: Sequence[ScoredDocument]) -> str:
    return (
        f"Context:\n\n{build_context_text(documents)}\n\n"
        f"Question: {query}\n\n"
        "Please provide a helpful answer based on the context above."
    )


def build_extractive_summary(query: str, documents: Sequence[ScoredDocument],
                             max_docs: int = 3, max_chars: int = 200) -> str:
    """Summary made of the leading text of the best documents, no LLM involved."""
    summary = "Based on the available data:\n\n"
    for i, doc in enumerate(documents[:max_docs], start=1):
        summary += f"{i}. [{doc.source_app}] {doc.text[:max_chars]}...\n\n"
    return summary


class ChatCompletionSummarizer(ISummarizer):
    """Summarizer backed by an OpenAI-compatible ``/chat/completions`` endpoint."""

    def __init__(self, settings: ProviderSettings, timeout: int = PROVIDER_TIMEOUT_SEC,
                 session: Optional[requests.Session] = None):
        self.settings = settings.require_llm()
        self.url = endpoint_url(settings.llm_api_url, "/chat/completions")
        self.timeout = timeout
        self.session = session or requests

    def build_messages(self, query: str, documents: Sequence[ScoredDocument]) -> List[dict]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_user_prompt(query, documents)},
        ]

    def summarize(self, query: str, documents: Sequence[ScoredDocument]) -> str:
        payload = {
            "model": self.settings.llm_model,
            "messages": self.build_messages(query, documents),
            "temperature": self.settings.llm_temperature,
            "max_tokens": self.settings.llm_max_tokens,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.llm_api_key}",
        }

        start_time = time.time()
        try:
            response = self.session.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise SummarizerProviderError(f"Summarizer request failed: {e}", reason=NETWORK) from e

        duration_ms = (time.time() - start_time) * 1000
        if response.status_code != 200:
            logger.log_provider_call(
                "llm", "summarize", status_code=response.status_code,
                duration_ms=duration_ms, status="failed",
            )
            raise SummarizerProviderError.from_status(response.status_code, self.url, response.text or "")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise SummarizerProviderError(
                "Unexpected chat completion response format", reason=BAD_RESPONSE
            ) from e

        if not isinstance(content, str) or not content.strip():
            raise SummarizerProviderError("Summarizer returned an empty answer", reason=BAD_RESPONSE)

        logger.log_provider_call(
            "llm", "summarize", status_code=response.status_code, duration_ms=duration_ms,
            details={"documents": len(documents), "answer_chars": len(content)},
        )
        return content.strip()


def create_summarizer(settings: ProviderSettings) -> Optional[ISummarizer]:
    """Build the configured summarizer, or None when no LLM is configured."""
    if not settings.llm_api_key or not settings.llm_api_url:
        return None
    return ChatCompletionSummarizer(settings)
