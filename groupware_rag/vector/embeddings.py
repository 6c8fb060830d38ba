"""
Embedding providers.

HttpEmbeddingProvider talks to any OpenAI-compatible ``/embeddings`` endpoint.
DeterministicHashEmbedding needs no network and is used offline and in tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import hashlib
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from ..core.config import EMBED_MAX_CHARS, PROVIDER_TIMEOUT_SEC, ProviderSettings
from ..core.errors import (
    BAD_RESPONSE,
    NETWORK,
    ConfigurationError,
    EmbeddingProviderError,
    ProviderError,
    ValidationError,
)
from ..util.logging import logger

# Known model output dimensions
MODEL_DIMENSIONS = {
    "text-embedding-ada-002": 1536,
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "bge-m3": 1024,
    "bge-large-en-v1.5": 1024,
    "all-MiniLM-L6-v2": 384,
}
DEFAULT_DIMENSION = 1024

CONNECTION_TEST_TEXT = "This is a test to verify the embedding API connection."
NOT_CONFIGURED = "not_configured"


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider.

    Equal text always yields an equal vector, which makes it suitable for
    tests and for running the pipeline without a provider account.
    """

    def __init__(self, dimension: int = 384):
        if dimension < 1:
            raise ValueError(f"Dimension must be >= 1: {dimension}")
        self.dimension = dimension

    def embed_text(self, text: str) -> List[float]:
        """Generate deterministic embedding vector using a hash chain."""
        text = normalize_input(text)

        vector = []
        counter = 0
        while len(vector) < self.dimension:
            digest = hashlib.sha256(f"{counter}:{text}".encode("utf-8")).hexdigest()
            for i in range(0, len(digest), 8):
                if len(vector) >= self.dimension:
                    break
                value = int(digest[i:i + 8], 16)
                # Map to [-1, 1] for cosine similarity
                vector.append((value / (2**32)) * 2 - 1)
            counter += 1

        return vector

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


def normalize_input(text: str, max_chars: int = EMBED_MAX_CHARS) -> str:
    """Trim and truncate text before embedding; empty input is rejected."""
    if text is None:
        raise ValidationError("Cannot embed empty text")
    text = text.strip()
    if not text:
        raise ValidationError("Cannot embed empty text")
    return text[:max_chars]


@dataclass
class ParsedEmbedding:
    """A vector extracted from a provider response, tagged with the shape it came from."""

    shape: str
    vector: List[float]


def _match_openai(body: Any) -> Optional[ParsedEmbedding]:
    data = body.get("data") if isinstance(body, dict) else None
    if isinstance(data, list) and data and isinstance(data[0], dict):
        embedding = data[0].get("embedding")
        if isinstance(embedding, list) and embedding:
            return ParsedEmbedding("openai", embedding)
    return None


def _match_batch(body: Any) -> Optional[ParsedEmbedding]:
    embeddings = body.get("embeddings") if isinstance(body, dict) else None
    if isinstance(embeddings, list) and embeddings and isinstance(embeddings[0], list) and embeddings[0]:
        return ParsedEmbedding("batch", embeddings[0])
    return None


def _match_single(body: Any) -> Optional[ParsedEmbedding]:
    embedding = body.get("embedding") if isinstance(body, dict) else None
    if isinstance(embedding, list) and embedding:
        return ParsedEmbedding("single", embedding)
    return None


# Tried in order; first match wins
RESPONSE_MATCHERS: Tuple[Callable[[Any], Optional[ParsedEmbedding]], ...] = (
    _match_openai,
    _match_batch,
    _match_single,
)


def parse_embedding_response(body: Any) -> ParsedEmbedding:
    """Extract the embedding vector from a provider response body."""
    for matcher in RESPONSE_MATCHERS:
        parsed = matcher(body)
        if parsed is not None:
            try:
                parsed.vector = [float(v) for v in parsed.vector]
            except (TypeError, ValueError) as e:
                raise EmbeddingProviderError(
                    f"Embedding provider returned non-numeric values: {e}", reason=BAD_RESPONSE
                ) from e
            return parsed

    keys = sorted(body.keys()) if isinstance(body, dict) else type(body).__name__
    raise EmbeddingProviderError(
        f"Unexpected embedding response format (keys: {keys})", reason=BAD_RESPONSE
    )


def endpoint_url(base_url: str, suffix: str) -> str:
    """Append an endpoint path to a provider base URL unless it is already there."""
    base = base_url.rstrip("/")
    if base.endswith(suffix):
        return base
    return base + suffix


class HttpEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider for OpenAI-compatible HTTP endpoints."""

    def __init__(self, settings: ProviderSettings, timeout: int = PROVIDER_TIMEOUT_SEC,
                 session: Optional[requests.Session] = None):
        self.settings = settings.require_embedding()
        self.model = settings.embedding_model
        self.url = endpoint_url(settings.embedding_api_url, "/embeddings")
        self.timeout = timeout
        self.session = session or requests

    def get_dimension(self) -> int:
        return MODEL_DIMENSIONS.get(self.model, DEFAULT_DIMENSION)

    def embed_text(self, text: str) -> List[float]:
        return self.embed_text_detailed(text).vector

    def embed_text_detailed(self, text: str) -> ParsedEmbedding:
        """Embed text and report which response shape the provider used."""
        text = normalize_input(text)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.embedding_api_key}",
        }
        payload = {"model": self.model, "input": text}

        start_time = time.time()
        try:
            response = self.session.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.log_provider_call(
                "embedding", "embed", status="failed",
                duration_ms=(time.time() - start_time) * 1000,
                details={"error": type(e).__name__},
            )
            raise EmbeddingProviderError(
                f"Embedding provider request failed: {e}", reason=NETWORK
            ) from e

        duration_ms = (time.time() - start_time) * 1000
        if response.status_code != 200:
            logger.log_provider_call(
                "embedding", "embed", status_code=response.status_code,
                duration_ms=duration_ms, status="failed",
            )
            raise EmbeddingProviderError.from_status(response.status_code, self.url, response.text or "")

        try:
            body = response.json()
        except ValueError as e:
            raise EmbeddingProviderError(
                "Embedding provider returned invalid JSON", reason=BAD_RESPONSE
            ) from e

        parsed = parse_embedding_response(body)
        logger.log_provider_call(
            "embedding", "embed", status_code=response.status_code, duration_ms=duration_ms,
            details={"shape": parsed.shape, "dimension": len(parsed.vector), "input_chars": len(text)},
        )
        return parsed


def create_embedding_provider(settings: ProviderSettings) -> IEmbeddingProvider:
    """Build the embedding provider for the configured settings."""
    if settings.embedding_provider == "hash":
        return DeterministicHashEmbedding(MODEL_DIMENSIONS.get(settings.embedding_model, 384))
    return HttpEmbeddingProvider(settings)


def check_embedding_connection(get_provider: Callable[[], IEmbeddingProvider]) -> Dict[str, Any]:
    """Embed a fixed sentence and report the outcome instead of raising.

    The provider is obtained inside the check so that missing settings are
    reported as ``not_configured`` like any other failure.
    """
    try:
        vector = get_provider().embed_text(CONNECTION_TEST_TEXT)
    except ConfigurationError as e:
        return {"success": False, "reason": NOT_CONFIGURED, "error": str(e)}
    except ProviderError as e:
        return {"success": False, "reason": e.reason, "status_code": e.status_code, "error": str(e)}

    logger.log_operation("provider.connection_test", "success", {"dimension": len(vector)})
    return {"success": True, "dimension": len(vector), "sample": [round(v, 6) for v in vector[:5]]}
