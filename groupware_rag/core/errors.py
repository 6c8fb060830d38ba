"""
Error taxonomy for the retrieval index.

ValidationError      bad caller input (empty query/text, zero-length vector)
ConfigurationError   missing or invalid provider settings, raised before any network call
ProviderError        embedding / summarizer HTTP failures, subdivided by ``reason``
StorageError         persistence layer unavailable or constraint violation
CodecError           corrupt vector bytes
"""

from typing import Optional


class RagError(Exception):
    """Base class for all errors raised by groupware_rag."""


class ValidationError(RagError):
    """Caller supplied invalid input."""


class ConfigurationError(RagError):
    """Provider configuration is missing or invalid."""


class StorageError(RagError):
    """The document or queue table could not be read or written."""


class CodecError(RagError):
    """A stored vector payload could not be decoded."""


class UnknownSourceAppError(RagError, KeyError):
    """No record adapter is registered for a source app."""

    def __str__(self):
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""


# Provider failure reasons
UNAUTHORIZED = "unauthorized"
FORBIDDEN = "forbidden"
NOT_FOUND = "not_found"
HTTP_ERROR = "http_error"
BAD_RESPONSE = "bad_response"
NETWORK = "network"


class ProviderError(RagError):
    """An external provider request failed."""

    service = "Provider"

    def __init__(self, message: str, reason: str = HTTP_ERROR, status_code: Optional[int] = None):
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code

    @classmethod
    def from_status(cls, status_code: int, url: str, body: str = "") -> "ProviderError":
        """Build a user-legible error for a non-200 provider response."""
        if status_code == 401:
            return cls(
                f"{cls.service} authentication failed (401 Unauthorized). "
                "Check the configured API key.",
                reason=UNAUTHORIZED,
                status_code=status_code,
            )
        if status_code == 403:
            return cls(
                f"{cls.service} access forbidden (403). The API key may not have access to this endpoint.",
                reason=FORBIDDEN,
                status_code=status_code,
            )
        if status_code == 404:
            return cls(
                f"{cls.service} endpoint not found (404). Verify the API URL: {url}",
                reason=NOT_FOUND,
                status_code=status_code,
            )
        return cls(
            f"{cls.service} API error: HTTP {status_code} - {body[:200]}",
            reason=HTTP_ERROR,
            status_code=status_code,
        )


class EmbeddingProviderError(ProviderError):
    """The embedding provider rejected or failed a request."""

    service = "Embedding provider"


class SummarizerProviderError(ProviderError):
    """The summarizer (LLM) provider rejected or failed a request."""

    service = "Summarizer provider"
