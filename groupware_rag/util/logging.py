"""
Structured logging for the retrieval index and ingestion pipeline.
Wraps stdlib logging with operation-oriented helpers.
"""

import logging
import os
from typing import Any, Dict


class StructuredLogger:
    """Structured logger for store, queue, provider and drain operations."""

    def __init__(self, name: str = "groupware_rag"):
        self.logger = logging.getLogger(name)
        level_name = os.getenv("LOG_LEVEL", "info").upper()
        self.logger.setLevel(getattr(logging, level_name, logging.INFO))

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "error"):
            self.logger.error(message)
        else:
            self.logger.info(message)

    def log_document_operation(self, operation: str, owner_id: str, source_app: str, doc_id: str,
                               details: Dict[str, Any] = None, status: str = "success"):
        """Log a document store operation. Never pass document text here."""
        log_details = {"owner_id": owner_id, "source_app": source_app, "doc_id": doc_id}
        if details:
            log_details.update(details)

        self.log_operation(f"document.{operation}", status, log_details)

    def log_queue_operation(self, operation: str, queue_id: int, details: Dict[str, Any] = None,
                            status: str = "success"):
        """Log an ingest queue transition."""
        log_details = {"queue_id": queue_id}
        if details:
            log_details.update(details)

        self.log_operation(f"queue.{operation}", status, log_details)

    def log_provider_call(self, provider: str, operation: str, status_code: int = None,
                          duration_ms: float = None, status: str = "success",
                          details: Dict[str, Any] = None):
        """Log an outbound embedding or summarizer request."""
        log_details = {"provider": provider}
        if status_code is not None:
            log_details["status_code"] = status_code
        if duration_ms is not None:
            log_details["duration_ms"] = round(duration_ms, 2)
        if details:
            log_details.update(details)

        self.log_operation(f"provider.{operation}", status, log_details)

    def log_drain(self, report: Dict[str, Any], duration_ms: float):
        """Log the outcome of one drain call."""
        log_details = dict(report)
        log_details["duration_ms"] = round(duration_ms, 2)
        status = "success" if not report.get("failed") else "partial"
        self.log_operation("queue.drain", status, log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
