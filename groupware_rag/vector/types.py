"""
Record types shared by the store, queue, adapters and retrieval engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple


# Queue actions
ACTION_INDEX = "index"
ACTION_DELETE = "delete"
ACTIONS = (ACTION_INDEX, ACTION_DELETE)

# Queue statuses
STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUSES = (STATUS_PENDING, STATUS_PROCESSING, STATUS_COMPLETED, STATUS_FAILED)


@dataclass
class Document:
    """An indexed record: the embedded text, its vector and metadata."""

    doc_id: str
    """Identifier of the record in its source system"""

    owner_id: str
    """Owning user; every read and write is scoped by it"""

    source_app: str
    """Source category, e.g. addressbook, calendar, infolog"""

    text: str
    """Normalized content that was embedded"""

    vector: List[float]
    """Embedding of ``text``"""

    metadata: Dict[str, Any] = field(default_factory=dict)
    """Small attribute map; dates are ISO strings"""

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class ScoredDocument:
    """A document returned from search with its similarity score."""

    document: Document
    score: float

    @property
    def doc_id(self) -> str:
        return self.document.doc_id

    @property
    def source_app(self) -> str:
        return self.document.source_app

    @property
    def text(self) -> str:
        return self.document.text

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.document.metadata


@dataclass
class QueueItem:
    """A unit of pending indexing work."""

    queue_id: int
    owner_id: str
    source_app: str
    item_id: str
    action: str
    status: str
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None


@dataclass
class AdaptedRecord:
    """Indexable view of a source record produced by a RecordAdapter."""

    item_id: str
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DrainReport:
    """Outcome of one drain call."""

    claimed: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    superseded: int = 0
    errors: List[Tuple[int, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "claimed": self.claimed,
            "completed": self.completed,
            "failed": self.failed,
            "skipped": self.skipped,
            "superseded": self.superseded,
            "errors": [{"queue_id": qid, "message": msg} for qid, msg in self.errors],
        }


@dataclass
class IndexReport:
    """Outcome of a bulk reindex of one source app."""

    source_app: str
    indexed: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_app": self.source_app,
            "indexed": self.indexed,
            "skipped": self.skipped,
            "errors": list(self.errors),
            "success": self.success,
        }


@dataclass
class RetrievalResult:
    """Documents retrieved for a query and an optional natural-language summary."""

    query: str
    documents: List[ScoredDocument]
    summary: Optional[str] = None
