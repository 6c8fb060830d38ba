"""
RecordAdapter: turns one raw source record into indexable text and metadata.

Subclasses declare which labeled fields to emit, in order; the base class
skips empty values and signals "nothing to index" with None.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .sources import RecordSource
from ..vector.types import AdaptedRecord


def is_present(value: Any) -> bool:
    """True for values worth emitting; None, blank strings, zero and "0" are not."""
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip() not in ("", "0")


def first_present(*values: Any) -> Any:
    for value in values:
        if is_present(value):
            return value
    return ""


def _as_datetime(value: Any) -> Optional[datetime]:
    if not is_present(value):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)) or str(value).strip().lstrip("-").isdigit():
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    return None


def format_timestamp(value: Any, fmt: str) -> str:
    """Format epoch seconds or a datetime in UTC; other strings pass through."""
    moment = _as_datetime(value)
    if moment is not None:
        return moment.astimezone(timezone.utc).strftime(fmt)
    return str(value).strip() if is_present(value) else ""


def _text(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


class RecordAdapter(ABC):
    """Abstract adapter for one source category."""

    source_app: str = ""
    id_field: str = "id"

    def __init__(self, record_source: RecordSource):
        self.record_source = record_source

    @abstractmethod
    def fields(self, raw: Dict[str, Any]) -> List[Tuple[str, Any]]:
        """Ordered (label, value) pairs making up the record's text."""
        pass

    @abstractmethod
    def metadata(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        """Small stable attribute map kept with the document."""
        pass

    @abstractmethod
    def is_deleted(self, raw: Dict[str, Any]) -> bool:
        """Whether the source flags this record as deleted."""
        pass

    def item_id(self, raw: Dict[str, Any]) -> str:
        return str(raw.get(self.id_field, "")).strip()

    def adapt(self, raw: Dict[str, Any]) -> Optional[AdaptedRecord]:
        """Build the indexable record, or None when every content field is empty."""
        lines = [f"{label}: {_text(value)}" for label, value in self.fields(raw) if is_present(value)]
        if not lines:
            return None
        return AdaptedRecord(
            item_id=self.item_id(raw),
            text="\n".join(lines),
            metadata=self.metadata(raw),
        )

    def fetch(self, owner_id: str, item_id: str) -> Optional[Dict[str, Any]]:
        return self.record_source.fetch(owner_id, item_id)

    def iter_records(self, owner_id: str, limit: int = 0) -> Iterator[Dict[str, Any]]:
        return self.record_source.iter_records(owner_id, limit)

    def count(self, owner_id: str) -> int:
        return self.record_source.count(owner_id)
