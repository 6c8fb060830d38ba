"""
Where adapters read raw source records from.

DictRecordSource keeps records in memory (tests, imports). SQLRecordSource
reads the host groupware tables directly.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence

from ..core.db import get_db


class RecordSource(ABC):
    """Abstract interface for owner-scoped raw record access."""

    @abstractmethod
    def fetch(self, owner_id: str, item_id: str) -> Optional[Dict[str, Any]]:
        """Return the raw record, or None if it no longer exists."""
        pass

    @abstractmethod
    def iter_records(self, owner_id: str, limit: int = 0) -> Iterator[Dict[str, Any]]:
        """Yield the owner's live records; limit 0 means no limit."""
        pass

    @abstractmethod
    def count(self, owner_id: str) -> int:
        """Number of live records the owner has."""
        pass


class DictRecordSource(RecordSource):
    """In-memory records keyed by owner then item id."""

    def __init__(self, records: Optional[Mapping[str, Mapping[str, Dict[str, Any]]]] = None):
        self.records: Dict[str, Dict[str, Dict[str, Any]]] = {
            owner: {str(item_id): dict(raw) for item_id, raw in items.items()}
            for owner, items in (records or {}).items()
        }

    def put(self, owner_id: str, item_id: str, raw: Dict[str, Any]):
        self.records.setdefault(owner_id, {})[str(item_id)] = dict(raw)

    def remove(self, owner_id: str, item_id: str):
        self.records.get(owner_id, {}).pop(str(item_id), None)

    def fetch(self, owner_id: str, item_id: str) -> Optional[Dict[str, Any]]:
        raw = self.records.get(owner_id, {}).get(str(item_id))
        return dict(raw) if raw is not None else None

    def iter_records(self, owner_id: str, limit: int = 0) -> Iterator[Dict[str, Any]]:
        items = list(self.records.get(owner_id, {}).values())
        if limit > 0:
            items = items[:limit]
        for raw in items:
            yield dict(raw)

    def count(self, owner_id: str) -> int:
        return len(self.records.get(owner_id, {}))


class SQLRecordSource(RecordSource):
    """Reads one host table through sqlite3.

    ``live_clause`` is an SQL condition selecting non-deleted rows; it is
    applied to listing and counting, while fetch() returns deleted rows too so
    the caller can tell "deleted" from "never existed".
    """

    def __init__(self, db_path: str, table: str, id_column: str, owner_column: str,
                 columns: Sequence[str], live_clause: str = "1 = 1",
                 order_by: Optional[str] = None):
        self.db_path = db_path
        self.table = table
        self.id_column = id_column
        self.owner_column = owner_column
        self.columns = list(columns)
        if id_column not in self.columns:
            self.columns.insert(0, id_column)
        self.live_clause = live_clause
        self.order_by = order_by or id_column

    def _select(self) -> str:
        return f"SELECT {', '.join(self.columns)} FROM {self.table}"

    def fetch(self, owner_id: str, item_id: str) -> Optional[Dict[str, Any]]:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"{self._select()} WHERE {self.owner_column} = ? AND {self.id_column} = ?",
                (owner_id, item_id)
            )
            row = cursor.fetchone()
        return dict(zip(self.columns, row)) if row else None

    def iter_records(self, owner_id: str, limit: int = 0) -> Iterator[Dict[str, Any]]:
        query = (
            f"{self._select()} WHERE {self.owner_column} = ? AND ({self.live_clause}) "
            f"ORDER BY {self.order_by} LIMIT ?"
        )
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(query, (owner_id, limit if limit > 0 else -1))
            rows = cursor.fetchall()
        for row in rows:
            yield dict(zip(self.columns, row))

    def count(self, owner_id: str) -> int:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT COUNT(*) FROM {self.table} WHERE {self.owner_column} = ? AND ({self.live_clause})",
                (owner_id,)
            )
            return cursor.fetchone()[0]
