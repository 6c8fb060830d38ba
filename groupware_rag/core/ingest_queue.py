"""
Durable FIFO of pending index/delete work.

Items move pending -> processing -> completed | failed. claim() is a single
conditional UPDATE, so two workers can never both own an item.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from .db import get_db, init_db
from .document_store import parse_timestamp, utc_now
from .errors import ValidationError
from ..util.logging import logger
from ..vector.types import (
    ACTION_INDEX,
    ACTIONS,
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_PROCESSING,
    STATUSES,
    QueueItem,
)

_COLUMNS = "queue_id, owner_id, source_app, item_id, action, status, error_message, created_at, processed_at"


class IngestQueue:
    """SQLite-backed ingest queue."""

    def __init__(self, db_path: Optional[str] = None, initialize: bool = True):
        self.db_path = db_path
        if initialize:
            init_db(db_path)

    def enqueue(self, owner_id: str, source_app: str, item_id: str, action: str = ACTION_INDEX) -> int:
        """Append a pending item and return its queue id."""
        if action not in ACTIONS:
            raise ValidationError(f"Unknown queue action '{action}', expected one of {ACTIONS}")
        for name, value in (("owner_id", owner_id), ("source_app", source_app), ("item_id", item_id)):
            if value is None or not str(value).strip():
                raise ValidationError(f"{name} must not be empty")

        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT INTO index_queue (owner_id, source_app, item_id, action, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            ''', (owner_id, source_app, str(item_id), action, STATUS_PENDING, utc_now()))
            queue_id = cursor.lastrowid
            conn.commit()

        logger.log_queue_operation(
            "enqueue", queue_id,
            details={"owner_id": owner_id, "source_app": source_app, "item_id": str(item_id), "action": action},
        )
        return queue_id

    def fetch_pending(self, limit: int, owner_id: Optional[str] = None) -> List[QueueItem]:
        """Pending items in ascending queue_id order."""
        if limit <= 0:
            return []

        query = f"SELECT {_COLUMNS} FROM index_queue WHERE status = ?"
        params: list = [STATUS_PENDING]
        if owner_id:
            query += " AND owner_id = ?"
            params.append(owner_id)
        query += " ORDER BY queue_id ASC LIMIT ?"
        params.append(limit)

        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [self._row_to_item(row) for row in cursor.fetchall()]

    def claim(self, queue_id: int) -> bool:
        """Atomically move an item from pending to processing.

        Returns False if the item is not pending, i.e. another worker owns it.
        """
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE index_queue SET status = ? WHERE queue_id = ? AND status = ?",
                (STATUS_PROCESSING, queue_id, STATUS_PENDING)
            )
            claimed = cursor.rowcount == 1
            conn.commit()

        if claimed:
            logger.log_queue_operation("claim", queue_id)
        return claimed

    def mark_completed(self, queue_id: int, note: Optional[str] = None):
        self._finish(queue_id, STATUS_COMPLETED, note)

    def mark_failed(self, queue_id: int, error_message: str):
        self._finish(queue_id, STATUS_FAILED, error_message)

    def _finish(self, queue_id: int, status: str, message: Optional[str]):
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE index_queue SET status = ?, error_message = ?, processed_at = ? WHERE queue_id = ?",
                (status, message, utc_now(), queue_id)
            )
            conn.commit()

        logger.log_queue_operation(
            status, queue_id,
            details={"error": message} if status == STATUS_FAILED else None,
            status="failed" if status == STATUS_FAILED else "success",
        )

    def get(self, queue_id: int) -> Optional[QueueItem]:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {_COLUMNS} FROM index_queue WHERE queue_id = ?", (queue_id,))
            row = cursor.fetchone()
        return self._row_to_item(row) if row else None

    def count_by_status(self, owner_id: Optional[str] = None) -> Dict[str, int]:
        """Item counts for every status, zero-filled."""
        query = "SELECT status, COUNT(*) FROM index_queue"
        params: list = []
        if owner_id:
            query += " WHERE owner_id = ?"
            params.append(owner_id)
        query += " GROUP BY status"

        counts = {status: 0 for status in STATUSES}
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            for status, count in cursor.fetchall():
                counts[status] = count
        return counts

    def list_failed(self, owner_id: Optional[str] = None, limit: int = 100) -> List[QueueItem]:
        query = f"SELECT {_COLUMNS} FROM index_queue WHERE status = ?"
        params: list = [STATUS_FAILED]
        if owner_id:
            query += " AND owner_id = ?"
            params.append(owner_id)
        query += " ORDER BY queue_id ASC LIMIT ?"
        params.append(limit)

        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [self._row_to_item(row) for row in cursor.fetchall()]

    def requeue_failed(self, owner_id: Optional[str] = None) -> int:
        """Enqueue a fresh pending item for every failed item.

        The failed rows are left untouched as history.
        """
        failed = self.list_failed(owner_id, limit=-1)
        for item in failed:
            self.enqueue(item.owner_id, item.source_app, item.item_id, item.action)

        logger.log_operation("queue.requeue_failed", "success", {"owner_id": owner_id, "requeued": len(failed)})
        return len(failed)

    def supersede_duplicates(self, owner_id: Optional[str] = None) -> int:
        """Retire older pending items that a later pending item for the same record replaces.

        Each retired item is claimed first, so items another worker already
        owns are left alone. Returns the number of items retired.
        """
        query = '''
            SELECT older.queue_id, MAX(newer.queue_id)
            FROM index_queue AS older
            JOIN index_queue AS newer
              ON newer.owner_id = older.owner_id
             AND newer.source_app = older.source_app
             AND newer.item_id = older.item_id
             AND newer.queue_id > older.queue_id
             AND newer.status = ?
            WHERE older.status = ?
        '''
        params: list = [STATUS_PENDING, STATUS_PENDING]
        if owner_id:
            query += " AND older.owner_id = ?"
            params.append(owner_id)
        query += " GROUP BY older.queue_id ORDER BY older.queue_id"

        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            pairs = cursor.fetchall()

        superseded = 0
        for older_id, latest_id in pairs:
            if self.claim(older_id):
                self.mark_completed(older_id, f"superseded by queue item {latest_id}")
                superseded += 1
        return superseded

    def purge_completed(self, before) -> int:
        """Delete completed items processed before a UTC datetime or ISO timestamp."""
        if isinstance(before, datetime):
            before = before.astimezone(timezone.utc).isoformat()
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM index_queue WHERE status = ? AND processed_at < ?",
                (STATUS_COMPLETED, before)
            )
            removed = cursor.rowcount
            conn.commit()

        logger.log_operation("queue.purge_completed", "success", {"before": before, "removed": removed})
        return removed

    def _row_to_item(self, row) -> QueueItem:
        queue_id, owner_id, source_app, item_id, action, status, error_message, created_at, processed_at = row
        return QueueItem(
            queue_id=queue_id,
            owner_id=owner_id,
            source_app=source_app,
            item_id=item_id,
            action=action,
            status=status,
            error_message=error_message,
            created_at=parse_timestamp(created_at),
            processed_at=parse_timestamp(processed_at),
        )
