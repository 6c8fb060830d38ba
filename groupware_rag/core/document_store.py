"""
Persistent document store with exact cosine-similarity search.

Documents are scoped by owner. Search is a full scan of the owner's
documents, ranked by the stable top-k contract in vector.similarity.
"""

import json
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from .db import get_db, init_db
from .errors import ValidationError
from ..util.logging import logger
from ..vector import codec, similarity
from ..vector.types import Document, ScoredDocument

DEFAULT_TOP_K = 5


def utc_now() -> str:
    """Current UTC time as an ISO string, the storage format for timestamps."""
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _json_default(value: Any):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Metadata value of type {type(value).__name__} is not serializable")


def dump_metadata(metadata: Optional[Dict[str, Any]]) -> str:
    try:
        return json.dumps(metadata or {}, default=_json_default, sort_keys=True)
    except TypeError as e:
        raise ValidationError(str(e)) from e


def load_metadata(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    return json.loads(raw)


def _require(value: str, name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{name} must not be empty")
    return str(value)


class DocumentStore:
    """Owner-scoped document table with brute-force vector search."""

    def __init__(self, db_path: Optional[str] = None, initialize: bool = True):
        self.db_path = db_path
        if initialize:
            init_db(db_path)

    def upsert(self, owner_id: str, doc_id: str, source_app: str, text: str,
               vector: Sequence[float], metadata: Optional[Dict[str, Any]] = None) -> Document:
        """Insert or update a document; created_at survives updates."""
        _require(owner_id, "owner_id")
        _require(doc_id, "doc_id")
        _require(source_app, "source_app")
        if text is None or not text.strip():
            raise ValidationError("Document text must not be empty")
        if vector is None or len(vector) == 0:
            raise ValidationError("Document vector must not be empty")

        payload = codec.encode(vector)
        metadata_json = dump_metadata(metadata)
        now = utc_now()

        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT INTO documents (doc_id, owner_id, source_app, content, embedding, metadata, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(doc_id, owner_id, source_app) DO UPDATE SET
                    content = excluded.content,
                    embedding = excluded.embedding,
                    metadata = excluded.metadata,
                    updated_at = excluded.updated_at
            ''', (str(doc_id), owner_id, source_app, text, payload, metadata_json, now, now))
            conn.commit()

        logger.log_document_operation(
            "upsert", owner_id, source_app, str(doc_id),
            details={"text_chars": len(text), "dimension": len(vector)},
        )
        return self.get(owner_id, str(doc_id), source_app)

    def delete(self, owner_id: str, doc_id: str, source_app: str) -> bool:
        """Remove a document. Returns False when it was already absent."""
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM documents WHERE doc_id = ? AND owner_id = ? AND source_app = ?",
                (str(doc_id), owner_id, source_app)
            )
            removed = cursor.rowcount > 0
            conn.commit()

        logger.log_document_operation(
            "delete", owner_id, source_app, str(doc_id), details={"removed": removed}
        )
        return removed

    def get(self, owner_id: str, doc_id: str, source_app: str) -> Optional[Document]:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT doc_id, owner_id, source_app, content, embedding, metadata, created_at, updated_at
                FROM documents WHERE doc_id = ? AND owner_id = ? AND source_app = ?
            ''', (str(doc_id), owner_id, source_app))
            row = cursor.fetchone()

        return self._row_to_document(row) if row else None

    def list_documents(self, owner_id: str, source_app: Optional[str] = None) -> List[Document]:
        """All of an owner's documents in (source_app, doc_id) order."""
        query = '''
            SELECT doc_id, owner_id, source_app, content, embedding, metadata, created_at, updated_at
            FROM documents WHERE owner_id = ?
        '''
        params: List[Any] = [owner_id]
        if source_app:
            query += " AND source_app = ?"
            params.append(source_app)
        query += " ORDER BY source_app, doc_id"

        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            rows = cursor.fetchall()

        return [self._row_to_document(row) for row in rows]

    def search(self, owner_id: str, query_vector: Sequence[float], source_app: Optional[str] = None,
               top_k: int = DEFAULT_TOP_K) -> List[ScoredDocument]:
        """Rank the owner's documents by cosine similarity to query_vector."""
        if query_vector is None or len(query_vector) == 0:
            raise ValidationError("Query vector must not be empty")
        if top_k <= 0:
            return []

        documents = self.list_documents(owner_id, source_app)
        candidates = [(i, doc.vector) for i, doc in enumerate(documents)]
        ranked = similarity.rank_top_k(query_vector, candidates, top_k)

        logger.debug(
            f"Search owner={owner_id} source_app={source_app or '*'} "
            f"scanned={len(documents)} returned={len(ranked)}"
        )
        return [ScoredDocument(document=documents[i], score=score) for i, score in ranked]

    def count_by_source_app(self, owner_id: str) -> Dict[str, int]:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT source_app, COUNT(*) FROM documents WHERE owner_id = ? GROUP BY source_app ORDER BY source_app",
                (owner_id,)
            )
            return {source_app: count for source_app, count in cursor.fetchall()}

    def clear_all(self, owner_id: str) -> int:
        """Delete every document the owner has; returns how many were removed."""
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM documents WHERE owner_id = ?", (owner_id,))
            removed = cursor.rowcount
            conn.commit()

        logger.log_operation("document.clear_all", "success", {"owner_id": owner_id, "removed": removed})
        return removed

    def _row_to_document(self, row) -> Document:
        doc_id, owner_id, source_app, content, embedding, metadata, created_at, updated_at = row
        return Document(
            doc_id=doc_id,
            owner_id=owner_id,
            source_app=source_app,
            text=content,
            vector=codec.decode(embedding),
            metadata=load_metadata(metadata),
            created_at=parse_timestamp(created_at),
            updated_at=parse_timestamp(updated_at),
        )
