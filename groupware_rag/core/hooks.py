"""
Entry points for the host's record change events.

Each hook only enqueues work; documents change when the queue is drained.
"""

from typing import Optional

from .ingest_queue import IngestQueue
from ..util.logging import logger
from ..vector.types import ACTION_DELETE, ACTION_INDEX

# Substring of a hook location -> source app, checked in order
LOCATION_SOURCE_APPS = (
    ("addressbook", "addressbook"),
    ("calendar", "calendar"),
    ("infolog", "infolog"),
)


def on_record_changed(queue: IngestQueue, owner_id: str, source_app: str, item_id: str) -> int:
    """A record was created or updated."""
    return queue.enqueue(owner_id, source_app, str(item_id), ACTION_INDEX)


def on_record_deleted(queue: IngestQueue, owner_id: str, source_app: str, item_id: str) -> int:
    """A record was deleted."""
    return queue.enqueue(owner_id, source_app, str(item_id), ACTION_DELETE)


def source_app_for_location(location: str) -> Optional[str]:
    """Map a host hook location such as ``calendar_edit`` to a source app."""
    if not location:
        return None
    for fragment, source_app in LOCATION_SOURCE_APPS:
        if fragment in location:
            return source_app
    return None


def handle_hook(queue: IngestQueue, owner_id: str, location: str, item_id,
                deleted: bool = False) -> Optional[int]:
    """Enqueue work for a host hook call.

    Unknown locations and empty ids are ignored and return None.
    """
    source_app = source_app_for_location(location)
    if not source_app or item_id is None or not str(item_id).strip():
        logger.debug(f"Ignoring hook location={location!r} item_id={item_id!r}")
        return None

    if deleted:
        return on_record_deleted(queue, owner_id, source_app, item_id)
    return on_record_changed(queue, owner_id, source_app, item_id)
