"""
Adapter registry: maps a source app name to the adapter that understands it.

The pipeline dispatches through the registry only, so a new source category
is added by registering another adapter.
"""

from typing import Dict, List

from .base import RecordAdapter
from .contacts import ContactAdapter, contact_sql_source
from .events import CalendarAdapter, event_sql_source
from .tasks import InfologAdapter, infolog_sql_source
from ..core.errors import UnknownSourceAppError
from ..util.logging import logger


class AdapterRegistry:
    """Registry of record adapters keyed by source_app."""

    def __init__(self):
        self.adapters: Dict[str, RecordAdapter] = {}

    def register(self, adapter: RecordAdapter) -> RecordAdapter:
        """Register an adapter, replacing any previous one for the same source app."""
        if not adapter.source_app:
            raise ValueError(f"Adapter {type(adapter).__name__} has no source_app")
        self.adapters[adapter.source_app] = adapter
        logger.debug(f"Registered adapter '{adapter.source_app}' ({type(adapter).__name__})")
        return adapter

    def get(self, source_app: str) -> RecordAdapter:
        try:
            return self.adapters[source_app]
        except KeyError:
            raise UnknownSourceAppError(f"No record adapter registered for source app '{source_app}'") from None

    def source_apps(self) -> List[str]:
        return sorted(self.adapters.keys())

    def __contains__(self, source_app: str) -> bool:
        return source_app in self.adapters


def build_default_registry(source_db_path: str) -> AdapterRegistry:
    """Wire the contact, calendar and infolog adapters to the host tables."""
    registry = AdapterRegistry()
    registry.register(ContactAdapter(contact_sql_source(source_db_path)))
    registry.register(CalendarAdapter(event_sql_source(source_db_path)))
    registry.register(InfologAdapter(infolog_sql_source(source_db_path)))
    return registry
