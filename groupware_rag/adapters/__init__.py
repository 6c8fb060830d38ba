from .base import RecordAdapter
from .contacts import ContactAdapter
from .events import CalendarAdapter
from .tasks import InfologAdapter
from .registry import AdapterRegistry, build_default_registry
from .sources import RecordSource, DictRecordSource, SQLRecordSource

__all__ = [
    'RecordAdapter',
    'ContactAdapter',
    'CalendarAdapter',
    'InfologAdapter',
    'AdapterRegistry',
    'build_default_registry',
    'RecordSource',
    'DictRecordSource',
    'SQLRecordSource',
]
