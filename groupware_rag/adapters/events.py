"""Calendar events. Start and end come from the event's range columns (epoch seconds)."""

from typing import Any, Dict, List, Tuple

from .base import RecordAdapter, format_timestamp
from .sources import RecordSource, SQLRecordSource

EVENT_COLUMNS = (
    "cal_id", "cal_owner", "cal_title", "cal_description", "cal_location",
    "range_start", "range_end", "cal_priority", "cal_deleted",
)

DATETIME_FORMAT = "%Y-%m-%d %H:%M"


class CalendarAdapter(RecordAdapter):
    source_app = "calendar"
    id_field = "cal_id"

    def fields(self, raw: Dict[str, Any]) -> List[Tuple[str, Any]]:
        return [
            ("Calendar Event", raw.get("cal_title")),
            ("Start", format_timestamp(raw.get("range_start"), DATETIME_FORMAT)),
            ("End", format_timestamp(raw.get("range_end"), DATETIME_FORMAT)),
            ("Location", raw.get("cal_location")),
            ("Priority", raw.get("cal_priority")),
            ("Description", raw.get("cal_description")),
        ]

    def metadata(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "title": str(raw.get("cal_title") or "").strip(),
            "start": format_timestamp(raw.get("range_start"), DATETIME_FORMAT),
            "location": str(raw.get("cal_location") or "").strip(),
        }

    def is_deleted(self, raw: Dict[str, Any]) -> bool:
        return bool(raw.get("cal_deleted"))


def event_sql_source(db_path: str) -> RecordSource:
    return SQLRecordSource(
        db_path,
        table="egw_cal",
        id_column="cal_id",
        owner_column="cal_owner",
        columns=EVENT_COLUMNS,
        live_clause="cal_deleted IS NULL",
        order_by="cal_id",
    )
