"""InfoLog entries: tasks, notes and phone calls."""

from typing import Any, Dict, List, Tuple

from .base import RecordAdapter, format_timestamp, is_present
from .sources import RecordSource, SQLRecordSource

INFOLOG_COLUMNS = (
    "info_id", "info_owner", "info_subject", "info_des", "info_type", "info_status",
    "info_priority", "info_percent", "info_from", "info_location",
    "info_startdate", "info_enddate",
)

DATE_FORMAT = "%Y-%m-%d"


class InfologAdapter(RecordAdapter):
    source_app = "infolog"
    id_field = "info_id"

    def fields(self, raw: Dict[str, Any]) -> List[Tuple[str, Any]]:
        percent = raw.get("info_percent")
        return [
            ("InfoLog", raw.get("info_subject")),
            ("Type", raw.get("info_type")),
            ("Status", raw.get("info_status")),
            ("Priority", raw.get("info_priority")),
            ("Completion", f"{percent}%" if is_present(percent) else ""),
            ("From", raw.get("info_from")),
            ("Location", raw.get("info_location")),
            ("Start Date", format_timestamp(raw.get("info_startdate"), DATE_FORMAT)),
            ("Due Date", format_timestamp(raw.get("info_enddate"), DATE_FORMAT)),
            ("Description", raw.get("info_des")),
        ]

    def metadata(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "subject": str(raw.get("info_subject") or "").strip(),
            "type": str(raw.get("info_type") or "").strip(),
            "status": str(raw.get("info_status") or "").strip(),
        }

    def is_deleted(self, raw: Dict[str, Any]) -> bool:
        return raw.get("info_status") == "deleted"


def infolog_sql_source(db_path: str) -> RecordSource:
    return SQLRecordSource(
        db_path,
        table="egw_infolog",
        id_column="info_id",
        owner_column="info_owner",
        columns=INFOLOG_COLUMNS,
        live_clause="info_status IS NULL OR info_status != 'deleted'",
        order_by="info_id",
    )
