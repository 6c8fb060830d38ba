"""Addressbook contacts."""

from typing import Any, Dict, List, Tuple

from .base import RecordAdapter, first_present, is_present
from .sources import RecordSource, SQLRecordSource

CONTACT_COLUMNS = (
    "contact_id", "contact_owner", "contact_tid",
    "n_prefix", "n_given", "n_family", "n_fn",
    "org_name", "org_unit", "contact_title",
    "contact_email", "contact_email_home",
    "tel_work", "tel_cell", "tel_home",
    "adr_one_street", "adr_one_locality", "adr_one_region",
    "adr_one_postalcode", "adr_one_countryname",
    "contact_note", "contact_bday",
)

ADDRESS_FIELDS = (
    "adr_one_street", "adr_one_locality", "adr_one_region",
    "adr_one_postalcode", "adr_one_countryname",
)


def contact_name(raw: Dict[str, Any]) -> str:
    """Prefix, given and family name; falls back to the formatted name."""
    parts = [str(raw.get(key) or "").strip() for key in ("n_prefix", "n_given", "n_family")]
    name = " ".join(part for part in parts if part)
    return name or str(raw.get("n_fn") or "").strip()


class ContactAdapter(RecordAdapter):
    source_app = "addressbook"
    id_field = "contact_id"

    def fields(self, raw: Dict[str, Any]) -> List[Tuple[str, Any]]:
        address = ", ".join(
            str(raw.get(key)).strip() for key in ADDRESS_FIELDS if is_present(raw.get(key))
        )
        return [
            ("Contact", contact_name(raw)),
            ("Organization", raw.get("org_name")),
            ("Department", raw.get("org_unit")),
            ("Title", raw.get("contact_title")),
            ("Email", first_present(raw.get("contact_email"), raw.get("contact_email_home"))),
            ("Phone", first_present(raw.get("tel_work"), raw.get("tel_cell"), raw.get("tel_home"))),
            ("Address", address),
            ("Birthday", raw.get("contact_bday")),
            ("Notes", raw.get("contact_note")),
        ]

    def metadata(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "name": contact_name(raw),
            "org": str(raw.get("org_name") or "").strip(),
            "email": str(first_present(raw.get("contact_email"), raw.get("contact_email_home"))).strip(),
        }

    def is_deleted(self, raw: Dict[str, Any]) -> bool:
        return raw.get("contact_tid") == "D"


def contact_sql_source(db_path: str) -> RecordSource:
    return SQLRecordSource(
        db_path,
        table="egw_addressbook",
        id_column="contact_id",
        owner_column="contact_owner",
        columns=CONTACT_COLUMNS,
        live_clause="contact_tid IS NULL OR contact_tid != 'D'",
        order_by="contact_id",
    )
