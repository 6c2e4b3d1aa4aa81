"""Reconcile arbitrarily shaped records onto the canonical Task fields.

Upstream records have changed shape several times: the legacy tabular
export uses human-readable column headers ("Due Date: Day",
"Status - StatusId → Name"), the direct API uses camelCase, and the
enrichment pipeline adds resolved fields (statusName, dueDateFormatted).
``FIELD_SOURCES`` lists, per canonical field, the source keys to try in
order; the first non-empty value wins.

Nothing here raises. Missing fields fall back to the Task defaults.
"""

import logging
from collections.abc import Iterable

from makeready.core.dates import epoch_ms_to_iso_date, is_epoch_ms
from makeready.report.models import Task

logger = logging.getLogger(__name__)

FIELD_SOURCES: dict[str, tuple[str, ...]] = {
    "date": (
        "Due Date: Day",
        "dueDateFormatted",
        "due_date",
        "dueDate",
        "Due_Date",
        "DueDate",
        "date",
        "Date",
        "created_at",
        "createdAt",
    ),
    "time": ("time", "Time"),
    "status": ("Status - StatusId → Name", "statusName", "status", "Status", "state", "State"),
    "title": ("title", "Title", "name", "Name"),
    "description": ("descriptionText2", "description", "Description", "desc", "Desc"),
    "details": ("details", "Details", "notes", "Notes"),
    "cp_walk_date": ("CP Walk Date", "cpWalkDate", "cp_walk_date"),
    "evs": ("EVS", "evs", "EVS_Date"),
    "key_release": ("Key Release", "keyRelease", "key_release"),
    "hhg": ("HHG", "hhg", "HHG_Date"),
    "move_in": ("Move In", "moveIn", "move_in"),
    "ntv": ("NTV", "ntv", "NTV_Date"),
    "vacate": ("Vacate", "vacate", "Vacate_Date"),
    "open_wos": ("Make Readys - Location → Count Open", "openWOs", "open_wos"),
    "kti": ("KTI", "kti", "KTI_Date"),
    "service_request_id": ("Service Request Id", "serviceRequestId", "service_request_id"),
}

ALL_DAY = "All Day"


def _is_blank(value: object) -> bool:
    return value is None or value == "" or value is False


def _as_text(value: object) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _first_value(record: dict, keys: tuple[str, ...], skip: str | None = None) -> object | None:
    for key in keys:
        value = record.get(key)
        if not _is_blank(value) and value != skip:
            return value
    return None


def reconcile_record(record: dict) -> Task:
    """Map one record of any known shape onto a Task.

    Args:
        record: Raw or enriched record (not modified)

    Returns:
        Task with canonical fields resolved and the full record kept in ``raw``
    """
    if not isinstance(record, dict):
        logger.debug(f"Treating non-dict record as empty: {type(record).__name__}")
        record = {}

    values: dict[str, str] = {}
    for attr, keys in FIELD_SOURCES.items():
        # "All Day" is a placeholder, not a time of day
        value = _first_value(record, keys, skip=ALL_DAY if attr == "time" else None)
        if value is None:
            continue
        if attr == "date" and is_epoch_ms(value):
            value = epoch_ms_to_iso_date(value)
        values[attr] = _as_text(value)

    return Task(**values, raw=dict(record))


def reconcile_records(records: Iterable[dict]) -> list[Task]:
    """Reconcile a list of records, one Task per record."""
    return [reconcile_record(r) for r in records]


def rows_to_records(rows: list, columns: list) -> list[dict]:
    """Convert tabular export rows into records keyed by column name.

    Each column's ``display_name`` is used, else ``name``, else
    ``column_<index>``.
    """
    names = []
    for index, column in enumerate(columns):
        column = column if isinstance(column, dict) else {}
        names.append(column.get("display_name") or column.get("name") or f"column_{index}")

    records = []
    for row in rows:
        if isinstance(row, dict):
            records.append(row)
            continue
        cells = list(row) if isinstance(row, list | tuple) else []
        records.append(
            {name: cells[index] if index < len(cells) else None for index, name in enumerate(names)}
        )
    return records


def records_from_payload(payload: object) -> list[dict]:
    """Extract records from a ``{"data": [...]}`` envelope.

    Handles the tabular export shape (``columns`` alongside row arrays)
    and bare lists. Anything else yields an empty list.
    """
    if isinstance(payload, list):
        return [r for r in payload if isinstance(r, dict)]
    if not isinstance(payload, dict):
        return []

    data = payload.get("data")
    if not isinstance(data, list):
        return []

    columns = payload.get("columns")
    if isinstance(columns, list) and columns:
        logger.debug(f"Tabular export detected with {len(columns)} columns")
        return rows_to_records(data, columns)

    return [r for r in data if isinstance(r, dict)]
