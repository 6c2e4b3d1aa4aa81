"""Report normalization, grouping and windowing."""

from makeready.report.fields import FIELD_SOURCES, reconcile_record, records_from_payload
from makeready.report.model import ReportModel
from makeready.report.models import DateRange, MonthGroup, Task, WindowSummary
from makeready.report.status import StatusCategory, status_category

__all__ = [
    "FIELD_SOURCES",
    "DateRange",
    "MonthGroup",
    "ReportModel",
    "StatusCategory",
    "Task",
    "WindowSummary",
    "reconcile_record",
    "records_from_payload",
    "status_category",
]
