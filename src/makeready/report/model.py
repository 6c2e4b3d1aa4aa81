"""Date-grouped report model with a month-range window.

Tasks are bucketed by their ``date`` string, buckets are sorted
chronologically (``"No Date"`` last), and buckets with a real date are
grouped into a month timeline. A ``DateRange`` of month indices selects
which buckets are visible. Buckets without a parseable date are always
visible, whatever the range.
"""

import logging
from collections.abc import Iterable
from datetime import date

from makeready.core.dates import NO_DATE, month_key, parse_local_date, sort_date_buckets
from makeready.report.fields import reconcile_records
from makeready.report.models import DateRange, MonthGroup, Task, WindowSummary

logger = logging.getLogger(__name__)

NO_MONTHS = "No months available"
ALL_MONTHS = "All months"


class ReportModel:
    """Grouped, sorted and windowed view over one fetch cycle's tasks.

    Usage::

        model = ReportModel.from_records(records)
        model.set_window(DateRange(0, 2))
        for bucket in model.visible_date_buckets():
            for task in model.groups[bucket]:
                ...
    """

    def __init__(self, tasks: Iterable[Task], today: date | None = None) -> None:
        """Build groups and the month timeline, then select the default window.

        Args:
            tasks: Normalized tasks
            today: Reference date for the default window (defaults to today)
        """
        self.tasks = list(tasks)
        self.groups = self.group(self.tasks)
        self._sorted_buckets = sort_date_buckets(self.groups)
        self._timeline = self._build_timeline()
        self.window = self.default_window(today)

    @classmethod
    def from_records(cls, records: Iterable[dict], today: date | None = None) -> "ReportModel":
        """Reconcile raw or enriched records and build the model."""
        return cls(reconcile_records(records), today=today)

    @staticmethod
    def group(tasks: Iterable[Task]) -> dict[str, list[Task]]:
        """Partition tasks by date bucket, keeping input order within each bucket."""
        groups: dict[str, list[Task]] = {}
        for task in tasks:
            groups.setdefault(task.bucket, []).append(task)
        return groups

    def sorted_date_buckets(self) -> list[str]:
        """Date buckets in chronological order, ``"No Date"`` last."""
        return list(self._sorted_buckets)

    def _build_timeline(self) -> list[MonthGroup]:
        months: dict[tuple[int, int], MonthGroup] = {}
        for bucket in self._sorted_buckets:
            parsed = parse_local_date(bucket)
            if parsed is None:
                continue
            key = (parsed.year, parsed.month)
            if key not in months:
                months[key] = MonthGroup(parsed.year, parsed.month, month_key(parsed))
            months[key].dates.append(bucket)
        return sorted(months.values(), key=lambda m: m.key)

    def month_timeline(self) -> list[MonthGroup]:
        """Distinct months spanned by the dated buckets, in order."""
        return list(self._timeline)

    @property
    def last_index(self) -> int:
        """Index of the last month in the timeline (-1 if empty)."""
        return len(self._timeline) - 1

    @property
    def has_undated(self) -> bool:
        """True if any bucket is shown regardless of the window."""
        dated = {bucket for month in self._timeline for bucket in month.dates}
        return any(bucket not in dated for bucket in self._sorted_buckets)

    def month_index(self, label: str) -> int | None:
        """Timeline index of a month label like ``"Feb 2025"`` (case-insensitive)."""
        wanted = label.strip().lower()
        for index, month in enumerate(self._timeline):
            if month.label.lower() == wanted:
                return index
        return None

    def default_window(self, today: date | None = None) -> DateRange:
        """From the current month (or the next month with data) to the end.

        If every month is in the past, only the last month is selected.
        """
        if not self._timeline:
            return DateRange(0, 0)

        today = today or date.today()
        current = (today.year, today.month)
        start = next(
            (i for i, month in enumerate(self._timeline) if month.key >= current),
            self.last_index,
        )
        return DateRange(start, self.last_index)

    def set_window(self, window: DateRange) -> DateRange:
        """Select a month range, clamped into the timeline."""
        self.window = window.clamped(self.last_index)
        logger.debug("Window set to %s", self.range_label(self.window))
        return self.window

    def reset_window(self) -> DateRange:
        """Select the entire timeline."""
        self.window = DateRange(0, max(self.last_index, 0))
        return self.window

    def selected_months(self, window: DateRange | None = None) -> list[MonthGroup]:
        """Months covered by the window."""
        if not self._timeline:
            return []
        window = (window or self.window).clamped(self.last_index)
        return self._timeline[window.start : window.end + 1]

    def visible_date_buckets(self, window: DateRange | None = None) -> list[str]:
        """Sorted buckets in the selected months, plus every undated bucket."""
        selected = {bucket for month in self.selected_months(window) for bucket in month.dates}
        dated = {bucket for month in self._timeline for bucket in month.dates}
        return [
            bucket
            for bucket in self._sorted_buckets
            if bucket in selected or bucket not in dated
        ]

    def visible_tasks(self, window: DateRange | None = None) -> list[Task]:
        """Tasks in visible buckets, in bucket order then input order."""
        buckets = self.visible_date_buckets(window)
        return [task for bucket in buckets for task in self.groups[bucket]]

    def range_label(self, window: DateRange | None = None) -> str:
        """Human-readable label for the selected range."""
        if not self._timeline:
            return NO_MONTHS
        window = (window or self.window).clamped(self.last_index)
        if window.start == 0 and window.end == self.last_index:
            return ALL_MONTHS
        start = self._timeline[window.start].label
        end = self._timeline[window.end].label
        if start == end:
            return start
        return f"{start} – {end}"

    def month_task_counts(self) -> list[tuple[str, int, float]]:
        """Per-month task count and intensity relative to the busiest month."""
        counts = [
            (month.label, sum(len(self.groups[bucket]) for bucket in month.dates))
            for month in self._timeline
        ]
        busiest = max((count for _, count in counts), default=0)
        return [(label, count, count / max(busiest, 1)) for label, count in counts]

    def summary(self, window: DateRange | None = None) -> WindowSummary:
        """Timeline metadata for the selected range."""
        return WindowSummary(
            range_label=self.range_label(window),
            months_selected=len(self.selected_months(window)),
            months_total=len(self._timeline),
            task_count=len(self.visible_tasks(window)),
        )

    @property
    def no_date_tasks(self) -> list[Task]:
        """Tasks in the ``"No Date"`` bucket."""
        return list(self.groups.get(NO_DATE, []))
