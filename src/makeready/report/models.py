"""Data models for the make-ready report."""

from __future__ import annotations

from dataclasses import dataclass, field

from makeready.core.dates import NO_DATE

SERVICE_REQUEST_URL = "https://app.equips.com/service-requests"

# Task attribute → canonical record key
CANONICAL_KEYS: dict[str, str] = {
    "date": "date",
    "time": "time",
    "status": "status",
    "title": "title",
    "description": "description",
    "details": "details",
    "cp_walk_date": "cpWalkDate",
    "evs": "evs",
    "key_release": "keyRelease",
    "hhg": "hhg",
    "move_in": "moveIn",
    "ntv": "ntv",
    "vacate": "vacate",
    "open_wos": "openWOs",
    "kti": "kti",
    "service_request_id": "serviceRequestId",
}

# Milestone attributes in display order
MILESTONE_LABELS: tuple[tuple[str, str], ...] = (
    ("cp_walk_date", "CP Walk Date"),
    ("evs", "EVS"),
    ("key_release", "Key Release"),
    ("hhg", "HHG"),
    ("move_in", "Move In"),
    ("ntv", "NTV"),
    ("vacate", "Vacate"),
    ("open_wos", "Open WOs"),
    ("kti", "KTI"),
)


@dataclass
class Task:
    """One normalized line item in the briefing.

    ``raw`` holds every field of the source record; canonical fields are
    layered on top of it by ``to_dict``.
    """

    date: str = ""
    time: str = ""
    status: str = "UNKNOWN"
    title: str = "Untitled"
    description: str = ""
    details: str = ""
    cp_walk_date: str = ""
    evs: str = ""
    key_release: str = ""
    hhg: str = ""
    move_in: str = ""
    ntv: str = ""
    vacate: str = ""
    open_wos: str = ""
    kti: str = ""
    service_request_id: str = ""
    raw: dict = field(default_factory=dict)

    @property
    def bucket(self) -> str:
        """Date bucket this task is grouped under."""
        return self.date or NO_DATE

    def link(self, base_url: str = SERVICE_REQUEST_URL) -> str | None:
        """Service request URL, or None when there is no request ID."""
        if not self.service_request_id.strip():
            return None
        return f"{base_url.rstrip('/')}/{self.service_request_id.strip()}"

    def milestones(self) -> list[tuple[str, str]]:
        """Non-blank milestone fields as ``(label, value)`` pairs."""
        pairs = []
        for attr, label in MILESTONE_LABELS:
            value = getattr(self, attr)
            if value.strip():
                pairs.append((label, value))
        return pairs

    def to_dict(self) -> dict:
        """Original record fields with canonical fields layered on top."""
        canonical = {key: getattr(self, attr) for attr, key in CANONICAL_KEYS.items()}
        return {**self.raw, **canonical}


@dataclass
class MonthGroup:
    """Date buckets falling in one calendar month."""

    year: int
    month: int
    label: str
    dates: list[str] = field(default_factory=list)

    @property
    def key(self) -> tuple[int, int]:
        """Year-qualified grouping key."""
        return (self.year, self.month)


@dataclass(frozen=True)
class DateRange:
    """Selected month range, as inclusive indices into the month timeline."""

    start: int = 0
    end: int = 0

    def clamped(self, last_index: int) -> DateRange:
        """Clamp both ends into ``[0, last_index]`` with ``start <= end``."""
        if last_index < 0:
            return DateRange(0, 0)
        start = max(0, min(self.start, last_index))
        end = max(start, min(self.end, last_index))
        return DateRange(start, end)


@dataclass
class WindowSummary:
    """Timeline metadata for the selected range."""

    range_label: str
    months_selected: int
    months_total: int
    task_count: int
