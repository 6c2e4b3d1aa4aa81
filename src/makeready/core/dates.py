"""Calendar date helpers for date buckets and epoch timestamps.

Date buckets are plain ``YYYY-MM-DD`` strings (or the ``"No Date"``
sentinel). They are parsed into ``datetime.date`` from their components,
never through a timestamp, so the calendar day never shifts with the
host timezone.

Month and weekday names are fixed English tables rather than
``strftime`` so output does not depend on the process locale.
"""

import re
from collections.abc import Iterable
from datetime import UTC, date, datetime, tzinfo

NO_DATE = "No Date"

# Numbers above this are treated as epoch milliseconds, not small numeric codes
EPOCH_MS_THRESHOLD = 1_000_000_000

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_MONTH_KEY = re.compile(r"^([A-Za-z]{3}) (\d{4})$")
_FALLBACK_FORMATS = ("%m/%d/%Y", "%b %d, %Y", "%B %d, %Y", "%b %d %Y", "%B %d %Y")


def parse_local_date(value: str | None) -> date | None:
    """Parse a date bucket string into a calendar date.

    ``YYYY-MM-DD`` (month and day may be unpadded) is built from its
    components. Anything else is tried as an ISO date with a noon
    time-of-day appended, then as a full ISO timestamp, then as a few
    common US formats.

    Returns:
        The date, or None for empty input, the ``"No Date"`` sentinel,
        or an unparseable string
    """
    if not value or not isinstance(value, str) or value == NO_DATE:
        return None

    value = value.strip()
    match = _ISO_DATE.match(value)
    if match:
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    try:
        return datetime.fromisoformat(f"{value}T12:00:00").date()
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        pass

    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    return None


def format_display_date(value: str) -> str:
    """Format a date bucket as ``Weekday, Mon DD, YYYY``.

    The sentinel and unparseable strings are returned unchanged.
    """
    if value == NO_DATE:
        return value
    parsed = parse_local_date(value)
    if parsed is None:
        return value
    weekday = WEEKDAY_NAMES[parsed.weekday()]
    return f"{weekday}, {MONTH_ABBR[parsed.month - 1]} {parsed.day:02d}, {parsed.year}"


def month_key(value: date) -> str:
    """Month label for a date, e.g. ``"Feb 2025"``."""
    return f"{MONTH_ABBR[value.month - 1]} {value.year}"


def month_start(label: str) -> date | None:
    """First day of the month named by a ``month_key`` label."""
    match = _MONTH_KEY.match(label or "")
    if not match:
        return None
    abbr, year = match.groups()
    try:
        month = MONTH_ABBR.index(abbr.title()) + 1
    except ValueError:
        return None
    return date(int(year), month, 1)


def date_bucket_sort_key(bucket: str) -> tuple[int, int, str]:
    """Sort key for date buckets: chronological, ``"No Date"`` always last.

    Unparseable buckets sort after real dates but before the sentinel.
    """
    if bucket == NO_DATE:
        return (2, 0, "")
    parsed = parse_local_date(bucket)
    if parsed is None:
        return (1, 0, bucket or "")
    return (0, parsed.toordinal(), bucket)


def sort_date_buckets(buckets: Iterable[str]) -> list[str]:
    """Sort date buckets ascending with ``"No Date"`` last."""
    return sorted(buckets, key=date_bucket_sort_key)


def is_epoch_ms(value: object) -> bool:
    """Check if a value looks like an epoch-millisecond timestamp."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return value > EPOCH_MS_THRESHOLD


def epoch_ms_to_date(value: int | float, tz: tzinfo = UTC) -> date | None:
    """Convert epoch milliseconds to a calendar date in ``tz``.

    Returns:
        The date, or None if the value is out of range
    """
    try:
        return datetime.fromtimestamp(value / 1000, tz=tz).date()
    except (OverflowError, OSError, ValueError):
        return None


def epoch_ms_to_iso_date(value: int | float) -> str:
    """Convert epoch milliseconds to a UTC ``YYYY-MM-DD`` string, or ``""``."""
    converted = epoch_ms_to_date(value, UTC)
    return converted.isoformat() if converted else ""


def format_short_date(value: date, include_year: bool = True) -> str:
    """Format as ``Mon D`` or ``Mon D, YYYY``."""
    text = f"{MONTH_ABBR[value.month - 1]} {value.day}"
    if include_year:
        text += f", {value.year}"
    return text
