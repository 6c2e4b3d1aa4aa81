"""Status label classification for badge colors."""

from enum import Enum


class StatusCategory(Enum):
    """Display category for a status label."""

    COMPLETE = "complete"
    IN_PROGRESS = "in-progress"
    PENDING = "pending"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    OTHER = "other"


# Checked in order; the first category with a matching keyword wins
_KEYWORDS: tuple[tuple[StatusCategory, tuple[str, ...]], ...] = (
    (StatusCategory.COMPLETE, ("complete",)),
    (StatusCategory.IN_PROGRESS, ("progress", "active")),
    (StatusCategory.PENDING, ("pending", "waiting")),
    (StatusCategory.OVERDUE, ("overdue", "late")),
    (StatusCategory.CANCELLED, ("cancelled", "stopped")),
)


def status_category(status: str | None) -> StatusCategory:
    """Classify a status label by case-insensitive keyword match.

    ``"done"`` as an exact label also counts as complete.
    """
    normalized = (status or "").lower()
    if normalized == "done":
        return StatusCategory.COMPLETE
    for category, keywords in _KEYWORDS:
        if any(keyword in normalized for keyword in keywords):
            return category
    return StatusCategory.OTHER
