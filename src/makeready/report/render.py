"""Plain-text rendering of the briefing for terminal output."""

from makeready.core.dates import format_display_date
from makeready.report.model import ReportModel
from makeready.report.models import SERVICE_REQUEST_URL, DateRange, Task
from makeready.report.status import status_category


def format_task_lines(task: Task, base_url: str = SERVICE_REQUEST_URL) -> list[str]:
    """Format one task as indented text lines."""
    time = f"{task.time}  " if task.time else ""
    category = status_category(task.status).value
    lines = [f"  {time}[{task.status}] ({category}) {task.title}"]

    link = task.link(base_url)
    if link:
        lines.append(f"      {link}")
    if task.description:
        lines.append(f"      {task.description}")

    milestones = task.milestones()
    if milestones:
        lines.append("      " + " | ".join(f"{label}: {value}" for label, value in milestones))

    if task.details.strip():
        lines.extend(f"      {line}" for line in task.details.strip().splitlines())
    return lines


def render_text(
    model: ReportModel,
    window: DateRange | None = None,
    base_url: str = SERVICE_REQUEST_URL,
) -> str:
    """Render the visible part of the report as plain text.

    Args:
        model: Report model to render
        window: Month range to show (defaults to the model's current window)
        base_url: Service request URL prefix for task links

    Returns:
        Multi-line briefing text
    """
    summary = model.summary(window)
    lines = [
        "Make Ready Briefing",
        f"Range: {summary.range_label} "
        f"({summary.months_selected} of {summary.months_total} months, "
        f"{summary.task_count} total tasks)",
        "",
    ]

    buckets = model.visible_date_buckets(window)
    if not buckets:
        if model.sorted_date_buckets():
            lines.append("No months selected. Choose a month range to show tasks.")
        else:
            lines.append("No tasks found in the data")
        return "\n".join(lines)

    for bucket in buckets:
        lines.append(format_display_date(bucket))
        lines.append("-" * 40)
        for task in model.groups[bucket]:
            lines.extend(format_task_lines(task, base_url))
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"
