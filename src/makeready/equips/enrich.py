"""Service request enrichment pipeline.

Turns raw Equips service requests into records ready for the report:

1. Paginated fetch of every service request matching the search body
2. Drop records without a workflow-status reference (not actionable)
3. Resolve each distinct reference to status/workflow names, once each,
   in concurrent batches with per-lookup failure isolation
4. Flatten the nested customFields blob into camelCase display strings

Output records keep every original field; enrichment only adds
``statusName``, ``workflowName``, ``dueDateFormatted`` and the flattened
milestone fields.
"""

import asyncio
import logging
import re
from collections.abc import Iterable
from datetime import UTC, date, datetime, tzinfo

from makeready.core.dates import (
    epoch_ms_to_date,
    epoch_ms_to_iso_date,
    format_short_date,
    is_epoch_ms,
    parse_local_date,
)
from makeready.equips.client import EquipsClient
from makeready.equips.models import (
    CUSTOM_FIELD_MAP,
    STATUS_DISPLAY,
    STATUS_REFERENCE_KEY,
    StatusReference,
)
from makeready.exceptions import ReferenceResolutionError

logger = logging.getLogger(__name__)

LOOKUP_BATCH_SIZE = 10
UNKNOWN_STATUS = "Unknown"

_WORKFLOW_PREFIX = re.compile(r"^[^:]+:\s+")


async def enrich_service_requests(
    client: EquipsClient,
    search_body: dict | None = None,
    *,
    batch_size: int = LOOKUP_BATCH_SIZE,
    tz: tzinfo = UTC,
    today: date | None = None,
) -> list[dict]:
    """Full enrichment pipeline: fetch, filter, resolve, flatten.

    Args:
        client: Open EquipsClient session
        search_body: Search filters passed through to the API
        batch_size: Concurrent status lookups per batch
        tz: Timezone for rendering epoch dates
        today: Reference date for year elision (defaults to today in ``tz``)

    Returns:
        Enriched records
    """
    records = await client.get_all_service_requests(search_body or {})

    relevant = [r for r in records if is_actionable(r)]
    logger.info(f"Filtered to {len(relevant)} records with {STATUS_REFERENCE_KEY}")

    reference_ids = list(dict.fromkeys(str(r[STATUS_REFERENCE_KEY]) for r in relevant))
    references = await resolve_status_references(client, reference_ids, batch_size=batch_size)

    today = today or datetime.now(tz).date()
    return [enrich_record(r, references, tz=tz, today=today) for r in relevant]


def is_actionable(record: dict) -> bool:
    """Check if a record carries a workflow-status reference."""
    value = record.get(STATUS_REFERENCE_KEY)
    return value is not None and value != ""


async def _lookup(client: EquipsClient, reference_id: str) -> StatusReference:
    try:
        return await client.get_status_reference(reference_id)
    except Exception as e:
        raise ReferenceResolutionError(reference_id, e) from e


async def resolve_status_references(
    client: EquipsClient,
    reference_ids: Iterable[str],
    batch_size: int = LOOKUP_BATCH_SIZE,
) -> dict[str, StatusReference]:
    """Resolve distinct status references in concurrent batches.

    A failed lookup is logged and left out of the result; it never
    aborts the batch.

    Args:
        client: Open EquipsClient session
        reference_ids: Reference IDs to resolve (duplicates are looked up once)
        batch_size: Lookups issued together per batch

    Returns:
        Dict mapping reference ID to its resolved StatusReference
    """
    unique_ids = list(dict.fromkeys(reference_ids))
    logger.info(f"Resolving {len(unique_ids)} unique {STATUS_REFERENCE_KEY} values")

    resolved: dict[str, StatusReference] = {}
    for start in range(0, len(unique_ids), batch_size):
        batch = unique_ids[start : start + batch_size]
        results = await asyncio.gather(
            *(_lookup(client, ref_id) for ref_id in batch),
            return_exceptions=True,
        )
        for ref_id, result in zip(batch, results, strict=True):
            if isinstance(result, StatusReference):
                resolved[ref_id] = result
            elif isinstance(result, asyncio.CancelledError):
                raise result
            else:
                logger.warning(str(result))

    named = sum(1 for ref in resolved.values() if ref.is_resolved)
    logger.info(f"Resolved {named} status names")
    return resolved


def format_request_status(request_status: str) -> str:
    """Convert a requestStatus enum value to a display label.

    Known values use the fixed table; anything else gets a space before
    each capital letter and its first letter capitalized.
    """
    if request_status in STATUS_DISPLAY:
        return STATUS_DISPLAY[request_status]
    spaced = re.sub(r"([A-Z])", r" \1", request_status)
    return (spaced[:1].upper() + spaced[1:]).strip()


def strip_workflow_prefix(name: str) -> str:
    """Remove an organizational prefix like ``"Capital Projects: "``."""
    return _WORKFLOW_PREFIX.sub("", name or "").strip()


def format_due_date(value: object) -> str:
    """Normalize a dueDate value to a UTC ``YYYY-MM-DD`` string, or ``""``."""
    if is_epoch_ms(value):
        return epoch_ms_to_iso_date(value)
    if isinstance(value, str):
        parsed = parse_local_date(value.strip()[:10])
        return parsed.isoformat() if parsed else ""
    return ""


def flatten_custom_fields(
    custom_fields: object,
    tz: tzinfo = UTC,
    today: date | None = None,
) -> dict[str, str]:
    """Flatten nested customFields into camelCase display strings.

    Epoch values render as ``Mon D`` when every date in this record falls
    in the current year, otherwise all of them render as ``Mon D, YYYY``.
    Non-blank strings pass through; other values become ``""``. Keys
    absent from the blob are omitted.
    """
    if not isinstance(custom_fields, dict):
        return {}

    today = today or datetime.now(tz).date()

    present = {
        source: custom_fields[source] for source in CUSTOM_FIELD_MAP if source in custom_fields
    }
    dates = {
        source: epoch_ms_to_date(value, tz)
        for source, value in present.items()
        if is_epoch_ms(value)
    }
    years = {d.year for d in dates.values() if d is not None}
    include_year = years != {today.year}

    flattened: dict[str, str] = {}
    for source, value in present.items():
        target = CUSTOM_FIELD_MAP[source]
        parsed = dates.get(source)
        if parsed is not None:
            flattened[target] = format_short_date(parsed, include_year=include_year)
        elif isinstance(value, str) and value.strip():
            flattened[target] = value
        else:
            flattened[target] = ""
    return flattened


def enrich_record(
    record: dict,
    references: dict[str, StatusReference],
    tz: tzinfo = UTC,
    today: date | None = None,
) -> dict:
    """Enrich one record with resolved names and flattened custom fields.

    Args:
        record: Raw service request (not modified)
        references: Resolved status references by ID
        tz: Timezone for rendering epoch dates
        today: Reference date for year elision

    Returns:
        New dict with the original fields plus the enriched ones
    """
    reference = references.get(str(record.get(STATUS_REFERENCE_KEY, "")))

    status_name = reference.status_name if reference else ""
    if not status_name:
        raw_status = record.get("requestStatus")
        if isinstance(raw_status, str) and raw_status:
            status_name = format_request_status(raw_status)
        else:
            status_name = UNKNOWN_STATUS

    return {
        **record,
        "statusName": status_name,
        "workflowName": strip_workflow_prefix(reference.workflow_name) if reference else "",
        "dueDateFormatted": format_due_date(record.get("dueDate")),
        **flatten_custom_fields(record.get("customFields"), tz=tz, today=today),
    }
