"""Tests for makeready.equips.enrich."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import httpx
import pytest
import respx

from makeready.equips.client import EquipsClient
from makeready.equips.enrich import (
    enrich_record,
    enrich_service_requests,
    flatten_custom_fields,
    format_due_date,
    format_request_status,
    is_actionable,
    resolve_status_references,
    strip_workflow_prefix,
)
from makeready.equips.models import StatusReference
from makeready.exceptions import TransientNetworkError

BASE_URL = "https://test.equips.com"

FEB_23_2025 = 1740268800000
JUN_01_2024 = 1717200000000


def _mock_client(references: dict) -> MagicMock:
    """Client whose get_status_reference returns or raises per reference ID."""
    client = MagicMock(spec=EquipsClient)

    async def lookup(reference_id):
        result = references[reference_id]
        if isinstance(result, Exception):
            raise result
        return result

    client.get_status_reference = AsyncMock(side_effect=lookup)
    return client


class TestFormatRequestStatus:
    """Tests for format_request_status."""

    def test_known_value(self):
        assert format_request_status("internalDispatch") == "Internal Dispatch"

    def test_unknown_value_uses_generic_formatter(self):
        assert format_request_status("fooBar") == "Foo Bar"

    def test_single_word(self):
        assert format_request_status("pending") == "Pending"


class TestStripWorkflowPrefix:
    """Tests for strip_workflow_prefix."""

    def test_strips_prefix(self):
        assert strip_workflow_prefix("Capital Projects: Turnover") == "Turnover"

    def test_no_prefix(self):
        assert strip_workflow_prefix("Turnover") == "Turnover"

    def test_empty(self):
        assert strip_workflow_prefix("") == ""


class TestFormatDueDate:
    """Tests for format_due_date."""

    def test_epoch(self):
        assert format_due_date(FEB_23_2025) == "2025-02-23"

    def test_iso_string_cut_to_date(self):
        assert format_due_date("2025-02-23T18:30:00Z") == "2025-02-23"

    def test_other_values(self):
        assert format_due_date(None) == ""
        assert format_due_date("not a date") == ""
        assert format_due_date(12) == ""


class TestFlattenCustomFields:
    """Tests for flatten_custom_fields."""

    def test_year_elided_when_all_dates_current_year(self):
        flattened = flatten_custom_fields({"move_in": FEB_23_2025}, today=date(2025, 6, 1))
        assert flattened == {"moveIn": "Feb 23"}

    def test_year_shown_when_any_date_other_year(self):
        flattened = flatten_custom_fields(
            {"move_in": FEB_23_2025, "vacate": JUN_01_2024}, today=date(2025, 6, 1)
        )
        assert flattened == {"moveIn": "Feb 23, 2025", "vacate": "Jun 1, 2024"}

    def test_year_shown_when_not_current_year(self):
        flattened = flatten_custom_fields({"move_in": FEB_23_2025}, today=date(2026, 1, 1))
        assert flattened == {"moveIn": "Feb 23, 2025"}

    def test_strings_pass_through_and_blanks_become_empty(self):
        flattened = flatten_custom_fields(
            {"evs": "TBD", "hhg": "  ", "ntv": None, "kti": 7}, today=date(2025, 1, 1)
        )
        assert flattened == {"evs": "TBD", "hhg": "", "ntv": "", "kti": ""}

    def test_unmapped_and_absent_keys_omitted(self):
        assert flatten_custom_fields({"other": "x"}) == {}

    def test_non_dict(self):
        assert flatten_custom_fields(None) == {}

    def test_timezone_applied(self):
        flattened = flatten_custom_fields(
            {"move_in": FEB_23_2025},
            tz=ZoneInfo("America/Los_Angeles"),
            today=date(2025, 1, 1),
        )
        assert flattened == {"moveIn": "Feb 22"}


class TestIsActionable:
    """Tests for is_actionable."""

    def test_with_reference(self, service_request):
        assert is_actionable(service_request)

    def test_without_reference(self):
        assert not is_actionable({"id": "x"})
        assert not is_actionable({"serviceWorkflowToServiceStatusId": None})
        assert not is_actionable({"serviceWorkflowToServiceStatusId": ""})


class TestResolveStatusReferences:
    """Tests for resolve_status_references."""

    async def test_deduplicates_lookups(self):
        client = _mock_client(
            {"a": StatusReference("a", "Open"), "b": StatusReference("b", "Done")}
        )

        resolved = await resolve_status_references(client, ["a", "b", "a", "a"])

        assert set(resolved) == {"a", "b"}
        assert client.get_status_reference.await_count == 2

    async def test_failure_is_isolated(self, caplog):
        client = _mock_client(
            {
                "a": StatusReference("a", "Open"),
                "b": TransientNetworkError("timed out"),
                "c": StatusReference("c", "Closed"),
            }
        )

        resolved = await resolve_status_references(client, ["a", "b", "c"], batch_size=2)

        assert set(resolved) == {"a", "c"}
        assert "status reference b" in caplog.text

    async def test_batches(self):
        ids = [str(i) for i in range(25)]
        client = _mock_client({i: StatusReference(i, "Open") for i in ids})

        resolved = await resolve_status_references(client, ids, batch_size=10)

        assert len(resolved) == 25


class TestEnrichRecord:
    """Tests for enrich_record."""

    def test_adds_fields_and_keeps_original(self, service_request):
        references = {"ref-1": StatusReference("ref-1", "Scheduled", "Capital Projects: Turnover")}

        enriched = enrich_record(service_request, references, today=date(2025, 3, 1))

        assert enriched["statusName"] == "Scheduled"
        assert enriched["workflowName"] == "Turnover"
        assert enriched["dueDateFormatted"] == "2025-02-23"
        assert enriched["moveIn"] == "Feb 23"
        assert enriched["evs"] == "TBD"
        assert enriched["title"] == service_request["title"]
        assert enriched["customFields"] == service_request["customFields"]
        assert "statusName" not in service_request

    def test_unresolved_reference_falls_back_to_request_status(self, service_request):
        enriched = enrich_record(service_request, {}, today=date(2025, 3, 1))

        assert enriched["statusName"] == "Internal Dispatch"
        assert enriched["workflowName"] == ""

    def test_unknown_status(self):
        enriched = enrich_record({"serviceWorkflowToServiceStatusId": "x"}, {})
        assert enriched["statusName"] == "Unknown"


class TestEnrichServiceRequests:
    """End-to-end tests for the enrichment pipeline."""

    @pytest.mark.parametrize(
        ("today", "expected"),
        [(date(2025, 7, 4), "Feb 23"), (date(2026, 1, 2), "Feb 23, 2025")],
    )
    @respx.mock
    async def test_filters_resolves_and_flattens(self, today, expected):
        respx.post(f"{BASE_URL}/public/serviceRequest/search").mock(
            return_value=httpx.Response(
                200,
                json={
                    "data": [
                        {
                            "id": "1",
                            "serviceWorkflowToServiceStatusId": "ref-1",
                            "customFields": {"move_in": FEB_23_2025},
                        },
                        {"id": "2", "customFields": {"move_in": FEB_23_2025}},
                    ]
                },
            )
        )
        lookup = respx.get(f"{BASE_URL}/public/serviceWorkflowToServiceStatus/ref-1").mock(
            return_value=httpx.Response(200, json={"serviceStatus": {"name": "Scheduled"}})
        )

        async with EquipsClient(api_key="k", base_url=BASE_URL) as client:
            records = await enrich_service_requests(client, {}, today=today)

        assert len(records) == 1
        assert records[0]["id"] == "1"
        assert records[0]["moveIn"] == expected
        assert records[0]["statusName"] == "Scheduled"
        assert lookup.call_count == 1

    @respx.mock
    async def test_failed_lookup_does_not_abort(self):
        respx.post(f"{BASE_URL}/public/serviceRequest/search").mock(
            return_value=httpx.Response(
                200,
                json=[
                    {"id": "1", "serviceWorkflowToServiceStatusId": "ok"},
                    {
                        "id": "2",
                        "serviceWorkflowToServiceStatusId": "bad",
                        "requestStatus": "onHold",
                    },
                ],
            )
        )
        respx.get(f"{BASE_URL}/public/serviceWorkflowToServiceStatus/ok").mock(
            return_value=httpx.Response(200, json={"name": "Open"})
        )
        respx.get(f"{BASE_URL}/public/serviceWorkflowToServiceStatus/bad").mock(
            return_value=httpx.Response(404, text="not found")
        )

        async with EquipsClient(api_key="k", base_url=BASE_URL) as client:
            records = await enrich_service_requests(client, today=date(2025, 1, 1))

        assert [r["statusName"] for r in records] == ["Open", "On Hold"]
