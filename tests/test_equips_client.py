"""Tests for makeready.equips.client module."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from makeready.equips.client import EquipsClient
from makeready.exceptions import EquipsAPIError, TransientNetworkError, UpstreamShapeError

BASE_URL = "https://test.equips.com"
SEARCH_URL = f"{BASE_URL}/public/serviceRequest/search"


@pytest.fixture
def mock_api_key():
    """Mock the API key function."""
    with patch("makeready.equips.client.get_equips_api_key") as mock:
        mock.return_value = "test-key"
        yield mock


@pytest.fixture
def no_retry_wait():
    """Skip the rate-limit backoff sleep."""
    with patch.object(EquipsClient._request.retry, "sleep", new_callable=AsyncMock):
        yield


class TestEquipsClientInit:
    """Tests for client initialization."""

    def test_init_loads_api_key(self, mock_api_key):
        client = EquipsClient(base_url=f"{BASE_URL}/")
        assert client.api_key == "test-key"
        assert client.base_url == BASE_URL
        assert client.client is None

    def test_explicit_key_skips_lookup(self, mock_api_key):
        client = EquipsClient(api_key="explicit")
        assert client.api_key == "explicit"
        mock_api_key.assert_not_called()


class TestEquipsClientContextManager:
    """Tests for async context manager behavior."""

    async def test_exit_closes_client(self, mock_api_key):
        client = EquipsClient(base_url=BASE_URL)
        async with client:
            assert client.client is not None
        assert client.client is None

    async def test_request_outside_context_fails(self, mock_api_key):
        client = EquipsClient(base_url=BASE_URL)
        with pytest.raises(RuntimeError):
            await client.search_service_requests({})


class TestSearchServiceRequests:
    """Tests for search_service_requests method."""

    @respx.mock
    async def test_sends_filters_and_paging(self, mock_api_key):
        route = respx.post(SEARCH_URL).mock(
            return_value=httpx.Response(200, json={"data": [{"id": "1"}]})
        )

        async with EquipsClient(base_url=BASE_URL, page_size=25) as client:
            records = await client.search_service_requests({"siteId": "s1"}, skip=50)

        assert records == [{"id": "1"}]
        request = route.calls.last.request
        assert json.loads(request.content) == {"siteId": "s1", "take": 25, "skip": 50}
        assert request.headers["Authorization"] == "api-key test-key"

    @respx.mock
    async def test_accepts_bare_list(self, mock_api_key):
        respx.post(SEARCH_URL).mock(return_value=httpx.Response(200, json=[{"id": "1"}, 5]))

        async with EquipsClient(base_url=BASE_URL) as client:
            records = await client.search_service_requests()

        assert records == [{"id": "1"}]

    @respx.mock
    async def test_missing_data_is_empty(self, mock_api_key):
        respx.post(SEARCH_URL).mock(return_value=httpx.Response(200, json={"data": None}))

        async with EquipsClient(base_url=BASE_URL) as client:
            assert await client.search_service_requests() == []

    @respx.mock
    async def test_non_list_data_raises(self, mock_api_key):
        respx.post(SEARCH_URL).mock(return_value=httpx.Response(200, json={"data": "oops"}))

        async with EquipsClient(base_url=BASE_URL) as client:
            with pytest.raises(UpstreamShapeError):
                await client.search_service_requests()

    @respx.mock
    async def test_invalid_json_raises(self, mock_api_key):
        respx.post(SEARCH_URL).mock(return_value=httpx.Response(200, text="<html>"))

        async with EquipsClient(base_url=BASE_URL) as client:
            with pytest.raises(UpstreamShapeError):
                await client.search_service_requests()

    @respx.mock
    async def test_error_status_raises(self, mock_api_key):
        respx.post(SEARCH_URL).mock(return_value=httpx.Response(500, text="boom"))

        async with EquipsClient(base_url=BASE_URL) as client:
            with pytest.raises(EquipsAPIError) as exc_info:
                await client.search_service_requests()

        assert exc_info.value.status_code == 500
        assert "returned 500: boom" in str(exc_info.value)

    @respx.mock
    async def test_connection_error_is_transient(self, mock_api_key):
        respx.post(SEARCH_URL).mock(side_effect=httpx.ConnectError("refused"))

        async with EquipsClient(base_url=BASE_URL) as client:
            with pytest.raises(TransientNetworkError):
                await client.search_service_requests()

    @respx.mock
    async def test_retries_rate_limit(self, mock_api_key, no_retry_wait):
        route = respx.post(SEARCH_URL).mock(
            side_effect=[
                httpx.Response(429),
                httpx.Response(200, json={"data": [{"id": "1"}]}),
            ]
        )

        async with EquipsClient(base_url=BASE_URL) as client:
            records = await client.search_service_requests()

        assert records == [{"id": "1"}]
        assert route.call_count == 2


class TestGetAllServiceRequests:
    """Tests for pagination."""

    @respx.mock
    async def test_paginates_until_short_page(self, mock_api_key):
        route = respx.post(SEARCH_URL).mock(
            side_effect=[
                httpx.Response(200, json={"data": [{"id": "1"}, {"id": "2"}]}),
                httpx.Response(200, json={"data": [{"id": "3"}]}),
            ]
        )

        async with EquipsClient(base_url=BASE_URL, page_size=2) as client:
            records = await client.get_all_service_requests({})

        assert [r["id"] for r in records] == ["1", "2", "3"]
        skips = [json.loads(call.request.content)["skip"] for call in route.calls]
        assert skips == [0, 2]

    @respx.mock
    async def test_stops_at_max_records(self, mock_api_key):
        route = respx.post(SEARCH_URL).mock(
            return_value=httpx.Response(200, json={"data": [{"id": "x"}, {"id": "y"}]})
        )

        async with EquipsClient(base_url=BASE_URL, page_size=2, max_records=4) as client:
            records = await client.get_all_service_requests({})

        assert len(records) == 4
        assert route.call_count == 2


class TestGetStatusReference:
    """Tests for get_status_reference method."""

    @respx.mock
    async def test_nested_names(self, mock_api_key):
        respx.get(f"{BASE_URL}/public/serviceWorkflowToServiceStatus/ref-1").mock(
            return_value=httpx.Response(
                200,
                json={
                    "serviceStatus": {"name": "Scheduled"},
                    "serviceWorkflow": {"name": "Capital Projects: Turnover"},
                },
            )
        )

        async with EquipsClient(base_url=BASE_URL) as client:
            ref = await client.get_status_reference("ref-1")

        assert ref.id == "ref-1"
        assert ref.status_name == "Scheduled"
        assert ref.workflow_name == "Capital Projects: Turnover"
        assert ref.is_resolved

    @respx.mock
    async def test_flat_name(self, mock_api_key):
        respx.get(f"{BASE_URL}/public/serviceWorkflowToServiceStatus/ref-2").mock(
            return_value=httpx.Response(200, json={"name": "Open"})
        )

        async with EquipsClient(base_url=BASE_URL) as client:
            ref = await client.get_status_reference("ref-2")

        assert ref.status_name == "Open"
        assert ref.workflow_name == ""
