"""Equips public API client."""

import logging
from typing import Self
from urllib.parse import quote

import httpx
from tenacity import (
    RetryError,
    retry,
    retry_if_result,
    stop_after_attempt,
    wait_exponential_jitter,
)

from makeready.core.config import get_equips_api_key
from makeready.equips.models import StatusReference
from makeready.exceptions import EquipsAPIError, TransientNetworkError, UpstreamShapeError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.equips.com"
SEARCH_PATH = "/public/serviceRequest/search"
STATUS_REFERENCE_PATH = "/public/serviceWorkflowToServiceStatus"

PAGE_SIZE = 500
MAX_RECORDS = 10000

# Rate limiting configuration
MAX_RETRIES = 5
MIN_WAIT_SECONDS = 1
MAX_WAIT_SECONDS = 30


def _is_rate_limited(response: httpx.Response) -> bool:
    """Check if response indicates rate limiting (429)."""
    return response.status_code == 429


def _log_retry(retry_state) -> None:
    """Log retry attempts."""
    logger.warning(f"Rate limited, retry attempt {retry_state.attempt_number + 1}")


class EquipsClient:
    """Async client for the Equips public API.

    Usage::

        async with EquipsClient() as client:
            records = await client.get_all_service_requests({})
            ref = await client.get_status_reference(records[0]["serviceWorkflowToServiceStatusId"])
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        page_size: int = PAGE_SIZE,
        max_records: int = MAX_RECORDS,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Equips API key. Read from EQUIPS_API_KEY if not given.
            base_url: API base URL
            timeout: HTTP request timeout in seconds
            page_size: Records requested per search page
            max_records: Stop paginating once this many records are fetched
        """
        self.api_key = api_key or get_equips_api_key()
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.max_records = max_records
        self._timeout = timeout
        self.client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        """Enter context manager - create HTTP client."""
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"api-key {self.api_key}",
            },
            timeout=self._timeout,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - close HTTP client."""
        if self.client:
            await self.client.aclose()
            self.client = None

    @retry(
        retry=retry_if_result(_is_rate_limited),
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential_jitter(initial=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS),
        before_sleep=_log_retry,
        reraise=True,
    )
    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Make an HTTP request, retrying on 429 responses.

        Raises:
            TransientNetworkError: On timeout or connection failure
        """
        if not self.client:
            raise RuntimeError("Client must be used as async context manager")

        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise TransientNetworkError(f"EQUIPS {path} timed out") from e
        except httpx.HTTPError as e:
            raise TransientNetworkError(f"EQUIPS {path} request failed: {e}") from e

        if response.status_code == 429:
            logger.warning(f"Rate limited (429) on {method} {path}")

        return response

    async def _call(self, method: str, path: str, **kwargs) -> object:
        """Make a request and decode the JSON body.

        Raises:
            EquipsAPIError: On a non-success status (including exhausted 429 retries)
            UpstreamShapeError: If the body is not valid JSON
        """
        try:
            response = await self._request(method, path, **kwargs)
        except RetryError as e:
            raise EquipsAPIError(path, 429, "rate limited after max retries") from e

        if not response.is_success:
            raise EquipsAPIError(path, response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamShapeError(f"EQUIPS {path} returned invalid JSON") from e

    async def search_service_requests(
        self,
        filters: dict | None = None,
        take: int | None = None,
        skip: int = 0,
    ) -> list[dict]:
        """Fetch one page of service requests.

        Args:
            filters: Search body passed through to the API
            take: Page size (defaults to the client's page size)
            skip: Offset of the first record

        Returns:
            List of raw service request dicts
        """
        body = {**(filters or {}), "take": take or self.page_size, "skip": skip}
        result = await self._call("POST", SEARCH_PATH, json=body)

        if isinstance(result, list):
            items = result
        elif isinstance(result, dict):
            items = result.get("data") or []
            if not isinstance(items, list):
                raise UpstreamShapeError(f"EQUIPS {SEARCH_PATH} returned non-list data")
        else:
            raise UpstreamShapeError(f"EQUIPS {SEARCH_PATH} returned {type(result).__name__}")

        return [item for item in items if isinstance(item, dict)]

    async def get_all_service_requests(self, filters: dict | None = None) -> list[dict]:
        """Fetch all service requests with automatic pagination.

        Pages are requested sequentially until a short page is returned
        or ``max_records`` is reached.

        Args:
            filters: Search body passed through to the API

        Returns:
            List of all raw service request dicts
        """
        records: list[dict] = []
        page = 0

        while True:
            items = await self.search_service_requests(
                filters, take=self.page_size, skip=page * self.page_size
            )
            records.extend(items)
            logger.info(
                f"Page {page}: fetched {len(items)} records (total so far: {len(records)})"
            )

            if len(items) < self.page_size or len(records) >= self.max_records:
                break
            page += 1

        logger.info(f"Total service requests fetched: {len(records)}")
        return records

    async def get_status_reference(self, reference_id: str) -> StatusReference:
        """Fetch a serviceWorkflowToServiceStatus record by ID.

        Args:
            reference_id: The serviceWorkflowToServiceStatusId value

        Returns:
            StatusReference with status and workflow names (empty if absent)
        """
        path = f"{STATUS_REFERENCE_PATH}/{quote(str(reference_id), safe='')}"
        data = await self._call("GET", path)
        return StatusReference.from_api(reference_id, data)
