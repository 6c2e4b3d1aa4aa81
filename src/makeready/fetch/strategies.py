"""Delivery strategies for retrieving enriched service requests.

Each strategy makes one delivery attempt per ``fetch()`` call and
returns the enriched record list, or raises a ``FetchAttemptError``
subclass. Retrying and fallback between strategies belong to the
orchestrator.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from makeready.core.config import BriefingConfig
from makeready.equips.client import EquipsClient
from makeready.equips.enrich import enrich_service_requests
from makeready.exceptions import TransientNetworkError, UpstreamShapeError
from makeready.report.fields import records_from_payload

logger = logging.getLogger(__name__)


def parse_envelope(payload: object, source: str = "response") -> list[dict]:
    """Extract records from a ``{"data": [...]}`` or ``{"error": ...}`` envelope.

    Args:
        payload: Decoded JSON body
        source: Name used in error messages

    Returns:
        Records from the envelope (tabular exports are converted to dicts)

    Raises:
        UpstreamShapeError: If the body carries an error or has no data list
    """
    if isinstance(payload, list):
        return records_from_payload(payload)
    if not isinstance(payload, dict):
        raise UpstreamShapeError(f"{source} returned {type(payload).__name__}, expected object")
    if payload.get("error"):
        raise UpstreamShapeError(f"{source} returned error: {payload['error']}")
    if not isinstance(payload.get("data"), list):
        raise UpstreamShapeError(f"{source} response has no data list")
    return records_from_payload(payload)


class FetchStrategy(ABC):
    """One way of delivering the enriched dataset."""

    name: str = "strategy"

    @abstractmethod
    async def fetch(self) -> list[dict]:
        """Make one delivery attempt.

        Raises:
            FetchAttemptError: On timeout, bad status or malformed body
        """


class ProxyStrategy(FetchStrategy):
    """Fetch pre-enriched records from the enrichment service."""

    name = "proxy"

    def __init__(
        self,
        url: str,
        key: str = "",
        search_body: dict | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.url = url
        self.key = key
        self.search_body = search_body or {}
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.key:
            headers["Authorization"] = f"Bearer {self.key}"
            headers["apikey"] = self.key
        return headers

    async def fetch(self) -> list[dict]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.url, json=self.search_body, headers=self._headers()
                )
        except httpx.TimeoutException as e:
            raise TransientNetworkError(f"Proxy {self.url} timed out") from e
        except httpx.HTTPError as e:
            raise TransientNetworkError(f"Proxy {self.url} request failed: {e}") from e

        if not response.is_success:
            raise TransientNetworkError(
                f"Proxy {self.url} returned {response.status_code}: {response.text}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamShapeError(f"Proxy {self.url} returned invalid JSON") from e

        records = parse_envelope(payload, source=f"Proxy {self.url}")
        logger.info(f"Proxy returned {len(records)} records")
        return records


class DirectStrategy(FetchStrategy):
    """Run the enrichment pipeline in-process against the Equips API."""

    name = "direct"

    def __init__(self, config: BriefingConfig, api_key: str | None = None) -> None:
        self.config = config
        self.api_key = api_key

    async def fetch(self) -> list[dict]:
        async with EquipsClient(
            api_key=self.api_key,
            base_url=self.config.equips_base_url,
            timeout=self.config.request_timeout,
            page_size=self.config.page_size,
            max_records=self.config.max_records,
        ) as client:
            return await enrich_service_requests(
                client,
                self.config.search_body,
                batch_size=self.config.lookup_batch_size,
                tz=self.config.tz,
            )
