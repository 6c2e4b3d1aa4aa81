"""Fetch cycle with timeout, retry, strategy fallback and cache substitution.

State machine::

    IDLE -> FETCHING -> SUCCESS | DEGRADED | FAILED

Each strategy is tried in order. A strategy gets up to ``max_attempts``
attempts, each bounded by ``timeout`` seconds, with exponential backoff
between attempts. The first success is cached and returned. When every
strategy is exhausted the last cached snapshot is returned as DEGRADED,
or FAILED if there is none.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from makeready.exceptions import (
    CacheUnavailableError,
    ExhaustionError,
    FetchAttemptError,
    TransientNetworkError,
)
from makeready.fetch.cache import CacheStore, load_snapshot, save_snapshot
from makeready.fetch.strategies import FetchStrategy

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0
MAX_ATTEMPTS = 3
BACKOFF_INITIAL = 1.0


class FetchState(Enum):
    """Fetch cycle state."""

    IDLE = "idle"
    FETCHING = "fetching"
    SUCCESS = "success"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass
class FetchResult:
    """Outcome of one fetch cycle."""

    state: FetchState
    data: list[dict] = field(default_factory=list)
    error: Exception | None = None
    cache_timestamp: str | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        """True if there is data to show (fresh or cached)."""
        return self.state in (FetchState.SUCCESS, FetchState.DEGRADED)


class FetchOrchestrator:
    """Run one fetch cycle across ordered delivery strategies.

    Usage::

        orchestrator = FetchOrchestrator([ProxyStrategy(url, key)], cache=store)
        result = await orchestrator.fetch()
        if result.ok:
            model = ReportModel.from_records(result.data)
    """

    def __init__(
        self,
        strategies: Sequence[FetchStrategy],
        cache: CacheStore | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = MAX_ATTEMPTS,
        backoff_initial: float = BACKOFF_INITIAL,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            strategies: Delivery strategies in preference order
            cache: Snapshot store (no caching if None)
            timeout: Seconds allowed per attempt
            max_attempts: Attempts per strategy
            backoff_initial: First backoff delay in seconds, doubling per attempt
        """
        if not strategies:
            raise ValueError("At least one fetch strategy is required")
        self.strategies = list(strategies)
        self.cache = cache
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_initial = backoff_initial
        self.state = FetchState.IDLE

    async def _attempt(self, strategy: FetchStrategy) -> list[dict]:
        try:
            return await asyncio.wait_for(strategy.fetch(), timeout=self.timeout)
        except TimeoutError as e:
            raise TransientNetworkError(
                f"{strategy.name} timed out after {self.timeout:g} seconds"
            ) from e

    async def _run_strategy(self, strategy: FetchStrategy, errors: list[Exception]) -> list[dict]:
        def _log_failure(retry_state) -> None:
            error = retry_state.outcome.exception()
            errors.append(error)
            logger.warning(
                f"Fetch via {strategy.name} failed "
                f"(attempt {retry_state.attempt_number}/{self.max_attempts}): {error}"
            )

        def _log_sleep(retry_state) -> None:
            logger.info(f"Retrying {strategy.name} in {retry_state.next_action.sleep:.1f}s")

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(FetchAttemptError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_initial, min=0),
            after=_log_failure,
            before_sleep=_log_sleep,
            reraise=True,
        )
        return await retrying(self._attempt, strategy)

    async def fetch(self) -> FetchResult:
        """Run one fetch cycle.

        Never raises for delivery or cache failures; the outcome is
        reported through the returned FetchResult.
        """
        self.state = FetchState.FETCHING
        errors: list[Exception] = []

        for strategy in self.strategies:
            try:
                data = await self._run_strategy(strategy, errors)
            except FetchAttemptError:
                continue
            except Exception as e:
                errors.append(e)
                logger.warning(f"Fetch via {strategy.name} failed: {e}")
                continue

            logger.info(f"Fetched {len(data)} records via {strategy.name}")
            self._persist(data)
            self.state = FetchState.SUCCESS
            return FetchResult(state=FetchState.SUCCESS, data=data)

        return self._fall_back(errors)

    def _persist(self, data: list[dict]) -> None:
        if self.cache is None:
            return
        try:
            save_snapshot(self.cache, data)
        except Exception as e:
            logger.warning(f"Could not cache fetched data: {e}")

    def _fall_back(self, errors: list[Exception]) -> FetchResult:
        exhausted = ExhaustionError(errors)
        snapshot = None
        if self.cache is not None:
            try:
                snapshot = load_snapshot(self.cache)
            except Exception as e:
                logger.warning(f"Could not read cached data: {e}")

        if snapshot is not None:
            message = (
                f"Unable to reach the API — showing cached data from "
                f"{snapshot.display_time()}. {exhausted.last_error}"
            )
            logger.warning(f"Using cached data from {snapshot.timestamp}: {exhausted}")
            self.state = FetchState.DEGRADED
            return FetchResult(
                state=FetchState.DEGRADED,
                data=snapshot.data,
                error=exhausted,
                cache_timestamp=snapshot.timestamp,
                message=message,
            )

        error = CacheUnavailableError(
            errors, message="All delivery attempts failed and no cached data is available"
        )
        logger.error(str(error))
        self.state = FetchState.FAILED
        return FetchResult(state=FetchState.FAILED, error=error, message=str(error))
