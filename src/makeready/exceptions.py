"""Exception classes for fetching and enriching briefing data."""


class BriefingError(Exception):
    """Base exception for briefing errors."""


class FetchAttemptError(BriefingError):
    """A single delivery attempt failed. Eligible for retry or fallback."""


class TransientNetworkError(FetchAttemptError):
    """Timeout, connection failure, or non-success HTTP status."""


class UpstreamShapeError(FetchAttemptError):
    """Response body could not be parsed into the expected envelope."""


class EquipsAPIError(TransientNetworkError):
    """Equips API returned a non-success status."""

    def __init__(self, path: str, status_code: int, body: str = "") -> None:
        self.path = path
        self.status_code = status_code
        self.body = body
        super().__init__(f"EQUIPS {path} returned {status_code}: {body}")


class ReferenceResolutionError(BriefingError):
    """A single status reference lookup failed."""

    def __init__(self, reference_id: str, cause: Exception | None = None) -> None:
        self.reference_id = reference_id
        self.cause = cause
        super().__init__(f"Failed to resolve status reference {reference_id}: {cause}")


class ExhaustionError(BriefingError):
    """All delivery strategies and retries failed."""

    def __init__(self, errors: list[Exception], message: str | None = None) -> None:
        self.errors = list(errors)
        last = self.errors[-1] if self.errors else None
        if message is None:
            message = f"All delivery attempts failed ({len(self.errors)} attempts)"
        if last is not None:
            message = f"{message}. Last error: {last}"
        super().__init__(message)

    @property
    def last_error(self) -> Exception | None:
        """The most recent underlying failure."""
        return self.errors[-1] if self.errors else None


class CacheUnavailableError(ExhaustionError):
    """Delivery failed and no cached snapshot exists."""


class CachePersistError(BriefingError):
    """Writing the cached snapshot failed."""
