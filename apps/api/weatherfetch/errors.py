from __future__ import annotations

from enum import Enum
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from weatherfetch.retry import AttemptRecord


class FaultKind(str, Enum):
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    TRANSIENT_ERROR = "TransientError"
    UPSTREAM_ERROR = "UpstreamError"


class WeatherFetchError(Exception):
    """Base class for every error raised by weatherfetch."""


class ForecastFault(WeatherFetchError):
    """A provider failed to produce a forecast for one attempt.

    Faults are what the retry loop retries; anything else is treated as a bug
    and propagates straight away.
    """

    permanent = False

    def __init__(self, city: str, attempt: int, kind: FaultKind, message: str | None = None):
        self.city = city
        self.attempt = attempt
        self.kind = kind
        self.message = message or f"{kind.value} for {city} (attempt {attempt})"
        super().__init__(self.message)


class PermanentFault(ForecastFault):
    permanent = True


class TransientFault(ForecastFault):
    pass


class ProviderError(ForecastFault):
    """Remote provider answered with a non-2xx status or could not be reached."""

    def __init__(
        self,
        city: str,
        attempt: int,
        message: str,
        status_code: Optional[int] = None,
        kind: FaultKind = FaultKind.UPSTREAM_ERROR,
    ):
        self.status_code = status_code
        super().__init__(city, attempt, kind, message)


class RetryExhausted(WeatherFetchError):
    def __init__(self, city: str, attempts: List["AttemptRecord"], last_error: ForecastFault):
        self.city = city
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Giving up on {city} after {len(attempts)} attempts: {last_error.message}"
        )


class CacheUnavailable(WeatherFetchError):
    """Cache backend missing or failing. Never escapes ForecastCache."""
