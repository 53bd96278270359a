from __future__ import annotations

import asyncio
import logging
import os
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

from weatherfetch.errors import FaultKind, ForecastFault, ProviderError, RetryExhausted
from weatherfetch.forecast import ForecastDay
from weatherfetch.providers import ForecastProvider

MAX_ATTEMPTS = 3
RETRY_BASE_SECONDS = float(os.environ.get("WEATHERFETCH_RETRY_BASE_SECONDS", "0.1"))

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExponentialBackoff:
    base: float = RETRY_BASE_SECONDS
    factor: float = 2.0

    def __post_init__(self):
        if self.base < 0:
            raise ValueError("base must be >= 0")
        if self.factor < 1:
            raise ValueError("factor must be >= 1")

    def delay(self, attempt: int) -> float:
        return self.base * self.factor ** (attempt - 1)


@dataclass(frozen=True)
class AttemptRecord:
    city: str
    attempt: int
    max_attempts: int
    ok: bool
    count: int = 0
    kind: Optional[FaultKind] = None
    status_code: Optional[int] = None
    error: Optional[str] = None
    delay: float = 0.0


AttemptObserver = Callable[[AttemptRecord], None]


class FetchStats:
    """Attempt observer tallying successes and failures per city."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Dict[str, Dict[str, int]] = {}

    def __call__(self, record: AttemptRecord) -> None:
        with self._lock:
            counts = self._counts.setdefault(record.city, {"successes": 0, "failures": 0, "retried_successes": 0})
            if record.ok:
                counts["successes"] += 1
                if record.attempt > 1:
                    counts["retried_successes"] += 1
            else:
                counts["failures"] += 1

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            return {city: dict(counts) for city, counts in self._counts.items()}


class RetryOrchestrator:
    """Drive up to `max_attempts` provider calls for one city.

    The attempt number is handed to the provider on every call. A fault on any
    attempt but the last sleeps for `backoff.delay(attempt)` and tries again;
    a fault on the last attempt raises RetryExhausted chained to that fault.
    Exceptions that are not ForecastFault are not retried.
    """

    def __init__(
        self,
        provider: ForecastProvider,
        max_attempts: int = MAX_ATTEMPTS,
        backoff: Optional[ExponentialBackoff] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        observers: Optional[List[AttemptObserver]] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.provider = provider
        self.max_attempts = max_attempts
        self.backoff = backoff or ExponentialBackoff()
        self.sleep = sleep
        self.observers = list(observers or [])

    def _emit(self, record: AttemptRecord) -> None:
        for observer in self.observers:
            observer(record)

    async def fetch(self, city: str) -> List[ForecastDay]:
        attempts: List[AttemptRecord] = []
        for attempt in range(1, self.max_attempts + 1):
            logger.info("Fetching forecasts for %s (attempt %d/%d)", city, attempt, self.max_attempts)
            try:
                days = await self.provider.request_forecast(city, attempt)
            except ForecastFault as e:
                last = attempt == self.max_attempts
                delay = 0.0 if last else self.backoff.delay(attempt)
                record = AttemptRecord(
                    city=city,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    ok=False,
                    kind=e.kind,
                    status_code=e.status_code if isinstance(e, ProviderError) else None,
                    error=e.message,
                    delay=delay,
                )
                attempts.append(record)
                self._emit(record)
                logger.warning("Attempt %d for %s failed: %s", attempt, city, e.message)
                if last:
                    logger.error("Failed to fetch forecasts for %s after %d attempts", city, attempt)
                    raise RetryExhausted(city, attempts, e) from e
                logger.info("Retrying %s after %.3fs", city, delay)
                await self.sleep(delay)
                continue

            record = AttemptRecord(
                city=city,
                attempt=attempt,
                max_attempts=self.max_attempts,
                ok=True,
                count=len(days),
            )
            attempts.append(record)
            self._emit(record)
            logger.info("Fetched %d forecast days for %s on attempt %d", len(days), city, attempt)
            return days

        # unreachable: the loop either returns or raises
        raise AssertionError("retry loop exited without a result")
