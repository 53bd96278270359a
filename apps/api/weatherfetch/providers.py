from __future__ import annotations

import logging
import os
from typing import List, Optional

import httpx
from pydantic import ValidationError

from weatherfetch.errors import FaultKind, PermanentFault, ProviderError, TransientFault
from weatherfetch.faults import FaultInjector
from weatherfetch.forecast import (
    FORECAST_DAYS,
    ForecastDay,
    RandomSource,
    generate_forecast,
    parse_forecast,
    resolve_city,
)

HTTP_TIMEOUT_SECONDS = float(os.environ.get("WEATHERFETCH_HTTP_TIMEOUT_SECONDS", "10"))

logger = logging.getLogger(__name__)


# Provider interface
class ForecastProvider:
    name: str

    async def request_forecast(self, city: str, attempt: int) -> List[ForecastDay]:
        raise NotImplementedError


class LocalForecastProvider(ForecastProvider):
    """In-process weather backend: fault injection in front of the mock generator."""

    name = "local"

    def __init__(self, rng: RandomSource, injector: Optional[FaultInjector] = None):
        self.rng = rng
        self.injector = injector or FaultInjector(rng)

    async def request_forecast(self, city: str, attempt: int) -> List[ForecastDay]:
        return self.forecast(city, attempt)

    def forecast(self, city: str, attempt: int) -> List[ForecastDay]:
        resolved = resolve_city(city)
        kind = self.injector.decide(resolved, attempt)
        if kind is FaultKind.SERVICE_UNAVAILABLE:
            logger.error("Weather service error for %s (attempt %d)", resolved.name, attempt)
            raise PermanentFault(
                resolved.name, attempt, kind,
                f"Weather service is currently unavailable for {resolved.name}",
            )
        if kind is not None:
            logger.error("Injected transient failure for %s (attempt %d)", resolved.name, attempt)
            raise TransientFault(
                resolved.name, attempt, kind,
                f"Transient failure for {resolved.name} on attempt {attempt}",
            )

        days = generate_forecast(resolved, self.rng)
        logger.info("Generated weather forecast for %s with %d days", resolved.name, len(days))
        return days


def _kind_from_body(text: str) -> FaultKind:
    # API error bodies look like "ServiceUnavailable: <message>"
    prefix = text.split(":", 1)[0].strip()
    for kind in FaultKind:
        if kind.value == prefix:
            return kind
    return FaultKind.UPSTREAM_ERROR


class HttpForecastProvider(ForecastProvider):
    """Calls a remote weather API's /weatherforecast endpoint."""

    name = "http"

    def __init__(
        self,
        base_url: str,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def request_forecast(self, city: str, attempt: int) -> List[ForecastDay]:
        try:
            async with self._client() as client:
                r = await client.get("/weatherforecast", params={"city": city, "attempt": attempt})
        except httpx.HTTPError as e:
            raise ProviderError(city, attempt, f"Weather API unreachable: {e}") from e

        if not r.is_success:
            body = r.text[:200]
            raise ProviderError(
                city, attempt,
                f"API returned {r.status_code}: {body}",
                status_code=r.status_code,
                kind=_kind_from_body(body),
            )

        try:
            days = parse_forecast(r.content)
        except ValidationError as e:
            raise ProviderError(city, attempt, f"Malformed forecast payload: {e}", status_code=r.status_code) from e
        if len(days) != FORECAST_DAYS:
            raise ProviderError(
                city, attempt,
                f"Expected {FORECAST_DAYS} forecast days, got {len(days)}",
                status_code=r.status_code,
            )
        return days

    async def healthy(self) -> bool:
        try:
            async with self._client() as client:
                r = await client.get("/health")
        except httpx.HTTPError as e:
            logger.error("API health check error for %s: %s", self.base_url, e)
            return False
        if not r.is_success:
            logger.error("API health check failed for %s: %s", self.base_url, r.status_code)
            return False
        return True
