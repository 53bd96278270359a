from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Literal

from weatherfetch.cache import CacheStats, ForecastCache
from weatherfetch.forecast import serialize_forecast
from weatherfetch.retry import RetryOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class ForecastResult:
    city: str
    source: Literal["cache", "api"]
    forecasts: List[Dict[str, Any]]


class ForecastService:
    """Cache first, then the retrying fetch; only successes are cached.

    RetryExhausted from the orchestrator is left for the caller to render.
    """

    def __init__(self, cache: ForecastCache, orchestrator: RetryOrchestrator):
        self.cache = cache
        self.orchestrator = orchestrator

    @property
    def stats(self) -> CacheStats:
        return self.cache.stats

    async def get_forecasts(self, city: str) -> ForecastResult:
        cached = await self.cache.get(city)
        if cached is not None:
            try:
                return ForecastResult(city=city, source="cache", forecasts=json.loads(cached))
            except json.JSONDecodeError:
                logger.warning("Discarding unreadable cache entry for %s", city)

        days = await self.orchestrator.fetch(city)
        payload = serialize_forecast(days)
        await self.cache.set(city, payload)
        return ForecastResult(city=city, source="api", forecasts=json.loads(payload))

    async def close(self) -> None:
        await self.cache.close()
