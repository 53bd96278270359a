from __future__ import annotations

import random
from typing import Any, Dict, List

from fastapi import Depends, FastAPI, Query
from fastapi.responses import PlainTextResponse

from weatherfetch.errors import ForecastFault
from weatherfetch.forecast import dump_forecast
from weatherfetch.logs import configure_logging
from weatherfetch.providers import LocalForecastProvider

APP_NAME = "weatherfetch weather API"

configure_logging()

app = FastAPI(title=APP_NAME, version="0.1.0")

_provider = LocalForecastProvider(random.Random())


def get_provider() -> LocalForecastProvider:
    return _provider


@app.get("/health", response_class=PlainTextResponse)
def health():
    return "Healthy"


@app.get("/alive", response_class=PlainTextResponse)
def alive():
    return "Healthy"


@app.get("/weatherforecast", response_model=None)
def weather_forecast(
    city: str | None = None,
    attempt: int = Query(default=1, ge=1),
    provider: LocalForecastProvider = Depends(get_provider),
) -> List[Dict[str, Any]] | PlainTextResponse:
    try:
        days = provider.forecast(city or "", attempt)
    except ForecastFault as e:
        status = 503 if e.permanent else 500
        return PlainTextResponse(f"{e.kind.value}: {e.message}", status_code=status)
    return dump_forecast(days)
