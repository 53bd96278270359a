# No postponed annotations here: slowapi wraps endpoints, and FastAPI would
# resolve string annotations in the wrapper module instead of this one.
import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from weatherfetch import cache
from weatherfetch.errors import RetryExhausted
from weatherfetch.logs import configure_logging
from weatherfetch.providers import HttpForecastProvider
from weatherfetch.retry import ExponentialBackoff, FetchStats, RetryOrchestrator
from weatherfetch.service import ForecastService

APP_NAME = "weatherfetch frontend"
API_URL = (
    os.environ.get("WEATHERFETCH_API_URL")
    or os.environ.get("services__weatherapi__https__0")
    or os.environ.get("services__weatherapi__http__0")
    or "http://localhost:5000"
)
DEFAULT_CITY_NAME = "Seattle"
RATE_LIMIT = os.environ.get("WEATHERFETCH_RATE_LIMIT", "60/minute")

configure_logging()
logger = logging.getLogger(__name__)

_provider: HttpForecastProvider | None = None
_service: ForecastService | None = None
fetch_stats = FetchStats()


def get_provider() -> HttpForecastProvider:
    global _provider
    if _provider is None:
        _provider = HttpForecastProvider(API_URL)
    return _provider


def get_service() -> ForecastService:
    global _service
    if _service is None:
        store = cache.client()
        if store is None:
            logger.info("No cache configured; every request goes to %s", API_URL)
        _service = ForecastService(
            cache=cache.ForecastCache(store),
            orchestrator=RetryOrchestrator(
                get_provider(), backoff=ExponentialBackoff(), observers=[fetch_stats],
            ),
        )
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting; weather API at %s", API_URL)
    yield
    if _service is not None:
        await _service.close()


app = FastAPI(title=APP_NAME, version="0.1.0", lifespan=lifespan)

# Rate limiting (in-memory)
limiter = Limiter(key_func=get_remote_address, default_limits=[RATE_LIMIT])
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


cors = os.environ.get("WEATHERFETCH_CORS_ORIGINS")
origins = [o.strip() for o in cors.split(",")] if cors else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Endpoints ----------
@app.get("/")
@limiter.limit(RATE_LIMIT)
async def forecasts(
    request: Request,
    city: str = DEFAULT_CITY_NAME,
    service: ForecastService = Depends(get_service),
):
    # an empty ?city= means the default too
    city = city or DEFAULT_CITY_NAME
    try:
        result = await service.get_forecasts(city)
    except RetryExhausted as e:
        logger.error("Failed to fetch weather data after retries for %s: %s", city, e.last_error.message)
        # never cached; the next request retries from scratch
        return JSONResponse(status_code=502, content={
            "city": city,
            "source": "api",
            "forecasts": [],
            "error": f"Failed to fetch weather data for {city}. Please try again later.",
        })
    return {"city": result.city, "source": result.source, "forecasts": result.forecasts, "error": None}


@app.get("/health", response_class=PlainTextResponse)
async def health(provider: HttpForecastProvider = Depends(get_provider)):
    if not await provider.healthy():
        return PlainTextResponse("Unhealthy", status_code=503)
    return "Healthy"


@app.get("/alive", response_class=PlainTextResponse)
def alive():
    return "Healthy"


@app.get("/cache-stats")
def cache_stats(service: ForecastService = Depends(get_service)):
    stats = service.stats.snapshot()
    logger.info("Cache statistics requested: %s", stats)
    return stats


@app.get("/fetch-stats")
def fetch_stats_snapshot():
    return fetch_stats.snapshot()
