"""
pytest configuration for weatherfetch tests.

Provides scripted random sources, a fake clock and a call-recording provider
so fault and retry branches can be asserted exactly.
"""

import os
from typing import List, Sequence, Tuple

import pytest

# Keep module-level settings predictable BEFORE any weatherfetch imports
os.environ.setdefault("WEATHERFETCH_LOG_LEVEL", "WARNING")
os.environ.pop("WEATHERFETCH_CACHE_URI", None)
os.environ.pop("CACHE_URI", None)

from weatherfetch.cache import ForecastCache, MemoryStore  # noqa: E402
from weatherfetch.forecast import ForecastDay  # noqa: E402
from weatherfetch.providers import ForecastProvider, LocalForecastProvider  # noqa: E402


class ScriptedRandom:
    """Stand-in for random.Random that replays queued values.

    random() defaults to 0.99 (Phoenix retries succeed), randrange() to the
    low bound and choice() to the first element once the queues run dry.
    """

    def __init__(self, floats: Sequence[float] = (), ints: Sequence[int] = (), picks: Sequence[int] = ()):
        self.floats = list(floats)
        self.ints = list(ints)
        self.picks = list(picks)
        self.random_calls = 0

    def random(self) -> float:
        self.random_calls += 1
        return self.floats.pop(0) if self.floats else 0.99

    def randrange(self, start: int, stop: int) -> int:
        if not self.ints:
            return start
        value = self.ints.pop(0)
        assert start <= value < stop
        return value

    def choice(self, seq):
        return seq[self.picks.pop(0) if self.picks else 0]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingProvider(ForecastProvider):
    """Wraps a provider and remembers every (city, attempt) it was asked for."""

    name = "recording"

    def __init__(self, inner: ForecastProvider):
        self.inner = inner
        self.calls: List[Tuple[str, int]] = []

    async def request_forecast(self, city: str, attempt: int) -> List[ForecastDay]:
        self.calls.append((city, attempt))
        return await self.inner.request_forecast(city, attempt)


async def no_sleep(delay: float) -> None:
    return None


@pytest.fixture
def scripted_random():
    return ScriptedRandom


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def forecast_cache(store):
    return ForecastCache(store)


@pytest.fixture
def recording_provider():
    """Local provider on a scripted source where every random() draw succeeds."""
    return RecordingProvider(LocalForecastProvider(ScriptedRandom()))
