from __future__ import annotations

import datetime as dt
import json
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, computed_field

SUMMARIES = (
    "Freezing", "Bracing", "Chilly", "Cool", "Mild",
    "Warm", "Balmy", "Hot", "Sweltering", "Scorching",
)

FORECAST_DAYS = 5


class RandomSource(Protocol):
    """The subset of random.Random used here; tests pass scripted stand-ins."""

    def random(self) -> float: ...

    def randrange(self, start: int, stop: int) -> int: ...

    def choice(self, seq: Sequence[Any]) -> Any: ...


@dataclass(frozen=True)
class City:
    name: str
    min_temp: int
    max_temp: int

    def __post_init__(self):
        if self.min_temp >= self.max_temp:
            raise ValueError(f"{self.name}: min_temp must be below max_temp")


CITIES: Mapping[str, City] = MappingProxyType({
    c.name: c
    for c in (
        City("Seattle", -5, 25),
        City("Miami", 15, 35),
        City("Chicago", -15, 30),
        City("Phoenix", 5, 45),
        City("Boston", -10, 28),
    )
})
DEFAULT_CITY = CITIES["Seattle"]


def resolve_city(name: Optional[str]) -> City:
    # case-insensitive; anything unknown falls back to the default city
    if not name:
        return DEFAULT_CITY
    wanted = name.lower()
    for city in CITIES.values():
        if city.name.lower() == wanted:
            return city
    return DEFAULT_CITY


def to_fahrenheit(temp_c: int) -> int:
    return 32 + int(temp_c / 0.5556)


class ForecastDay(BaseModel):
    # extra="ignore" so a temperatureF coming over the wire is dropped and re-derived
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)
    date: dt.date
    temperature_c: int = Field(..., alias="temperatureC")
    summary: Optional[str] = None
    city: str

    @computed_field(alias="temperatureF")
    @property
    def temperature_f(self) -> int:
        return to_fahrenheit(self.temperature_c)


_forecast_list = TypeAdapter(List[ForecastDay])


def dump_forecast(days: List[ForecastDay]) -> List[Dict[str, Any]]:
    return [d.model_dump(mode="json", by_alias=True) for d in days]


def serialize_forecast(days: List[ForecastDay]) -> str:
    return json.dumps(dump_forecast(days), separators=(",", ":"))


def parse_forecast(data: str | bytes | List[Dict[str, Any]]) -> List[ForecastDay]:
    if isinstance(data, (str, bytes)):
        return _forecast_list.validate_json(data)
    return _forecast_list.validate_python(data)


def generate_forecast(
    city: City,
    rng: RandomSource,
    day_count: int = FORECAST_DAYS,
    today: Optional[dt.date] = None,
) -> List[ForecastDay]:
    """Mock forecast for days 1..day_count after `today`.

    One temperature draw in [min_temp, max_temp) and one summary draw per day,
    in day order, so a scripted random source fully determines the output.
    """
    today = today or dt.date.today()
    days = []
    for offset in range(1, day_count + 1):
        temp_c = rng.randrange(city.min_temp, city.max_temp)
        summary = rng.choice(SUMMARIES)
        days.append(ForecastDay(
            date=today + dt.timedelta(days=offset),
            temperature_c=temp_c,
            summary=summary,
            city=city.name,
        ))
    return days
