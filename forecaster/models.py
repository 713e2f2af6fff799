# ABOUTME: Pydantic BaseModels for normalized address suggestions and weather data.
# ABOUTME: Also defines the Failure/Outcome result types passed between layers.

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AddressSuggestion(BaseModel):
    """One geocoding result the user can pick from the autocomplete list."""

    model_config = ConfigDict(frozen=True)

    full_address: str = Field(min_length=1)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    postal_code: str | None = None
    country_name: str | None = None


class CurrentWeather(BaseModel):
    """Weather snapshot for "now" at a location."""

    model_config = ConfigDict(frozen=True)

    observed_date: str
    condition_code: str | None = None
    condition_title: str | None = None
    temperature_c: int = 0
    feels_like_c: int = 0
    humidity_pct: int = 0
    wind_speed: int = 0


class DailyForecastSummary(BaseModel):
    """One calendar day aggregated from 3-hour forecast entries.

    Numeric aggregates are None when no entry of the day carried the field.
    """

    model_config = ConfigDict(frozen=True)

    date: str
    max_temperature_c: int | None = None
    min_temperature_c: int | None = None
    humidity_pct: int | None = None
    wind_speed: int | None = None
    condition_code: str | None = None
    condition_title: str | None = None


class WeatherReport(BaseModel):
    """Weather data plus how long it has been sitting in the cache."""

    data: CurrentWeather | list[DailyForecastSummary]
    cache_age_seconds: int | None = None


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UPSTREAM = "upstream"
    NORMALIZATION = "normalization"
    CACHE = "cache"


class Failure(BaseModel):
    """A classified, human-readable failure."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str


class Outcome(BaseModel):
    """Result of a provider call, normalization step, or orchestrated fetch.

    Either ``result`` holds a value or ``errors`` lists what went wrong.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    result: Any = None
    errors: list[Failure] = []

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "Outcome":
        return cls(errors=[Failure(kind=kind, message=message)])

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def messages(self) -> list[str]:
        return [f.message for f in self.errors]
