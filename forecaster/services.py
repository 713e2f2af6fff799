# ABOUTME: Cache-aside orchestration for address suggestions and weather lookups.
# ABOUTME: Validates input, fetches through the cache, normalizes, and merges failures into one Outcome.

import logging
import re
from typing import Callable

from pydantic import TypeAdapter, ValidationError
from redis.exceptions import RedisError

from forecaster.cache import RedisCache
from forecaster.coordinates import coordinate_errors
from forecaster.models import (
    AddressSuggestion,
    CurrentWeather,
    DailyForecastSummary,
    ErrorKind,
    Failure,
    Outcome,
    WeatherReport,
)
from forecaster.normalizers import normalize_current_weather, normalize_forecast, normalize_mapbox_suggestions
from forecaster.providers import AddressProvider, AddressProviderName, WeatherProvider, WeatherProviderName

logger = logging.getLogger(__name__)

SERVICE_ERROR_MESSAGE = "The weather service is unavailable right now, please try again later"
PROCESSING_ERROR_MESSAGE = "The provider response could not be processed"

SUGGESTION_NORMALIZERS = {
    AddressProviderName.MAPBOX: normalize_mapbox_suggestions,
}

# (current, forecast) normalizers per weather provider
WEATHER_NORMALIZERS = {
    WeatherProviderName.OPENWEATHERMAP: (normalize_current_weather, normalize_forecast),
}

_suggestion_list = TypeAdapter(list[AddressSuggestion])
_forecast_list = TypeAdapter(list[DailyForecastSummary])


def slug(value: str | None) -> str:
    """Strip, lowercase, and collapse whitespace runs to a single dash."""
    return re.sub(r"\s+", "-", (value or "").strip().lower())


def weather_cache_key(country: str | None, postal_code: str | None, current: bool) -> str | None:
    """Cache key for a location, or None when country or postal code is blank."""
    if not slug(country) or not slug(postal_code):
        return None
    prefix = "current_weather" if current else "forecast"
    return f"{prefix}:{slug(country)}:{slug(postal_code)}"


def suggestion_cache_key(query: str) -> str:
    return f"suggestions:{slug(query)}"


def normalize_safely(normalizer: Callable, raw) -> Outcome:
    """Run a normalizer, turning any unexpected exception into a processing failure."""
    try:
        return Outcome(result=normalizer(raw))
    except Exception:
        logger.exception("Normalizer %s failed", getattr(normalizer, "__name__", normalizer))
        return Outcome.fail(ErrorKind.NORMALIZATION, PROCESSING_ERROR_MESSAGE)


class AddressSuggestionService:
    """Autocomplete suggestions for a free-text address query.

    Caching is off unless both a cache and a positive ttl are given, matching
    the live-per-keystroke behaviour of the web front end.
    """

    def __init__(
        self,
        provider: AddressProvider,
        normalizer: Callable | None = None,
        cache: RedisCache | None = None,
        ttl_seconds: int = 0,
    ):
        self.provider = provider
        self.normalizer = normalizer or SUGGESTION_NORMALIZERS[provider.name]
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    async def get(self, query: str | None) -> Outcome:
        if query is None or not query.strip():
            return Outcome(result=[])

        try:
            if self.cache is not None and self.ttl_seconds > 0:
                outcome = await self.cache.fetch_or_compute(
                    suggestion_cache_key(query), self.ttl_seconds, lambda: self._compute(query)
                )
            else:
                outcome = await self._compute(query)
        except RedisError:
            logger.exception("Suggestion cache unavailable")
            return Outcome.fail(ErrorKind.CACHE, SERVICE_ERROR_MESSAGE)

        if not outcome.ok:
            return outcome
        try:
            return Outcome(result=_suggestion_list.validate_python(outcome.result))
        except ValidationError:
            logger.exception("Cached suggestions for %r are malformed", query)
            return Outcome.fail(ErrorKind.NORMALIZATION, PROCESSING_ERROR_MESSAGE)

    async def _compute(self, query: str) -> Outcome:
        fetched = await self.provider.fetch_suggestions(query)
        if not fetched.ok:
            return fetched
        normalized = normalize_safely(self.normalizer, fetched.result)
        if not normalized.ok:
            return normalized
        return Outcome(result=[s.model_dump() for s in normalized.result])


class WeatherService:
    """Current weather or daily forecast for a picked address, cached per location.

    Returns an Outcome whose result is a WeatherReport carrying the data and
    the cache age in seconds.
    """

    def __init__(
        self,
        provider: WeatherProvider,
        cache: RedisCache,
        ttl_seconds: int = 1800,
        normalizers: tuple[Callable, Callable] | None = None,
    ):
        self.provider = provider
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.current_normalizer, self.forecast_normalizer = normalizers or WEATHER_NORMALIZERS[provider.name]

    async def get(
        self,
        country: str | None,
        postal_code: str | None,
        latitude,
        longitude,
        want_current: bool = True,
    ) -> Outcome:
        problems = coordinate_errors(latitude, longitude)
        if problems:
            return Outcome(errors=[Failure(kind=ErrorKind.VALIDATION, message=p) for p in problems])

        key = weather_cache_key(country, postal_code, want_current)
        if key is None:
            # No location identity to share an entry on; fetch live.
            outcome = await self._compute(latitude, longitude, want_current)
            if not outcome.ok:
                return outcome
            age = None
        else:
            try:
                outcome = await self.cache.fetch_or_compute(
                    key, self.ttl_seconds, lambda: self._compute(latitude, longitude, want_current)
                )
                if not outcome.ok:
                    return outcome
                age = await self.cache.age_seconds(key, self.ttl_seconds)
            except RedisError:
                logger.exception("Weather cache unavailable for key=%s", key)
                return Outcome.fail(ErrorKind.CACHE, SERVICE_ERROR_MESSAGE)

        try:
            data = (
                CurrentWeather.model_validate(outcome.result)
                if want_current
                else _forecast_list.validate_python(outcome.result)
            )
        except ValidationError:
            logger.exception("Cached weather for key=%s is malformed", key)
            return Outcome.fail(ErrorKind.NORMALIZATION, PROCESSING_ERROR_MESSAGE)

        return Outcome(result=WeatherReport(data=data, cache_age_seconds=age))

    async def _compute(self, latitude: float, longitude: float, want_current: bool) -> Outcome:
        fetched = await self.provider.fetch_weather(latitude, longitude, want_current)
        if not fetched.ok:
            return fetched
        normalizer = self.current_normalizer if want_current else self.forecast_normalizer
        normalized = normalize_safely(normalizer, fetched.result)
        if not normalized.ok:
            return normalized
        if want_current:
            return Outcome(result=normalized.result.model_dump())
        return Outcome(result=[day.model_dump() for day in normalized.result])
