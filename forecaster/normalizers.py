# ABOUTME: Pure functions turning raw Mapbox and OpenWeatherMap payloads into normalized models.
# ABOUTME: Malformed or missing nested fields degrade to defaults or drop the entry; nothing raises.

import math
from collections import Counter
from datetime import date, datetime, timezone

from forecaster.coordinates import valid_latitude, valid_longitude
from forecaster.models import AddressSuggestion, CurrentWeather, DailyForecastSummary

DATE_FORMAT = "%b %d, %Y"

CONDITION_TITLES = {
    "01d": "clear",
    "02d": "partly_cloudy",
    "03d": "cloudy",
    "04d": "cloudy",
    "09d": "rainy",
    "10d": "rainy",
    "11d": "stormy",
    "13d": "snowy",
    "50d": "foggy",
    "01n": "clear",
    "02n": "partly_cloudy",
    "03n": "cloudy",
    "04n": "cloudy",
    "09n": "rainy",
    "10n": "rainy",
    "11n": "stormy",
    "13n": "snowy",
    "50n": "foggy",
}


def condition_title(code) -> str | None:
    if not isinstance(code, str):
        return None
    return CONDITION_TITLES.get(code)


def normalize_mapbox_suggestions(raw) -> list[AddressSuggestion]:
    """Keep Mapbox features with an address and in-range coordinates, in response order."""
    features = _dig(raw, "features")
    if not isinstance(features, list):
        return []

    result = []
    for feature in features:
        address = _dig(feature, "properties", "full_address")
        coordinates = _dig(feature, "geometry", "coordinates")
        if not isinstance(address, str) or not address.strip():
            continue
        if not _valid_coordinate_pair(coordinates):
            continue
        result.append(
            AddressSuggestion(
                full_address=address,
                latitude=coordinates[1],
                longitude=coordinates[0],
                postal_code=_optional_str(_dig(feature, "properties", "context", "postcode", "name")),
                country_name=_optional_str(_dig(feature, "properties", "context", "country", "name")),
            )
        )
    return result


def normalize_current_weather(raw, today: date | None = None) -> CurrentWeather:
    """Build a CurrentWeather from an OpenWeatherMap /weather body.

    The date is always the day of normalization, never taken from the payload.
    Numbers are truncated toward zero; absent values become 0.
    """
    today = today or datetime.now().date()
    code = _optional_str(_dig(raw, "weather", 0, "icon"))
    return CurrentWeather(
        observed_date=today.strftime(DATE_FORMAT),
        condition_code=code,
        condition_title=condition_title(code),
        temperature_c=_to_int(_dig(raw, "main", "temp")),
        feels_like_c=_to_int(_dig(raw, "main", "feels_like")),
        humidity_pct=_to_int(_dig(raw, "main", "humidity")),
        wind_speed=_to_int(_dig(raw, "wind", "speed")),
    )


def normalize_forecast(raw) -> list[DailyForecastSummary]:
    """Aggregate an OpenWeatherMap /forecast body (or its ``list``) into daily summaries."""
    entries = raw.get("list", []) if isinstance(raw, dict) else raw
    return [_daily_summary(day, group) for day, group in group_by_date(entries).items()]


def group_by_date(entries) -> dict[date, list[dict]]:
    """Group forecast entries by the UTC calendar date of their ``dt`` timestamp.

    Keys keep first-occurrence order. Entries without a usable ``dt`` are skipped.
    """
    groups: dict[date, list[dict]] = {}
    if not isinstance(entries, list):
        return groups
    for entry in entries:
        day = _entry_date(entry)
        if day is None:
            continue
        groups.setdefault(day, []).append(entry)
    return groups


def most_common_condition(entries: list[dict]) -> str | None:
    """Most frequent weather icon across all ``weather`` items of the entries.

    Ties go to the code encountered first.
    """
    codes = []
    for entry in entries:
        conditions = _dig(entry, "weather")
        if not isinstance(conditions, list):
            continue
        for condition in conditions:
            code = _optional_str(_dig(condition, "icon"))
            if code is not None:
                codes.append(code)
    if not codes:
        return None
    return Counter(codes).most_common(1)[0][0]


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _daily_summary(day: date, entries: list[dict]) -> DailyForecastSummary:
    code = most_common_condition(entries)
    return DailyForecastSummary(
        date=day.strftime(DATE_FORMAT),
        max_temperature_c=_aggregate(max, _numbers(entries, "main", "temp_max")),
        min_temperature_c=_aggregate(min, _numbers(entries, "main", "temp_min")),
        humidity_pct=_aggregate(_mean, _numbers(entries, "main", "humidity")),
        wind_speed=_aggregate(_mean, _numbers(entries, "wind", "speed")),
        condition_code=code,
        condition_title=condition_title(code),
    )


def _aggregate(func, values: list[float]) -> int | None:
    if not values:
        return None
    return round_half_away(func(values))


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def _numbers(entries: list[dict], *keys) -> list[float]:
    values = []
    for entry in entries:
        value = _dig(entry, *keys)
        if _is_number(value):
            values.append(value)
    return values


def _entry_date(entry) -> date | None:
    timestamp = _dig(entry, "dt")
    if not _is_number(timestamp):
        return None
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).date()
    except (OverflowError, OSError, ValueError):
        return None


def _valid_coordinate_pair(coordinates) -> bool:
    if not isinstance(coordinates, list) or len(coordinates) < 2:
        return False
    lon, lat = coordinates[0], coordinates[1]
    return valid_latitude(lat) and valid_longitude(lon)


def _to_int(value) -> int:
    """Truncate a provider number to int; anything unparsable becomes 0."""
    if isinstance(value, bool) or value is None:
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return int(number)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _optional_str(value) -> str | None:
    return value if isinstance(value, str) and value else None


def _dig(data, *keys):
    """Safely walk nested dicts/lists, returning None as soon as a step is missing."""
    for key in keys:
        if isinstance(key, int):
            if not isinstance(data, list) or key >= len(data):
                return None
        elif not isinstance(data, dict):
            return None
        data = data[key] if isinstance(key, int) else data.get(key)
    return data
