# ABOUTME: Upstream clients for Mapbox geocoding and OpenWeatherMap, selected by provider name.
# ABOUTME: Each call issues one GET and returns an Outcome holding the raw JSON or an upstream failure.

import logging
from enum import Enum
from typing import Protocol

import httpx

from forecaster.config import Settings
from forecaster.models import ErrorKind, Outcome

logger = logging.getLogger(__name__)

MAPBOX_FORWARD_URL = "https://api.mapbox.com/search/geocode/v6/forward"
OPENWEATHERMAP_WEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"
OPENWEATHERMAP_FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"


class AddressProviderName(str, Enum):
    MAPBOX = "mapbox"


class WeatherProviderName(str, Enum):
    OPENWEATHERMAP = "openweathermap"


class AddressProvider(Protocol):
    name: AddressProviderName

    async def fetch_suggestions(self, query: str) -> Outcome: ...


class WeatherProvider(Protocol):
    name: WeatherProviderName

    async def fetch_weather(self, latitude: float, longitude: float, current: bool) -> Outcome: ...


async def get_json(client: httpx.AsyncClient, provider: str, url: str, params: dict) -> Outcome:
    """GET ``url`` and return the decoded body, or an upstream failure.

    Rate-limit retries happen inside the client's transport; whatever
    response comes back here is final.
    """
    try:
        resp = await client.get(url, params=params)
        resp.raise_for_status()
        return Outcome(result=resp.json())
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        logger.warning("%s responded with status %s", provider, status)
        return Outcome.fail(ErrorKind.UPSTREAM, f"the server responded with status {status}")
    except httpx.TimeoutException:
        logger.warning("%s request timed out", provider)
        return Outcome.fail(ErrorKind.UPSTREAM, f"the request to {provider} timed out")
    except httpx.HTTPError as e:
        logger.warning("%s request failed: %s", provider, e)
        return Outcome.fail(ErrorKind.UPSTREAM, str(e) or f"the request to {provider} failed")
    except ValueError:
        logger.warning("%s returned a body that is not JSON", provider)
        return Outcome.fail(ErrorKind.UPSTREAM, f"{provider} returned an invalid response")


class MapboxProvider:
    """Forward geocoding against the Mapbox Search API (v6)."""

    name = AddressProviderName.MAPBOX

    def __init__(self, http_client: httpx.AsyncClient, access_token: str):
        self.http_client = http_client
        self.access_token = access_token

    async def fetch_suggestions(self, query: str) -> Outcome:
        return await get_json(
            self.http_client,
            "Mapbox",
            MAPBOX_FORWARD_URL,
            {"q": query, "types": "address", "language": "en", "access_token": self.access_token},
        )


class OpenWeatherMapProvider:
    """Current conditions and 5-day/3-hour forecast from OpenWeatherMap, in metric units."""

    name = WeatherProviderName.OPENWEATHERMAP

    def __init__(self, http_client: httpx.AsyncClient, app_id: str):
        self.http_client = http_client
        self.app_id = app_id

    async def fetch_weather(self, latitude: float, longitude: float, current: bool) -> Outcome:
        url = OPENWEATHERMAP_WEATHER_URL if current else OPENWEATHERMAP_FORECAST_URL
        return await get_json(
            self.http_client,
            "OpenWeatherMap",
            url,
            {"lat": latitude, "lon": longitude, "appid": self.app_id, "units": "metric"},
        )


ADDRESS_PROVIDERS = {
    AddressProviderName.MAPBOX: lambda client, settings: MapboxProvider(client, settings.mapbox_access_token),
}

WEATHER_PROVIDERS = {
    WeatherProviderName.OPENWEATHERMAP: lambda client, settings: OpenWeatherMapProvider(
        client, settings.openweathermap_app_id
    ),
}


def build_address_provider(name: str, http_client: httpx.AsyncClient, settings: Settings) -> AddressProvider:
    try:
        factory = ADDRESS_PROVIDERS[AddressProviderName(name)]
    except ValueError:
        raise ValueError(f"Unknown address provider: {name}") from None
    return factory(http_client, settings)


def build_weather_provider(name: str, http_client: httpx.AsyncClient, settings: Settings) -> WeatherProvider:
    try:
        factory = WEATHER_PROVIDERS[WeatherProviderName(name)]
    except ValueError:
        raise ValueError(f"Unknown weather provider: {name}") from None
    return factory(http_client, settings)
