# ABOUTME: ASGI entry point exposing the suggestion and weather services as JSON endpoints.
# ABOUTME: The lifespan owns the shared httpx client and Redis connection; run with `uvicorn forecaster.web:app`.

import contextlib
import logging
import math

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from forecaster.cache import RedisCache
from forecaster.config import Settings, load_settings
from forecaster.deps import ForecasterDeps, create_deps
from forecaster.models import ErrorKind
from forecaster.providers import build_address_provider, build_weather_provider
from forecaster.services import AddressSuggestionService, WeatherService

logger = logging.getLogger(__name__)


def build_services(deps: ForecasterDeps) -> tuple[AddressSuggestionService, WeatherService]:
    """Wire providers, cache, and services from the configured provider names."""
    settings = deps.settings
    cache = RedisCache(deps.redis)
    suggestions = AddressSuggestionService(
        build_address_provider(settings.address_provider, deps.http_client, settings),
        cache=cache,
        ttl_seconds=settings.suggestions_cache_ttl,
    )
    weather = WeatherService(
        build_weather_provider(settings.weather_provider, deps.http_client, settings),
        cache=cache,
        ttl_seconds=settings.weather_cache_ttl,
    )
    return suggestions, weather


def parse_coordinate(value: str | None) -> float | str | None:
    """Parse a query-string coordinate.

    Finite numbers come back as floats. Anything else is returned as the raw
    string so the validation message shows what the caller sent.
    """
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return value
    return number if math.isfinite(number) else value


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def suggestions(request: Request) -> JSONResponse:
    outcome = await request.app.state.suggestions.get(request.query_params.get("query", ""))
    if not outcome.ok:
        return JSONResponse({"suggestions": [], "errors": outcome.messages})
    return JSONResponse({"suggestions": [s.model_dump(mode="json") for s in outcome.result], "errors": []})


async def _weather(request: Request, want_current: bool) -> JSONResponse:
    params = request.query_params
    outcome = await request.app.state.weather.get(
        country=params.get("country"),
        postal_code=params.get("postcode"),
        latitude=parse_coordinate(params.get("latitude")),
        longitude=parse_coordinate(params.get("longitude")),
        want_current=want_current,
    )
    if not outcome.ok:
        status = 422 if any(f.kind == ErrorKind.VALIDATION for f in outcome.errors) else 200
        return JSONResponse(
            {"weather": None, "cache_age_seconds": None, "errors": outcome.messages}, status_code=status
        )
    report = outcome.result.model_dump(mode="json")
    return JSONResponse({"weather": report["data"], "cache_age_seconds": report["cache_age_seconds"], "errors": []})


async def current_weather(request: Request) -> JSONResponse:
    return await _weather(request, want_current=True)


async def forecast(request: Request) -> JSONResponse:
    return await _weather(request, want_current=False)


def create_app(settings: Settings | None = None, deps: ForecasterDeps | None = None) -> Starlette:
    """Build the Starlette app.

    When ``deps`` is given its clients are used as-is and left open on
    shutdown; otherwise clients are created from ``settings`` and closed.
    """

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        owned = deps is None
        active = deps or create_deps(settings or load_settings())
        logging.basicConfig(level=active.settings.log_level)
        app.state.suggestions, app.state.weather = build_services(active)
        logger.info(
            "Using address provider %s and weather provider %s",
            active.settings.address_provider,
            active.settings.weather_provider,
        )
        try:
            yield
        finally:
            if owned:
                await active.http_client.aclose()
                await active.redis.aclose()

    return Starlette(
        routes=[
            Route("/up", health),
            Route("/api/v1/suggestions", suggestions),
            Route("/api/v1/forecasts/current_weather", current_weather),
            Route("/api/v1/forecasts/forecast", forecast),
        ],
        lifespan=lifespan,
    )


app = create_app()
