# ABOUTME: Tests for settings loading and the shared client factories.
# ABOUTME: Checks env parsing, the 429-only retry transport, and client construction.

import httpx
import pytest
from pydantic import ValidationError

from forecaster.config import Settings, load_settings
from forecaster.deps import MAX_ATTEMPTS, ForecasterDeps, create_deps, create_http_client, raise_for_rate_limit


def _response(status_code: int, method: str = "GET") -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request(method, "https://api.example.com/"))


class TestLoadSettings:
    def test_defaults(self):
        """An empty environment yields the documented defaults.

        Implementation: Loads settings from an empty mapping.
        Passing implies: The app runs locally with no configuration beyond credentials.
        """
        settings = load_settings({})

        assert settings.weather_cache_ttl == 1800
        assert settings.suggestions_cache_ttl == 0
        assert settings.http_timeout_s == 5.0
        assert settings.address_provider == "mapbox"
        assert settings.weather_provider == "openweathermap"

    def test_reads_and_coerces_env(self):
        """Environment variables override defaults with numeric coercion.

        Implementation: Loads settings from a mapping of env var strings.
        Passing implies: Credentials and TTLs come from the environment.
        """
        settings = load_settings(
            {
                "MAPBOX_ACCESS_TOKEN": "pk.abc",
                "OPENWEATHERMAP_APP_ID": "owm-123",
                "REDIS_URL": "redis://cache:6379/2",
                "WEATHER_CACHE_TTL": "600",
                "HTTP_TIMEOUT_SECONDS": "2.5",
                "UNRELATED": "ignored",
            }
        )

        assert settings.mapbox_access_token == "pk.abc"
        assert settings.openweathermap_app_id == "owm-123"
        assert settings.redis_url == "redis://cache:6379/2"
        assert settings.weather_cache_ttl == 600
        assert settings.http_timeout_s == 2.5

    def test_reads_process_environment(self, monkeypatch):
        """Without an explicit mapping, settings come from os.environ.

        Implementation: Sets an env var with monkeypatch and loads settings.
        Passing implies: Deployed processes are configured through the environment.
        """
        monkeypatch.setenv("OPENWEATHERMAP_APP_ID", "from-env")
        assert load_settings().openweathermap_app_id == "from-env"

    def test_log_level_is_normalized(self):
        """Log levels are accepted in any case and stored upper-cased.

        Implementation: Loads LOG_LEVEL=debug.
        Passing implies: logging.basicConfig receives a level name it knows.
        """
        assert load_settings({"LOG_LEVEL": " debug "}).log_level == "DEBUG"

    def test_unknown_log_level_is_rejected(self):
        """A misspelled log level fails while loading settings.

        Implementation: Loads LOG_LEVEL=LOUD.
        Passing implies: Bad configuration is reported up front, not as a crash during startup.
        """
        with pytest.raises(ValidationError, match="Unknown log level"):
            load_settings({"LOG_LEVEL": "LOUD"})


class TestRateLimitValidator:
    def test_raises_for_get_429(self):
        """A 429 answer to a GET raises so the transport retries it.

        Implementation: Validates a GET 429 response.
        Passing implies: Rate-limited reads are retried with backoff.
        """
        with pytest.raises(httpx.HTTPStatusError):
            raise_for_rate_limit(_response(429))

    @pytest.mark.parametrize("status_code,method", [(429, "POST"), (500, "GET"), (401, "GET"), (200, "GET")])
    def test_ignores_everything_else(self, status_code, method):
        """Other statuses and non-GET methods pass straight through.

        Implementation: Validates several non-retryable responses.
        Passing implies: Only idempotent rate-limited requests are retried.
        """
        raise_for_rate_limit(_response(status_code, method))


class TestClientFactories:
    @pytest.mark.asyncio
    async def test_http_client_timeout(self):
        """The shared client enforces the configured request deadline.

        Implementation: Builds a client with a 5 second timeout.
        Passing implies: Slow providers fail instead of hanging a request.
        """
        client = create_http_client(5.0)
        try:
            assert client.timeout == httpx.Timeout(5.0)
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_create_deps(self):
        """create_deps wires settings, HTTP client, and Redis client together.

        Implementation: Builds deps from Settings; Redis connects lazily so no server is needed.
        Passing implies: The web lifespan can construct its dependencies.
        """
        deps = create_deps(Settings(http_timeout_s=3.0))
        try:
            assert isinstance(deps, ForecasterDeps)
            assert deps.http_client.timeout == httpx.Timeout(3.0)
        finally:
            await deps.http_client.aclose()
            await deps.redis.aclose()


def _scripted_transport(monkeypatch, statuses: list[int]) -> list[httpx.Request]:
    """Make the real network transport answer with the given statuses in order."""
    sent = []

    async def handle_async_request(self, request):
        sent.append(request)
        status_code = statuses[len(sent) - 1]
        headers = {"Retry-After": "0"} if status_code == 429 else {}
        return httpx.Response(status_code, headers=headers, json={}, request=request)

    monkeypatch.setattr(httpx.AsyncHTTPTransport, "handle_async_request", handle_async_request)
    return sent


class TestRetryTransport:
    @pytest.mark.asyncio
    async def test_retries_rate_limited_get_until_success(self, monkeypatch):
        """Two 429 answers are retried and the following 200 is returned.

        Implementation: Scripts the network as 429, 429, 200 under create_http_client.
        Passing implies: The retry config is actually wired into the client's transport.
        """
        sent = _scripted_transport(monkeypatch, [429, 429, 200])
        client = create_http_client()
        try:
            response = await client.get("https://api.example.com/")
        finally:
            await client.aclose()

        assert response.status_code == 200
        assert len(sent) == 3

    @pytest.mark.asyncio
    async def test_server_error_is_not_retried(self, monkeypatch):
        """A 500 is handed back after a single attempt.

        Implementation: Scripts the network as 500, 200.
        Passing implies: Only rate limiting triggers a retry.
        """
        sent = _scripted_transport(monkeypatch, [500, 200])
        client = create_http_client()
        try:
            response = await client.get("https://api.example.com/")
        finally:
            await client.aclose()

        assert response.status_code == 500
        assert len(sent) == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, monkeypatch):
        """Persistent rate limiting surfaces as an HTTPStatusError.

        Implementation: Scripts the network to answer 429 on every attempt.
        Passing implies: Retries are bounded by MAX_ATTEMPTS.
        """
        sent = _scripted_transport(monkeypatch, [429] * MAX_ATTEMPTS)
        client = create_http_client()
        try:
            with pytest.raises(httpx.HTTPStatusError):
                await client.get("https://api.example.com/")
        finally:
            await client.aclose()

        assert len(sent) == MAX_ATTEMPTS
