# ABOUTME: Shared test fixtures for the forecaster test suite.
# ABOUTME: Provides a dict-backed fake Redis with a manual clock and mock HTTP client helpers.

import math
from unittest.mock import AsyncMock

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError


class FakeRedis:
    """Minimal async Redis fake for GET, SET with EX, and TTL.

    Time only moves when a test calls ``advance``.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._store: dict[str, str] = {}
        self._expires_at: dict[str, float] = {}
        self.set_calls = 0

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _expire(self, key: str) -> None:
        expires_at = self._expires_at.get(key)
        if expires_at is not None and expires_at <= self.now:
            self._store.pop(key, None)
            self._expires_at.pop(key, None)

    async def get(self, key: str) -> str | None:
        self._expire(key)
        return self._store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.set_calls += 1
        self._store[key] = value
        if ex is None:
            self._expires_at.pop(key, None)
        else:
            self._expires_at[key] = self.now + ex
        return True

    async def ttl(self, key: str) -> int:
        self._expire(key)
        if key not in self._store:
            return -2
        if key not in self._expires_at:
            return -1
        return math.ceil(self._expires_at[key] - self.now)

    async def aclose(self) -> None:
        pass


class BrokenRedis:
    """Redis stand-in whose every call fails as if the server were down."""

    async def get(self, key):
        raise RedisConnectionError("Connection refused")

    async def set(self, key, value, ex=None):
        raise RedisConnectionError("Connection refused")

    async def ttl(self, key):
        raise RedisConnectionError("Connection refused")


def json_response(json_data, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code=status_code, json=json_data, request=httpx.Request("GET", "https://test"))


def mock_client(json_data=None, status_code: int = 200) -> httpx.AsyncClient:
    """Create a mock httpx.AsyncClient that returns the given JSON response."""
    mock = AsyncMock(spec=httpx.AsyncClient)
    mock.get.return_value = json_response(json_data if json_data is not None else {}, status_code)
    return mock


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def broken_redis() -> BrokenRedis:
    return BrokenRedis()
