# ABOUTME: Dependency container and factories for the shared HTTP client and Redis connection.
# ABOUTME: The httpx client retries rate-limited GETs with tenacity backoff at the transport level.

from typing import Any

import httpx
import redis.asyncio as aioredis
from pydantic import BaseModel, ConfigDict
from pydantic_ai.retries import AsyncTenacityTransport, RetryConfig, wait_retry_after
from tenacity import retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from forecaster.config import Settings

MAX_ATTEMPTS = 5


class ForecasterDeps(BaseModel):
    """Long-lived clients shared by every request."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    settings: Settings
    http_client: httpx.AsyncClient
    redis: Any  # redis.asyncio.Redis compatible


def raise_for_rate_limit(response: httpx.Response) -> None:
    """Raise only for 429 responses to GET requests so nothing else is retried."""
    if response.status_code == 429 and response.request.method == "GET":
        response.raise_for_status()


def create_http_client(timeout_s: float = 5.0) -> httpx.AsyncClient:
    """Create an httpx client that retries GET requests answered with 429.

    Up to five attempts, honouring Retry-After when present and otherwise
    backing off exponentially from 0.5s with jitter. Other status codes are
    returned to the caller untouched.
    """
    transport = AsyncTenacityTransport(
        RetryConfig(
            retry=retry_if_exception_type(httpx.HTTPStatusError),
            wait=wait_retry_after(
                fallback_strategy=wait_exponential_jitter(initial=0.5, exp_base=2, jitter=0.25),
                max_wait=30,
            ),
            stop=stop_after_attempt(MAX_ATTEMPTS),
            reraise=True,
        ),
        validate_response=raise_for_rate_limit,
    )
    return httpx.AsyncClient(transport=transport, timeout=timeout_s)


def create_redis(url: str) -> aioredis.Redis:
    return aioredis.from_url(url, decode_responses=True)


def create_deps(settings: Settings) -> ForecasterDeps:
    return ForecasterDeps(
        settings=settings,
        http_client=create_http_client(settings.http_timeout_s),
        redis=create_redis(settings.redis_url),
    )
