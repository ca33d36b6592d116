"""
Provider Transport

Shared HTTP plumbing for provider adapters:
- Lazily created httpx.AsyncClient per provider
- Per-provider rate limiting and response caching
- Capped exponential backoff for retryable failures
- Mapping of transport/HTTP failures to tagged ProviderResults
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

import httpx
from loguru import logger

from editionscout.providers.cache import TTLCache
from editionscout.providers.rate_limit import RateLimitConfig, RateLimiter
from editionscout.providers.result import ProviderErrorKind, ProviderResult


@dataclass
class BackoffPolicy:
    """Capped exponential backoff."""

    max_retries: int = 1
    initial_delay: float = 0.5
    max_delay: float = 4.0
    multiplier: float = 2.0
    jitter: bool = True

    def delay_for(self, retry: int) -> float:
        """
        Delay before the given retry (1-based).

        Args:
            retry: Retry number, 1 for the first retry.

        Returns:
            Seconds to wait, never above max_delay.
        """
        delay = min(self.max_delay, self.initial_delay * (self.multiplier ** (retry - 1)))
        if self.jitter:
            delay = min(self.max_delay, delay + random.uniform(0, delay * 0.1))
        return delay


@dataclass
class ProviderSettings:
    """Connection, budget and caching settings for one provider."""

    name: str
    base_url: str
    timeout: float = 5.0
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    cache_ttl_seconds: float = 3600.0
    cache_max_entries: int = 1000
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    headers: dict[str, str] = field(default_factory=dict)


class ProviderTransport:
    """
    Rate-limited, cached, retrying JSON GET for one provider.

    Never raises for transport or HTTP failures; every outcome is a
    ProviderResult.
    """

    def __init__(
        self,
        settings: ProviderSettings,
        limiter: Optional[RateLimiter] = None,
        cache: Optional[TTLCache] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Args:
            settings: Provider settings.
            limiter: Rate limiter (a private one is created if omitted).
            cache: Response cache (a private one is created if omitted).
            client: Preconfigured HTTP client, mainly for tests.
            sleep: Awaitable sleep used between retries.
        """
        self.settings = settings
        self.name = settings.name
        self.limiter = limiter or RateLimiter(settings.name, settings.rate_limit)
        self.cache = cache or TTLCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
        )
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.timeout,
                headers=self.settings.headers,
            )
        return self._client

    def url_for(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return self.settings.base_url.rstrip("/") + "/" + path.lstrip("/")

    async def get_json(
        self,
        path: str,
        params: Optional[dict] = None,
        use_cache: bool = True,
    ) -> ProviderResult[Any]:
        """
        GET a JSON document.

        Args:
            path: Path relative to the provider base URL (or absolute URL).
            params: Query parameters.
            use_cache: Serve from / store into the response cache.

        Returns:
            ProviderResult with the decoded payload, or a tagged error.
        """
        cache_key = TTLCache.make_key(self.name, path, params)
        if use_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return ProviderResult.success(self.name, cached, cached=True)

        backoff = self.settings.backoff
        retry = 0
        while True:
            allowed, _, retry_after = self.limiter.try_acquire()
            if not allowed:
                return ProviderResult.failure(
                    self.name,
                    ProviderErrorKind.RATE_LIMITED,
                    f"Local rate limit reached, retry in {retry_after:.1f}s",
                )

            result = await self._request(path, params)
            if result.ok:
                if use_cache:
                    self.cache.set(cache_key, result.data)
                return result

            if not result.error.retryable or retry >= backoff.max_retries:
                logger.warning(
                    f"{self.name} request to {path} failed: "
                    f"{result.error.kind.value} - {result.error.message}"
                )
                return result

            retry += 1
            delay = backoff.delay_for(retry)
            logger.debug(
                f"{self.name}: {result.error.kind.value}, retry {retry}/{backoff.max_retries} in {delay:.2f}s"
            )
            await self._sleep(delay)

    async def _request(self, path: str, params: Optional[dict]) -> ProviderResult[Any]:
        client = await self._get_client()

        try:
            response = await client.get(self.url_for(path), params=params)
        except httpx.TimeoutException as e:
            return ProviderResult.failure(self.name, ProviderErrorKind.TIMEOUT, f"Request timed out: {e}")
        except httpx.HTTPError as e:
            return ProviderResult.failure(self.name, ProviderErrorKind.NETWORK_ERROR, f"Network error: {e}")

        status = response.status_code
        if status in (401, 403):
            return ProviderResult.failure(
                self.name, ProviderErrorKind.UNAUTHORIZED, "Invalid or missing API key", status
            )
        if status == 429:
            return ProviderResult.failure(
                self.name, ProviderErrorKind.RATE_LIMITED, "Provider rate limit exceeded", status
            )
        if status == 404:
            return ProviderResult.failure(
                self.name, ProviderErrorKind.NOT_FOUND, "Resource not found", status
            )
        if not 200 <= status < 300:
            return ProviderResult.failure(
                self.name, ProviderErrorKind.API_ERROR, f"HTTP {status}", status
            )

        try:
            payload = response.json()
        except ValueError as e:
            return ProviderResult.failure(
                self.name, ProviderErrorKind.INVALID_RESPONSE, f"Malformed JSON: {e}", status
            )

        return ProviderResult.success(self.name, payload)

    def status(self) -> dict:
        return {
            "rate_limit": self.limiter.remaining(),
            "cache": self.cache.stats(),
        }

    async def close(self):
        """Close HTTP client."""
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None
