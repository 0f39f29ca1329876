"""
Base Catalog Adapter - Common HTTP request pattern with retry and rate limiting.

Every catalog adapter satisfies the ``AnimeSourceAdapter`` contract:

    name: str
    search(query, options) -> list[AnimeRecord]
    get_details(local_id) -> AnimeRecord | None
    get_recommendations(anime_id) -> list[AnimeRecord]

``BaseAnimeAdapter`` provides the shared infrastructure:
- httpx.AsyncClient management
- Sliding-window rate limiting sized to each catalog's published limit
- Retry on 429 with Retry-After support, and on transport errors and 5xx
- Transport failures raised as AdapterError, undecodable bodies as ParseError,
  both tagged with the source
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, ClassVar, Protocol, runtime_checkable

import httpx
from typing_extensions import Self

from animatch.models import AnimeRecord, SearchOptions
from animatch.shared.async_utils import SlidingWindowRateLimiter
from animatch.shared.exceptions import (
    AdapterError,
    ErrorContext,
    ParseError,
    RateLimitError,
    get_retry_delay,
    is_retryable_error,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class AnimeSourceAdapter(Protocol):
    """Contract consumed by the aggregator."""

    name: str

    async def search(self, query: str, options: SearchOptions) -> list[AnimeRecord]: ...

    async def get_details(self, local_id: str) -> AnimeRecord | None: ...

    async def get_recommendations(self, anime_id: str) -> list[AnimeRecord]: ...


class BaseAnimeAdapter:
    """
    Base class for catalog adapters.

    Subclasses set ``name``, ``_BASE_URL`` and ``_RATE_LIMIT`` and implement
    the three contract methods, normalizing payloads into AnimeRecord with a
    source-specific confidence heuristic.

    Example:
        class MyAdapter(BaseAnimeAdapter):
            name = "mycatalog"
            _BASE_URL = "https://api.example.com"
            _RATE_LIMIT = (60, 60.0)

            async def get_details(self, local_id: str) -> AnimeRecord | None:
                data = await self._make_request(f"/anime/{local_id}")
                return self._normalize(data) if data else None
    """

    name: ClassVar[str] = "base"
    _BASE_URL: ClassVar[str] = ""
    _RATE_LIMIT: ClassVar[tuple[int, float]] = (60, 60.0)  # (max_requests, window seconds)
    _MAX_RETRIES: ClassVar[int] = 2

    def __init__(
        self,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize base adapter.

        Args:
            timeout: HTTP timeout in seconds
            headers: Default headers for all requests
            rate_limiter: Limiter for this catalog; defaults to ``_RATE_LIMIT``
            client: Pre-built httpx client (tests inject one with a mock transport)
        """
        max_requests, window = self._RATE_LIMIT
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter(max_requests=max_requests, window=window)
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers=headers or {},
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        )

    # ===================================================================
    # Contract
    # ===================================================================

    async def search(self, query: str, options: SearchOptions) -> list[AnimeRecord]:
        raise NotImplementedError

    async def get_details(self, local_id: str) -> AnimeRecord | None:
        raise NotImplementedError

    async def get_recommendations(self, anime_id: str) -> list[AnimeRecord]:
        raise NotImplementedError

    # ===================================================================
    # Helpers
    # ===================================================================

    def composite_id(self, local_id: Any) -> str:
        return f"{self.name}-{local_id}"

    def local_id(self, anime_id: str) -> str | None:
        """
        Map an id to this catalog's local id.

        Accepts a bare local id or a composite id owned by this catalog.
        Returns None for composite ids of other catalogs.
        """
        prefix = f"{self.name}-"
        if anime_id.startswith(prefix):
            return anime_id[len(prefix) :]
        if "-" in anime_id and not anime_id.split("-", 1)[0].isdigit():
            return None
        return anime_id

    def _normalize(self, item: dict[str, Any]) -> AnimeRecord | None:
        """Convert one catalog payload item; None when it has no usable title."""
        raise NotImplementedError

    def _normalize_all(self, items: list[dict[str, Any]]) -> list[AnimeRecord]:
        records = []
        for item in items:
            record = self._normalize(item)
            if record is not None:
                records.append(record)
        return records

    def _build_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return f"{self._BASE_URL}{url}"

    async def _make_request(
        self,
        url: str,
        *,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any] | None:
        """
        Make a rate-limited HTTP request with retry on 429 and transient failures.

        Returns:
            Parsed JSON body, or None for 404

        Raises:
            RateLimitError: Still rate limited after all retries
            AdapterError: Transport failure or unexpected status
            ParseError: The body is not valid JSON
        """
        full_url = self._build_url(url)
        context = ErrorContext(operation=f"{method} {full_url}")

        for attempt in range(self._MAX_RETRIES + 1):
            await self.rate_limiter.acquire()
            try:
                response = await self._execute_request(
                    full_url, method=method, params=params, data=data, headers=headers
                )
            except httpx.RequestError as e:
                if attempt < self._MAX_RETRIES:
                    delay = get_retry_delay(e, attempt)
                    logger.warning(f"{self.name} request error (attempt {attempt + 1}): {e}")
                    await asyncio.sleep(delay)
                    continue
                raise AdapterError(f"request failed: {e}", source=self.name, context=context) from e

            if response.status_code == 404:
                return None

            if response.status_code == 429:
                retry_after = self._get_retry_after(response, attempt)
                if attempt < self._MAX_RETRIES:
                    logger.warning(
                        f"{self.name}: Rate limited (429), "
                        f"retry {attempt + 1}/{self._MAX_RETRIES} in {retry_after:.1f}s"
                    )
                    await asyncio.sleep(retry_after)
                    continue
                raise RateLimitError(source=self.name, retry_after=retry_after, context=context)

            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                error = AdapterError(
                    f"HTTP {e.response.status_code}: {e.response.reason_phrase}",
                    source=self.name,
                    context=context,
                    retryable=e.response.status_code >= 500,
                )
                if attempt < self._MAX_RETRIES and is_retryable_error(error):
                    delay = get_retry_delay(error, attempt)
                    logger.warning(f"{self.name}: {error} (attempt {attempt + 1}), retrying in {delay:.1f}s")
                    await asyncio.sleep(delay)
                    continue
                raise error from e

            try:
                return response.json()
            except ValueError as e:
                raise ParseError(f"invalid JSON: {e}", source=self.name, context=context) from e

        raise AdapterError("retries exhausted", source=self.name, context=context)

    async def _execute_request(
        self,
        url: str,
        *,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Execute the actual HTTP request. Override for custom behavior."""
        if method == "POST":
            return await self._client.post(url, json=data, params=params, headers=headers or {})
        return await self._client.get(url, params=params, headers=headers or {})

    @staticmethod
    def _get_retry_after(response: httpx.Response, attempt: int) -> float:
        """Extract Retry-After from response headers, with exponential backoff fallback."""
        try:
            return float(response.headers.get("Retry-After", 2 ** (attempt + 1)))
        except (ValueError, TypeError):
            return float(2 ** (attempt + 1))

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
