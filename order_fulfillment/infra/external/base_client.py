"""Base HTTP client for calls to other services.

Provides:
- Connection pooling
- Retry with exponential backoff for transient transport errors
- Request/response logging
- Timeout configuration
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from order_fulfillment.utils.retry import RetryStrategy, call_with_retry

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


class BaseHTTPClient:
    """Base HTTP client for service-to-service calls.

    Example:
        class InventoryClient(BaseHTTPClient):
            async def get_product(self, product_id: str) -> dict:
                return await self.get("product-by-id", headers={"id": product_id})
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_delay: float = 0.5,
    ) -> None:
        """Initialize HTTP client.

        Args:
            base_url: Base URL for the API.
            timeout: Request timeout in seconds.
            max_retries: Retries after the first attempt for transient errors.
            headers: Default headers to include in all requests.
            transport: Optional transport (``httpx.MockTransport`` in tests).
            retry_delay: Initial backoff delay in seconds.
        """
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.default_headers = headers or {}
        self.retry_strategy = RetryStrategy(
            max_attempts=max_retries + 1,
            initial_delay=retry_delay,
            max_delay=10.0,
            exceptions=TRANSIENT_ERRORS,
        )

        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers=self.default_headers,
            limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client and release connections."""
        await self.client.aclose()

    async def __aenter__(self) -> BaseHTTPClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET ``path`` and return the decoded JSON body.

        Raises:
            httpx.HTTPStatusError: On a non-2xx response.
            RetryError: When transient errors persist across all attempts.
            ValueError: If the body is not JSON.
        """
        return await call_with_retry(self.retry_strategy, self._get, path, params, headers)

    async def _get(
        self,
        path: str,
        params: dict[str, Any] | None,
        headers: dict[str, str] | None,
    ) -> Any:
        logger.debug(
            f"GET request to {self.base_url}{path}",
            extra={"path": path, "params": params},
        )

        started = time.perf_counter()
        response = await self.client.get(path, params=params, headers=headers)
        duration_ms = (time.perf_counter() - started) * 1000

        logger.info(
            f"GET response from {self.base_url}{path}",
            extra={
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

        response.raise_for_status()
        return response.json()
