"""Shared HTTP plumbing for the travel-data provider clients.

Every provider call goes through ``BaseAsyncAPIClient._request``, which
maps HTTP outcomes onto the ``ToolError`` family below:

- 401 raises ``AuthenticationError`` and 429 raises ``RateLimitError``
- any other 4xx raises ``APIClientError`` straight away
- 5xx and transport failures are retried, sleeping a little longer
  before each new attempt
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ToolError(Exception):
    """A provider call failed.

    ``tool_name`` names the client class; ``details`` carries whatever the
    caller may want to log or classify on (for example ``status_code``).
    """

    def __init__(self, message: str, tool_name: str, details: dict | None = None):
        self.message = message
        self.tool_name = tool_name
        self.details = details or {}
        super().__init__(message)


class APIClientError(ToolError):
    """Provider rejected the request or stayed unavailable."""


class RateLimitError(ToolError):
    """Provider answered 429."""


class AuthenticationError(ToolError):
    """Provider refused our credentials."""


class BaseAsyncAPIClient(ABC):
    """Async JSON client with status mapping and retry on server failures.

    Subclasses supply ``_get_headers``; it is awaited for every attempt so
    a rotated bearer token is picked up mid-retry.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_backoff: float = 0.5,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self._client = http_client
        self._owns_client = http_client is None

    async def __aenter__(self) -> "BaseAsyncAPIClient":
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise APIClientError(
                "Client not initialized. Use async context manager.",
                tool_name=self.name,
            )
        return self._client

    @abstractmethod
    async def _get_headers(self) -> dict[str, str]:
        """Headers for the next request."""

    def _backoff(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (0-based)."""
        return self.retry_backoff * (2**attempt)

    def _check_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status == 401:
            raise AuthenticationError("Authentication failed", tool_name=self.name)
        if status == 429:
            raise RateLimitError("Rate limit exceeded", tool_name=self.name)
        if 400 <= status < 500:
            raise APIClientError(
                f"HTTP error: {status}",
                tool_name=self.name,
                details={"status_code": status},
            )

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict | None = None,
        json_data: dict | None = None,
        **kwargs: Any,
    ) -> dict:
        url = endpoint if endpoint.startswith("/") else f"/{endpoint}"
        failure: APIClientError | None = None

        for attempt in range(self.max_retries):
            if failure is not None:
                await asyncio.sleep(self._backoff(attempt - 1))
            try:
                response = await self.client.request(
                    method,
                    url,
                    params=params,
                    json=json_data,
                    headers=await self._get_headers(),
                    timeout=self.timeout,
                    **kwargs,
                )
            except httpx.RequestError as e:
                failure = APIClientError(f"Request error: {e}", tool_name=self.name)
                logger.warning(
                    f"{self.name} {method} {url} attempt {attempt + 1}/{self.max_retries} failed: {e}"
                )
                continue

            self._check_status(response)
            if response.status_code >= 500:
                failure = APIClientError(
                    f"HTTP error: {response.status_code}",
                    tool_name=self.name,
                    details={"status_code": response.status_code},
                )
                logger.warning(
                    f"{self.name} {method} {url} attempt {attempt + 1}/{self.max_retries} "
                    f"returned {response.status_code}"
                )
                continue

            return response.json()

        raise failure or APIClientError("Max retries exceeded", tool_name=self.name)

    async def get(self, endpoint: str, params: dict | None = None, **kwargs: Any) -> dict:
        return await self._request("GET", endpoint, params=params, **kwargs)

    async def post(
        self,
        endpoint: str,
        json_data: dict | None = None,
        params: dict | None = None,
        **kwargs: Any,
    ) -> dict:
        return await self._request("POST", endpoint, params=params, json_data=json_data, **kwargs)
