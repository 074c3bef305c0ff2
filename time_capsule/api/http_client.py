"""
Async HTTP client for the pinning API and the read gateways.

Provides a clean interface for pinning API requests with error mapping, and
raw GETs against gateway URLs. Credentials are only ever attached to pinning
API requests, never to gateway requests.
"""

import asyncio
from typing import Any

import httpx
import structlog

from time_capsule.config import TimeCapsuleConfig
from time_capsule.core.sanitize import sanitize_for_log
from time_capsule.exceptions import APIError, NetworkError, RateLimitError

logger = structlog.get_logger(__name__)


class StorageHttpClient:
    """Async HTTP client shared by the pinning endpoints and gateway fetches."""

    def __init__(
        self,
        config: TimeCapsuleConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            config: Client configuration.
            transport: Optional transport for testing (mock transport).
        """
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def __aenter__(self) -> "StorageHttpClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self._config.pinning_api_url,
                    timeout=self._config.timeout,
                    transport=self._transport,
                    headers={"User-Agent": self._config.user_agent},
                    follow_redirects=True,
                )
        return self._client

    async def close(self) -> None:
        async with self._client_lock:
            if self._client is None:
                logger.debug("Client not open.")
                return
            await self._client.aclose()
            self._client = None

    @property
    def has_credentials(self) -> bool:
        return self._config.has_pinning_credentials

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """
        Make an authenticated pinning API request.

        Args:
            method: HTTP method (GET, POST, etc.).
            endpoint: API endpoint (e.g., "/pinning/pinFileToIPFS").
            data: Multipart form fields.
            files: Multipart file fields.
            timeout: Optional custom timeout.

        Returns:
            Response JSON data.

        Raises:
            APIError: If credentials are missing or the API returns an error.
            RateLimitError: If the API rate limits the request.
            NetworkError: If the request fails at the transport level.
        """
        if not self._config.pinning_jwt:
            msg = "Pinning credentials not configured"
            raise APIError(msg, code=httpx.codes.UNAUTHORIZED, endpoint=endpoint)

        client = await self._ensure_client()
        try:
            response = await client.request(
                method=method,
                url=endpoint,
                data=data,
                files=files,
                headers={"Authorization": f"Bearer {self._config.pinning_jwt}"},
                timeout=timeout or self._config.timeout,
            )
        except httpx.HTTPError as e:
            msg = f"Pinning API request failed: {e.__class__.__name__}"
            raise NetworkError(msg, endpoint=endpoint) from e

        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise APIError(
                "Invalid JSON response from API",
                code=response.status_code,
                endpoint=endpoint,
            ) from e

        if not response.is_success:
            self._raise_api_error(response.status_code, payload, endpoint)

        if isinstance(payload, dict):
            logger.debug("Pinning API response", endpoint=endpoint, data=sanitize_for_log(payload))
            return payload
        return {"data": payload}

    async def get_raw(self, url: str, *, timeout: float | None = None) -> httpx.Response:
        """
        Unauthenticated GET of an absolute URL (gateway download).

        The response is returned whatever its status, classification is left
        to the caller.

        Raises:
            httpx.HTTPError: If the request fails at the transport level.
        """
        client = await self._ensure_client()
        return await client.get(url, timeout=timeout or self._config.gateway_timeout)

    @staticmethod
    def _raise_api_error(status: int, payload: Any, endpoint: str) -> None:
        error_msg = "Unknown error"
        if isinstance(payload, dict):
            error = payload.get("error", payload.get("message", error_msg))
            if isinstance(error, dict):
                error = error.get("reason") or error.get("details") or error_msg
            error_msg = str(error)

        msg = f"{error_msg} (status={status})"
        raise APIError(msg, code=status, endpoint=endpoint)
