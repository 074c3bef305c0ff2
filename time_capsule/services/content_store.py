"""
Content-addressed storage with redundant gateways and a local fallback.

Writes go to the pinning service and fall back to the local store when it is
unavailable. Reads dispatch on the locator kind: local content never touches
the network, remote content is fetched from an ordered list of gateways with
bounded retries.
"""

import asyncio
import hashlib
import json
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import httpx
import structlog

from time_capsule.api.endpoints.gateway import fetch_from_gateway, gateway_url
from time_capsule.api.endpoints.pinning import check_authentication, get_pinned_total, pin_file
from time_capsule.api.http_client import StorageHttpClient
from time_capsule.core.cache import ContentCache
from time_capsule.core.retry import RetryPolicy
from time_capsule.exceptions import FetchError, GatewayError, NotFoundError, TimeCapsuleError
from time_capsule.models.storage import FetchCause, LocalContentMeta, Locator, StorageInfo
from time_capsule.storage.kv import KeyValueStore, read_json, write_json

logger = structlog.get_logger(__name__)

CONTENT_PREFIX = "content_"
META_PREFIX = "content_meta_"


class ContentStore:
    """
    Put/get of immutable content by address.

    Example:
        ```python
        locator = await store.put(ciphertext, "capsule.bin")
        assert await store.get(locator) == ciphertext
        ```
    """

    def __init__(
        self,
        http: StorageHttpClient,
        local_store: KeyValueStore,
        *,
        gateways: Sequence[str],
        retry_policy: RetryPolicy | None = None,
        storage_limit_bytes: int = 1024**3,
        cache: ContentCache | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            http: Storage HTTP client for the pinning API and gateways.
            local_store: Persisted fallback store.
            gateways: Ordered gateway base URLs, primary first.
            retry_policy: Per-gateway retry schedule.
            storage_limit_bytes: Quota reported by ``get_info``.
            cache: Cache of fetched remote content.
            sleep: Coroutine used for backoff delays.
            clock: Unix time source.
        """
        if not gateways:
            msg = "at least one gateway is required"
            raise ValueError(msg)
        self._http = http
        self._local = local_store
        self._gateways = tuple(gateways)
        self._policy = retry_policy or RetryPolicy()
        self._limit = storage_limit_bytes
        self._cache = cache if cache is not None else ContentCache()
        self._sleep = sleep
        self._clock = clock

    @property
    def gateways(self) -> tuple[str, ...]:
        return self._gateways

    # Writes

    async def put(self, data: bytes, name: str) -> Locator:
        """
        Store content, remotely when possible and locally otherwise.

        Never fails for network reasons: any remote failure (missing
        credentials, auth, quota, transport, non-success or malformed response)
        falls back to the local store.

        Args:
            data: Content bytes.
            name: Descriptive name attached as metadata.

        Returns:
            Remote locator on successful pin, local locator otherwise.
        """
        if not self._http.has_credentials:
            logger.info("No pinning credentials, storing locally", name=name, size=len(data))
            return self._put_local(data, name)

        try:
            result = await pin_file(self._http, data, name)
        except (TimeCapsuleError, httpx.HTTPError) as e:
            logger.warning(
                "Remote upload failed, falling back to local store", name=name, error=str(e)
            )
            return self._put_local(data, name)

        self._cache.put(result.address, data)
        logger.info("Content pinned", address=result.address, size=result.size)
        return Locator.remote(result.address)

    async def put_text(self, text: str, name: str) -> Locator:
        return await self.put(text.encode("utf-8"), name)

    async def put_json(self, value: Any, name: str = "data.json") -> Locator:
        return await self.put(json.dumps(value).encode("utf-8"), name)

    def _put_local(self, data: bytes, name: str) -> Locator:
        address = hashlib.sha256(data).hexdigest()
        meta = LocalContentMeta(name=name, uploaded_at=int(self._clock() * 1000), size=len(data))
        self._local.set(f"{CONTENT_PREFIX}{address}", data)
        write_json(self._local, f"{META_PREFIX}{address}", meta.to_dict())
        logger.debug("Content stored locally", address=address, size=len(data))
        return Locator.local(address)

    # Reads

    async def get(self, locator: Locator) -> bytes:
        """
        Retrieve content by locator.

        Args:
            locator: Local or remote locator.

        Returns:
            Content bytes, identical whichever gateway served them.

        Raises:
            NotFoundError: If local content is absent.
            FetchError: If every gateway failed, classified by the last cause.
        """
        if locator.is_local:
            return self._get_local(locator.address)
        return await self._get_remote(locator.address)

    async def get_text(self, locator: Locator) -> str:
        return (await self.get(locator)).decode("utf-8")

    async def get_json(self, locator: Locator) -> Any:
        return json.loads(await self.get(locator))

    def _get_local(self, address: str) -> bytes:
        content = self._local.get(f"{CONTENT_PREFIX}{address}")
        if content is None:
            msg = f"Content not found in local store: {address}"
            raise NotFoundError(msg)
        return content

    def get_local_meta(self, locator: Locator) -> LocalContentMeta | None:
        if not locator.is_local:
            return None
        data = read_json(self._local, f"{META_PREFIX}{locator.address}", None)
        return LocalContentMeta.from_dict(data) if data else None

    async def _get_remote(self, address: str) -> bytes:
        if (cached := self._cache.get(address)) is not None:
            logger.debug("Content served from cache", address=address)
            return cached

        attempts = 0
        last_error: GatewayError | None = None
        for gateway in self._gateways:
            for retry_index in range(self._policy.max_attempts):
                if attempts > 0:
                    await self._sleep(self._policy.backoff(retry_index))
                attempts += 1
                try:
                    content = await fetch_from_gateway(
                        self._http, gateway, address, timeout=self._policy.attempt_timeout
                    )
                except GatewayError as e:
                    last_error = e
                    logger.debug(
                        "Gateway attempt failed",
                        gateway=gateway,
                        address=address,
                        attempt=retry_index + 1,
                        cause=e.cause.value,
                        status_code=e.status_code,
                    )
                    if not self._policy.is_retryable(e.cause):
                        break
                    continue

                self._cache.put(address, content)
                logger.info(
                    "Content fetched", gateway=gateway, address=address, attempts=attempts
                )
                return content

        if last_error is None:
            msg = f"No gateway attempted for {address}"
            raise FetchError(msg, cause=FetchCause.NETWORK, attempts=attempts)
        logger.warning(
            "All gateways exhausted",
            address=address,
            cause=last_error.cause.value,
            attempts=attempts,
        )
        msg = f"Failed to fetch content from {len(self._gateways)} gateways: {last_error.message}"
        raise FetchError(msg, cause=last_error.cause, mirror=last_error.gateway, attempts=attempts)

    # Operational info

    async def is_available(self) -> bool:
        """Whether the remote pinning service accepts our credentials."""
        if not self._http.has_credentials:
            return False
        try:
            return await check_authentication(self._http)
        except (TimeCapsuleError, httpx.HTTPError) as e:
            logger.info("Pinning service unavailable", error=str(e))
            return False

    async def get_info(self) -> StorageInfo:
        """
        Storage usage and availability.

        Reports remote usage when the pinning service is reachable, local
        fallback usage otherwise.
        """
        if await self.is_available():
            try:
                used = await get_pinned_total(self._http)
            except (TimeCapsuleError, httpx.HTTPError) as e:
                logger.info("Could not read pinned total", error=str(e))
            else:
                return StorageInfo(available=True, used_bytes=used, limit_bytes=self._limit)
        return StorageInfo(
            available=False, used_bytes=self.local_usage_bytes(), limit_bytes=self._limit
        )

    def local_usage_bytes(self) -> int:
        total = 0
        for key in self._local.keys(META_PREFIX):
            if (meta := read_json(self._local, key, None)) is not None:
                total += int(meta.get("size", 0))
        return total

    def gateway_url(self, locator: Locator) -> str | None:
        """Primary gateway URL of remote content, None for local content."""
        if not locator.is_remote:
            return None
        return gateway_url(self._gateways[0], locator.address)
