"""
Time capsule client facade.

This is the main entry point for users of the library. It wires the HTTP
client, local persistence and services together behind a small async API.
"""

import asyncio
from collections.abc import Iterable, Mapping
from typing import Any, Self

import httpx
import structlog

from time_capsule.api.http_client import StorageHttpClient
from time_capsule.config import TimeCapsuleConfig
from time_capsule.core.cache import ContentCache
from time_capsule.core.retry import RetryPolicy
from time_capsule.crypto.engine import CryptoEngine
from time_capsule.models.capsule import (
    FileDecryptionReport,
    RevealedCapsule,
    RevealResult,
    SealedCapsule,
    Visibility,
)
from time_capsule.models.crypto import RecoveryKit
from time_capsule.models.storage import StorageInfo
from time_capsule.services.content_store import ContentStore
from time_capsule.services.reveal_coordinator import RevealCoordinator
from time_capsule.services.seal_service import FileInput, SealService
from time_capsule.storage.directory import (
    CapsuleDirectory,
    KeyValueCapsuleDirectory,
    KeyValueRecoveryKitStore,
    RecoveryKitStore,
)
from time_capsule.storage.kv import FileKeyValueStore, InMemoryKeyValueStore, KeyValueStore
from time_capsule.storage.ledger import RevealLedger

logger = structlog.get_logger(__name__)


class TimeCapsuleClient:
    """
    Async client for sealing and revealing time capsules.

    Example:
        ```python
        async with TimeCapsuleClient(TimeCapsuleConfig.from_env()) as client:
            sealed = await client.seal(
                title="Letter to 2030",
                description="Open me later",
                creator="0xabc...",
                unlock_time=1893456000,
            )

            result = await client.reveal(
                sealed.record.id, sealed.recovery_kit, "0xabc...", sealed.record.unlock_time
            )
            if not result.success:
                print(result.message)
        ```

    Args:
        config: Client configuration. Uses defaults if not provided.
        store: Local key-value store. Defaults to a file store at
            ``config.local_store_path``, or memory when unset.
        directory: Capsule directory. Defaults to one kept in the local store.
        kit_store: Recovery kit store. Defaults to one kept in the local store.
        transport: Optional httpx transport for testing (mock transport).
    """

    def __init__(
        self,
        config: TimeCapsuleConfig | None = None,
        *,
        store: KeyValueStore | None = None,
        directory: CapsuleDirectory | None = None,
        kit_store: RecoveryKitStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or TimeCapsuleConfig()
        self._transport = transport
        self._kv = store or self._default_store(self._config)

        self._local_directory = KeyValueCapsuleDirectory(self._kv)
        self._local_kits = KeyValueRecoveryKitStore(self._kv)
        self._directory = directory or self._local_directory
        self._kit_store = kit_store or self._local_kits

        self._http: StorageHttpClient | None = None
        self._content_store: ContentStore | None = None
        self._seal_service: SealService | None = None
        self._coordinator: RevealCoordinator | None = None

        self._initialized = False
        self._init_lock = asyncio.Lock()

    @staticmethod
    def _default_store(config: TimeCapsuleConfig) -> KeyValueStore:
        if config.local_store_path is None:
            return InMemoryKeyValueStore()
        return FileKeyValueStore(config.local_store_path)

    async def __aenter__(self) -> Self:
        """Enter async context."""
        await self._ensure_initialized()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        """Exit async context."""
        await self.close()

    async def _ensure_initialized(self) -> None:
        """Ensure all components are initialized."""
        async with self._init_lock:
            if self._initialized:
                return

            self._http = StorageHttpClient(self._config, transport=self._transport)
            await self._http.__aenter__()

            crypto = CryptoEngine()
            self._content_store = ContentStore(
                self._http,
                self._kv,
                gateways=self._config.gateways,
                retry_policy=RetryPolicy.from_config(self._config),
                storage_limit_bytes=self._config.storage_limit_bytes,
                cache=ContentCache(self._config.content_cache_max_bytes),
            )
            self._seal_service = SealService(self._content_store, crypto)
            self._coordinator = RevealCoordinator(
                self._content_store,
                RevealLedger(self._kv),
                self._directory,
                crypto=crypto,
                kit_store=self._kit_store,
            )

            self._initialized = True
            logger.debug("Client initialized")

    async def close(self) -> None:
        """Close the client and release resources."""
        async with self._init_lock:
            if self._http:
                await self._http.__aexit__(None, None, None)
                self._http = None

            self._content_store = None
            self._seal_service = None
            self._coordinator = None
            self._initialized = False
            logger.debug("Client closed")

    @property
    def content_store(self) -> ContentStore:
        if self._content_store is None:
            raise RuntimeError("Client not initialized")
        return self._content_store

    @property
    def coordinator(self) -> RevealCoordinator:
        if self._coordinator is None:
            raise RuntimeError("Client not initialized")
        return self._coordinator

    async def seal(
        self,
        *,
        title: str,
        description: str,
        creator: str,
        unlock_time: int,
        files: Iterable[FileInput] = (),
        capsule_id: str | None = None,
        visibility: Visibility = Visibility.PUBLIC,
    ) -> SealedCapsule:
        """
        Seal a capsule, register it locally and keep its recovery kit.

        The record goes to the local directory and the kit to the local kit
        store, so the unlock sweep can reveal it later.

        Returns:
            SealedCapsule with the record and the recovery kit to hand out.
        """
        await self._ensure_initialized()
        if self._seal_service is None:
            raise RuntimeError("Client not initialized")
        sealed = await self._seal_service.seal(
            title=title,
            description=description,
            creator=creator,
            unlock_time=unlock_time,
            files=files,
            capsule_id=capsule_id,
            visibility=visibility,
        )
        self._local_directory.register(sealed.record)
        self._local_kits.save(sealed.recovery_kit, sealed.record.locator)
        return sealed

    async def reveal(
        self,
        capsule_id: str,
        kit: RecoveryKit | Mapping[str, Any],
        caller_address: str,
        original_unlock_time: int,
        message: str | None = None,
    ) -> RevealResult:
        """Reveal a capsule once. See RevealCoordinator.reveal."""
        await self._ensure_initialized()
        return await self.coordinator.reveal(
            capsule_id, kit, caller_address, original_unlock_time, message
        )

    async def preview_capsule(
        self,
        capsule_id: str,
        kit: RecoveryKit | Mapping[str, Any],
        caller_address: str,
        original_unlock_time: int,
    ) -> RevealResult:
        """Decrypt a capsule without revealing it. See RevealCoordinator.preview_capsule."""
        await self._ensure_initialized()
        return await self.coordinator.preview_capsule(
            capsule_id, kit, caller_address, original_unlock_time
        )

    async def decrypt_capsule_files(self, revealed: RevealedCapsule) -> FileDecryptionReport:
        await self._ensure_initialized()
        return await self.coordinator.decrypt_capsule_files(revealed)

    async def check_and_reveal_unlocked_capsules(self, caller_address: str) -> int:
        await self._ensure_initialized()
        return await self.coordinator.check_and_reveal_unlocked_capsules(caller_address)

    async def get_revealed_capsules(self) -> list[RevealedCapsule]:
        await self._ensure_initialized()
        return self.coordinator.get_revealed_capsules()

    async def like_capsule(self, capsule_id: str) -> bool:
        await self._ensure_initialized()
        return self.coordinator.like_capsule(capsule_id)

    async def add_comment(self, capsule_id: str, author: str, content: str) -> bool:
        await self._ensure_initialized()
        return self.coordinator.add_comment(capsule_id, author, content)

    async def storage_info(self) -> StorageInfo:
        await self._ensure_initialized()
        return await self.content_store.get_info()
