from collections.abc import AsyncIterator, Awaitable, Callable

import pytest
import pytest_asyncio

from time_capsule.api.http_client import StorageHttpClient
from time_capsule.config import TimeCapsuleConfig
from time_capsule.core.retry import RetryPolicy
from time_capsule.models.capsule import SealedCapsule
from time_capsule.services.content_store import ContentStore
from time_capsule.services.reveal_coordinator import RevealCoordinator
from time_capsule.services.seal_service import FileInput, SealService
from time_capsule.storage.directory import KeyValueCapsuleDirectory, KeyValueRecoveryKitStore
from time_capsule.storage.kv import InMemoryKeyValueStore
from time_capsule.storage.ledger import RevealLedger
from time_capsule.tests.services.constants import API, CREATOR, GATEWAYS, UNLOCK_TIME
from time_capsule.tests.utils.fakes import FakeClock, RecordingSleep
from time_capsule.tests.utils.routing_transport import RoutingTransport


@pytest.fixture
def transport() -> RoutingTransport:
    return RoutingTransport()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(UNLOCK_TIME - 3600)


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest_asyncio.fixture
async def http(transport: RoutingTransport) -> AsyncIterator[StorageHttpClient]:
    """Client holding pinning credentials."""
    config = TimeCapsuleConfig(pinning_api_url=API, pinning_jwt="test-jwt", gateways=GATEWAYS)
    client = StorageHttpClient(config, transport=transport)

    yield client

    await client.close()


@pytest_asyncio.fixture
async def anonymous_http(transport: RoutingTransport) -> AsyncIterator[StorageHttpClient]:
    """Client without pinning credentials: uploads stay local."""
    config = TimeCapsuleConfig(pinning_api_url=API, gateways=GATEWAYS)
    client = StorageHttpClient(config, transport=transport)

    yield client

    await client.close()


@pytest.fixture
def content_store(
    http: StorageHttpClient, kv: InMemoryKeyValueStore, sleep: RecordingSleep, clock: FakeClock
) -> ContentStore:
    return ContentStore(http, kv, gateways=GATEWAYS, sleep=sleep, clock=clock)


@pytest.fixture
def local_content_store(
    anonymous_http: StorageHttpClient,
    kv: InMemoryKeyValueStore,
    sleep: RecordingSleep,
    clock: FakeClock,
) -> ContentStore:
    return ContentStore(
        anonymous_http,
        kv,
        gateways=GATEWAYS,
        retry_policy=RetryPolicy(attempt_timeout=5),
        sleep=sleep,
        clock=clock,
    )


@pytest.fixture
def directory(kv: InMemoryKeyValueStore) -> KeyValueCapsuleDirectory:
    return KeyValueCapsuleDirectory(kv)


@pytest.fixture
def kit_store(kv: InMemoryKeyValueStore) -> KeyValueRecoveryKitStore:
    return KeyValueRecoveryKitStore(kv)


@pytest.fixture
def ledger(kv: InMemoryKeyValueStore) -> RevealLedger:
    return RevealLedger(kv)


@pytest.fixture
def seal_service(local_content_store: ContentStore, clock: FakeClock) -> SealService:
    return SealService(local_content_store, clock=clock)


@pytest.fixture
def coordinator(
    local_content_store: ContentStore,
    ledger: RevealLedger,
    directory: KeyValueCapsuleDirectory,
    kit_store: KeyValueRecoveryKitStore,
    clock: FakeClock,
) -> RevealCoordinator:
    return RevealCoordinator(
        local_content_store, ledger, directory, kit_store=kit_store, clock=clock
    )


@pytest.fixture
def seal_capsule(
    seal_service: SealService,
    directory: KeyValueCapsuleDirectory,
    kit_store: KeyValueRecoveryKitStore,
) -> Callable[..., Awaitable[SealedCapsule]]:
    """Seal, register and keep the kit of a capsule."""

    async def _seal(
        capsule_id: str = "c1",
        *,
        creator: str = CREATOR,
        unlock_time: int = UNLOCK_TIME,
        files: tuple[FileInput, ...] = (),
    ) -> SealedCapsule:
        sealed = await seal_service.seal(
            title=f"Capsule {capsule_id}",
            description="Hello from the past",
            creator=creator,
            unlock_time=unlock_time,
            files=files,
            capsule_id=capsule_id,
        )
        directory.register(sealed.record)
        kit_store.save(sealed.recovery_kit, sealed.record.locator)
        return sealed

    return _seal
