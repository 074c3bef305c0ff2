from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from time_capsule.api.http_client import StorageHttpClient
from time_capsule.config import TimeCapsuleConfig
from time_capsule.tests.utils.routing_transport import RoutingTransport

API = "https://api.pinning.test"
GATEWAY = "https://gw.test/ipfs/"


@pytest.fixture
def transport() -> RoutingTransport:
    return RoutingTransport()


@pytest_asyncio.fixture
async def http(transport: RoutingTransport) -> AsyncIterator[StorageHttpClient]:
    config = TimeCapsuleConfig(pinning_api_url=API, pinning_jwt="test-jwt", gateways=(GATEWAY,))
    client = StorageHttpClient(config, transport=transport)
    await client._ensure_client()

    yield client

    await client.close()
