import asyncio

import httpx
import pytest

from time_capsule.api.endpoints.gateway import classify_status, fetch_from_gateway, gateway_url
from time_capsule.api.http_client import StorageHttpClient
from time_capsule.exceptions import GatewayError
from time_capsule.models.storage import FetchCause
from time_capsule.tests.utils.routing_transport import RoutingTransport

GATEWAY = "https://gw.test/ipfs/"


def test_gateway_url_appends_address() -> None:
    assert gateway_url(GATEWAY, "bafyabc") == "https://gw.test/ipfs/bafyabc"


@pytest.mark.parametrize(
    ("status", "cause"),
    [
        (404, FetchCause.NOT_FOUND),
        (410, FetchCause.NOT_FOUND),
        (401, FetchCause.ACCESS_POLICY),
        (403, FetchCause.ACCESS_POLICY),
        (451, FetchCause.ACCESS_POLICY),
        (502, FetchCause.PROPAGATION),
        (503, FetchCause.PROPAGATION),
        (504, FetchCause.PROPAGATION),
        (500, FetchCause.NETWORK),
        (429, FetchCause.NETWORK),
    ],
)
def test_classify_status(status: int, cause: FetchCause) -> None:
    assert classify_status(status) is cause


@pytest.mark.asyncio
async def test_fetch_returns_content(http: StorageHttpClient, transport: RoutingTransport) -> None:
    transport.route(f"{GATEWAY}bafyabc", httpx.Response(200, content=b"ciphertext"))

    content = await fetch_from_gateway(http, GATEWAY, "bafyabc", timeout=5)

    assert content == b"ciphertext"
    assert str(transport.requests[0].url) == "https://gw.test/ipfs/bafyabc"


@pytest.mark.asyncio
async def test_fetch_classifies_status(
    http: StorageHttpClient, transport: RoutingTransport
) -> None:
    transport.route(GATEWAY, httpx.Response(403, content=b"blocked"))

    with pytest.raises(GatewayError) as exc_info:
        await fetch_from_gateway(http, GATEWAY, "bafyabc", timeout=5)

    assert exc_info.value.cause is FetchCause.ACCESS_POLICY
    assert exc_info.value.status_code == 403
    assert exc_info.value.gateway == GATEWAY


@pytest.mark.asyncio
async def test_fetch_transport_error_is_network(
    http: StorageHttpClient, transport: RoutingTransport
) -> None:
    transport.route(GATEWAY, httpx.ConnectError("dns failure"))

    with pytest.raises(GatewayError) as exc_info:
        await fetch_from_gateway(http, GATEWAY, "bafyabc", timeout=5)

    assert exc_info.value.cause is FetchCause.NETWORK


@pytest.mark.asyncio
async def test_fetch_httpx_timeout_is_timeout(
    http: StorageHttpClient, transport: RoutingTransport
) -> None:
    transport.route(GATEWAY, httpx.ReadTimeout("read timed out"))

    with pytest.raises(GatewayError) as exc_info:
        await fetch_from_gateway(http, GATEWAY, "bafyabc", timeout=5)

    assert exc_info.value.cause is FetchCause.TIMEOUT


@pytest.mark.asyncio
async def test_fetch_slow_gateway_times_out(
    http: StorageHttpClient, transport: RoutingTransport
) -> None:
    async def hang(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(10)
        return httpx.Response(200, content=b"too late")

    transport.route(GATEWAY, hang)

    with pytest.raises(GatewayError, match="timed out") as exc_info:
        await fetch_from_gateway(http, GATEWAY, "bafyabc", timeout=0.05)

    assert exc_info.value.cause is FetchCause.TIMEOUT
