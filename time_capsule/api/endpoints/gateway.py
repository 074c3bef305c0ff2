"""Gateway download endpoint with per-attempt failure classification."""

import asyncio

import httpx
import structlog

from time_capsule.api.http_client import StorageHttpClient
from time_capsule.exceptions import GatewayError
from time_capsule.models.storage import FetchCause

logger = structlog.get_logger(__name__)

_NOT_FOUND = frozenset({httpx.codes.NOT_FOUND, httpx.codes.GONE})
_ACCESS_POLICY = frozenset(
    {
        httpx.codes.UNAUTHORIZED,
        httpx.codes.FORBIDDEN,
        httpx.codes.UNAVAILABLE_FOR_LEGAL_REASONS,
    }
)
_PROPAGATION = frozenset(
    {
        httpx.codes.BAD_GATEWAY,
        httpx.codes.SERVICE_UNAVAILABLE,
        httpx.codes.GATEWAY_TIMEOUT,
    }
)


def gateway_url(gateway: str, address: str) -> str:
    """Build the download URL of ``address`` on ``gateway`` (which ends with '/')."""
    return f"{gateway}{address}"


def classify_status(status_code: int) -> FetchCause:
    """Map a non-success gateway status to a fetch cause."""
    if status_code in _NOT_FOUND:
        return FetchCause.NOT_FOUND
    if status_code in _ACCESS_POLICY:
        return FetchCause.ACCESS_POLICY
    if status_code in _PROPAGATION:
        return FetchCause.PROPAGATION
    return FetchCause.NETWORK


async def fetch_from_gateway(
    http: StorageHttpClient,
    gateway: str,
    address: str,
    *,
    timeout: float,
) -> bytes:
    """
    Single download attempt of ``address`` from one gateway.

    The request races a timer of ``timeout`` seconds.

    Args:
        http: Configured storage HTTP client.
        gateway: Gateway base URL.
        address: Content address.
        timeout: Attempt timeout in seconds.

    Returns:
        Content bytes.

    Raises:
        GatewayError: Classified failure of this attempt.
    """
    url = gateway_url(gateway, address)
    try:
        response = await asyncio.wait_for(http.get_raw(url, timeout=timeout), timeout)
    except (TimeoutError, httpx.TimeoutException) as e:
        msg = f"Gateway timed out after {timeout}s"
        raise GatewayError(msg, cause=FetchCause.TIMEOUT, gateway=gateway) from e
    except httpx.HTTPError as e:
        msg = f"Gateway unreachable: {e.__class__.__name__}"
        raise GatewayError(msg, cause=FetchCause.NETWORK, gateway=gateway) from e

    if response.is_success:
        return response.content

    cause = classify_status(response.status_code)
    msg = f"Gateway returned {response.status_code}"
    raise GatewayError(msg, cause=cause, gateway=gateway, status_code=response.status_code)
