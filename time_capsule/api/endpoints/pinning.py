"""Pinning service endpoints (upload, authentication check, usage)."""

import json
from datetime import datetime, timezone
from typing import Any

import structlog

from time_capsule.api.http_client import StorageHttpClient
from time_capsule.exceptions import UploadError
from time_capsule.models.storage import UploadResult

logger = structlog.get_logger(__name__)

APP_NAME = "time-capsule"


async def pin_file(
    http: StorageHttpClient,
    data: bytes,
    name: str,
    *,
    keyvalues: dict[str, str] | None = None,
) -> UploadResult:
    """
    Upload and pin content.

    Args:
        http: Configured storage HTTP client.
        data: Content bytes.
        name: Descriptive file name attached as metadata.
        keyvalues: Extra metadata key-values.

    Returns:
        UploadResult with the content address.

    Raises:
        APIError: If the upload is rejected.
        UploadError: If the success response is malformed.
    """
    metadata = {
        "name": name,
        "keyvalues": {
            "app": APP_NAME,
            "size": str(len(data)),
            "uploadedAt": datetime.now(timezone.utc).isoformat(),
            **(keyvalues or {}),
        },
    }
    response = await http.request(
        "POST",
        "/pinning/pinFileToIPFS",
        files={"file": (name, data, "application/octet-stream")},
        data={
            "pinataMetadata": json.dumps(metadata),
            "pinataOptions": json.dumps({"cidVersion": 1}),
        },
    )

    address = response.get("IpfsHash")
    if not isinstance(address, str) or not address:
        raise UploadError("Upload response has no content address", name=name)
    try:
        size = int(response.get("PinSize", len(data)))
    except (TypeError, ValueError) as e:
        raise UploadError(
            "Malformed upload response", name=name, pin_size=response.get("PinSize")
        ) from e

    return UploadResult(
        address=address,
        size=size,
        pinned_at=_parse_timestamp(response.get("Timestamp")),
    )


async def check_authentication(http: StorageHttpClient) -> bool:
    """Check that the configured credentials are accepted."""
    await http.request("GET", "/data/testAuthentication")
    return True


async def get_pinned_total(http: StorageHttpClient) -> int:
    """Total bytes pinned by the account."""
    response = await http.request("GET", "/data/userPinnedDataTotal")
    return int(response.get("pin_size_total", 0))


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable pin timestamp", value=value)
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
