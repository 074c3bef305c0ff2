"""
Time Capsule Core.

An async Python library for sealing content until a point in time, storing it
on IPFS with redundant gateways, and revealing it exactly once.

Example:
    ```python
    from time_capsule import TimeCapsuleClient, TimeCapsuleConfig

    async with TimeCapsuleClient(TimeCapsuleConfig.from_env()) as client:
        sealed = await client.seal(
            title="Hello future",
            description="Written in 2026",
            creator="0xabc",
            unlock_time=1893456000,
        )

        # Reveal with the kit handed out at seal time
        result = await client.reveal(
            sealed.record.id, sealed.recovery_kit, "0xabc", sealed.record.unlock_time
        )
        print(result.state, result.message)
    ```
"""

from time_capsule.client import TimeCapsuleClient
from time_capsule.config import TimeCapsuleConfig
from time_capsule.exceptions import (
    APIError,
    AuthenticationFailure,
    AuthorizationError,
    BindingError,
    CryptoError,
    DuplicateRevealError,
    FetchError,
    GatewayError,
    NetworkError,
    NotFoundError,
    PayloadError,
    RateLimitError,
    StorageError,
    TimeCapsuleError,
    UploadError,
    ValidationError,
)
from time_capsule.models import (
    CapsuleRecord,
    FetchCause,
    Locator,
    RecoveryKit,
    RevealedCapsule,
    RevealResult,
    RevealState,
)
from time_capsule.services.seal_service import FileInput

__version__ = "0.1.0"

__all__ = [
    # Main client
    "TimeCapsuleClient",
    "TimeCapsuleConfig",
    "FileInput",
    # Models
    "CapsuleRecord",
    "FetchCause",
    "Locator",
    "RecoveryKit",
    "RevealedCapsule",
    "RevealResult",
    "RevealState",
    # Exceptions
    "TimeCapsuleError",
    "ValidationError",
    "BindingError",
    "DuplicateRevealError",
    "AuthorizationError",
    "NotFoundError",
    "PayloadError",
    "CryptoError",
    "AuthenticationFailure",
    "StorageError",
    "UploadError",
    "FetchError",
    "GatewayError",
    "APIError",
    "RateLimitError",
    "NetworkError",
]
