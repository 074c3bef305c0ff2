"""
Time capsule exception hierarchy.

All exceptions inherit from TimeCapsuleError for easy catching.
"""

from typing import Any

from time_capsule.models.storage import FetchCause


class TimeCapsuleError(Exception):
    """Base exception for all time_capsule errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class ValidationError(TimeCapsuleError):
    """Recovery kit or input is structurally malformed."""


class BindingError(TimeCapsuleError):
    """Recovery kit is bound to a different capsule."""

    def __init__(self, message: str, *, capsule_id: str, kit_capsule_id: str) -> None:
        super().__init__(message, capsule_id=capsule_id, kit_capsule_id=kit_capsule_id)
        self.capsule_id = capsule_id
        self.kit_capsule_id = kit_capsule_id


class DuplicateRevealError(TimeCapsuleError):
    """Capsule has already been revealed."""

    def __init__(self, message: str, *, capsule_id: str) -> None:
        super().__init__(message, capsule_id=capsule_id)
        self.capsule_id = capsule_id


class AuthorizationError(TimeCapsuleError):
    """Caller is not allowed to reveal the capsule."""


class NotFoundError(TimeCapsuleError):
    """Capsule, locator or locally stored content is missing."""


class PayloadError(TimeCapsuleError):
    """Decrypted payload is not a well-formed capsule document."""


class CryptoError(TimeCapsuleError):
    """Cryptographic operation failed."""


class AuthenticationFailure(CryptoError):
    """GCM tag verification failed (tampered data, wrong key or wrong IV)."""

    def __init__(self, message: str = "Could not decrypt: authentication failed") -> None:
        super().__init__(message)


class StorageError(TimeCapsuleError):
    """Content storage operation failed."""


class UploadError(StorageError):
    """Upload to the remote pinning backend failed."""


_GUIDANCE = {
    FetchCause.NOT_FOUND: "No gateway has this content. Check the locator or re-upload it.",
    FetchCause.PROPAGATION: (
        "Content is still propagating across gateways. Wait a few minutes and try again."
    ),
    FetchCause.ACCESS_POLICY: (
        "Gateways refused access. Try again from a different network or gateway list."
    ),
    FetchCause.NETWORK: "Gateways could not be reached. Check your connection.",
    FetchCause.TIMEOUT: "Gateways timed out. The network may be congested, try again later.",
}


class FetchError(StorageError):
    """All gateways were exhausted without retrieving the content."""

    def __init__(
        self,
        message: str,
        *,
        cause: FetchCause,
        mirror: str | None = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message, cause=cause.value, mirror=mirror, attempts=attempts)
        self.cause = cause
        self.mirror = mirror
        self.attempts = attempts

    @property
    def guidance(self) -> str:
        """Actionable advice for the observed cause."""
        return _GUIDANCE[self.cause]


class APIError(TimeCapsuleError):
    """Pinning API request failed."""

    def __init__(self, message: str, *, code: int, endpoint: str | None = None) -> None:
        super().__init__(message, code=code, endpoint=endpoint)
        self.code = code
        self.endpoint = endpoint


class RateLimitError(APIError):
    """Rate limited by the pinning API."""

    def __init__(
        self, message: str = "Rate limit exceeded", *, retry_after: int | None = None
    ) -> None:
        super().__init__(message, code=429)
        self.retry_after = retry_after


class NetworkError(TimeCapsuleError):
    """Network-level error (connection failed, timeout)."""


class GatewayError(StorageError):
    """A single gateway attempt failed. Retried inside ContentStore, never surfaced."""

    def __init__(
        self,
        message: str,
        *,
        cause: FetchCause,
        gateway: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, cause=cause.value, gateway=gateway, status_code=status_code)
        self.cause = cause
        self.gateway = gateway
        self.status_code = status_code
