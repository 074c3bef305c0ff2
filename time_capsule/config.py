"""
Time capsule client configuration.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Self

DEFAULT_GATEWAYS = (
    "https://gateway.pinata.cloud/ipfs/",
    "https://ipfs.io/ipfs/",
    "https://cloudflare-ipfs.com/ipfs/",
    "https://dweb.link/ipfs/",
)


@dataclass(frozen=True, kw_only=True)
class TimeCapsuleConfig:
    """
    Attributes:
        pinning_api_url: Base URL of the pinning service API.
        pinning_jwt: Bearer token for the pinning service. Uploads fall back to
            the local store when unset.
        gateways: Ordered read gateways, primary managed gateway first.
        timeout: Timeout for pinning API requests in seconds.
        gateway_timeout: Timeout for a single gateway attempt in seconds.
        gateway_max_attempts: Attempts per gateway before moving to the next one.
        retry_base_delay: Delay before the first retry and between gateways, in seconds.
        retry_delay_step: Extra delay added per retry on the same gateway, in seconds.
        storage_limit_bytes: Storage quota reported by storage info.
        content_cache_max_bytes: Upper bound of the in-process cache of fetched content.
        local_store_path: Directory of the persisted local store. In-memory when None.
        user_agent: User-Agent header value.
    """

    pinning_api_url: str = "https://api.pinata.cloud"
    pinning_jwt: str | None = None
    gateways: tuple[str, ...] = DEFAULT_GATEWAYS
    timeout: float = 60.0
    gateway_timeout: float = 20.0
    gateway_max_attempts: int = 2
    retry_base_delay: float = 1.0
    retry_delay_step: float = 2.0
    storage_limit_bytes: int = 1024**3
    content_cache_max_bytes: int = 64 * 1024**2
    local_store_path: Path | None = None
    user_agent: str = "TimeCapsule-Python/0.1"

    def __post_init__(self) -> None:
        if not self.gateways:
            msg = "at least one gateway is required"
            raise ValueError(msg)
        if any(not g.endswith("/") for g in self.gateways):
            msg = "gateway URLs must end with '/'"
            raise ValueError(msg)
        if self.timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)
        if self.gateway_timeout <= 0:
            msg = "gateway_timeout must be positive"
            raise ValueError(msg)
        if self.gateway_max_attempts <= 0:
            msg = "gateway_max_attempts must be positive"
            raise ValueError(msg)
        if self.retry_base_delay < 0:
            msg = "retry_base_delay must be non-negative"
            raise ValueError(msg)
        if self.retry_delay_step < 0:
            msg = "retry_delay_step must be non-negative"
            raise ValueError(msg)
        if self.storage_limit_bytes <= 0:
            msg = "storage_limit_bytes must be positive"
            raise ValueError(msg)
        if self.content_cache_max_bytes < 0:
            msg = "content_cache_max_bytes must be non-negative"
            raise ValueError(msg)

    @property
    def has_pinning_credentials(self) -> bool:
        return bool(self.pinning_jwt)

    @classmethod
    def from_env(cls, **overrides: object) -> Self:
        """
        Build a config from ``TIME_CAPSULE_*`` environment variables.

        Reads ``TIME_CAPSULE_PINNING_JWT``, ``TIME_CAPSULE_PINNING_API_URL``,
        ``TIME_CAPSULE_GATEWAYS`` (comma separated) and ``TIME_CAPSULE_STORE_PATH``.
        Explicit keyword overrides win over the environment.
        """
        values: dict[str, object] = {}
        if jwt := os.getenv("TIME_CAPSULE_PINNING_JWT"):
            values["pinning_jwt"] = jwt
        if api_url := os.getenv("TIME_CAPSULE_PINNING_API_URL"):
            values["pinning_api_url"] = api_url
        if gateways := os.getenv("TIME_CAPSULE_GATEWAYS"):
            values["gateways"] = tuple(g.strip() for g in gateways.split(",") if g.strip())
        if store_path := os.getenv("TIME_CAPSULE_STORE_PATH"):
            values["local_store_path"] = Path(store_path)
        values.update(overrides)
        return cls(**values)
