"""
Storage domain models.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Self


class LocatorKind(StrEnum):
    """Which backend holds the content."""

    LOCAL = "local"
    REMOTE = "remote"


class FetchCause(StrEnum):
    """Classified reason a gateway attempt failed."""

    NOT_FOUND = "not-found"
    PROPAGATION = "propagation-timing"
    ACCESS_POLICY = "access-policy"
    NETWORK = "network"
    TIMEOUT = "timeout"


@dataclass(frozen=True, kw_only=True)
class Locator:
    """
    Tagged address of stored content.

    The kind is always explicit, retrieval dispatches on it and never on the
    shape of the address string.

    Attributes:
        kind: Local fallback store or remote content-addressed network.
        address: Opaque local id or content identifier (CID).
    """

    kind: LocatorKind
    address: str

    def __post_init__(self) -> None:
        if not self.address:
            msg = "Locator address must not be empty"
            raise ValueError(msg)

    @classmethod
    def local(cls, address: str) -> Self:
        return cls(kind=LocatorKind.LOCAL, address=address)

    @classmethod
    def remote(cls, address: str) -> Self:
        return cls(kind=LocatorKind.REMOTE, address=address)

    @property
    def is_local(self) -> bool:
        return self.kind == LocatorKind.LOCAL

    @property
    def is_remote(self) -> bool:
        return self.kind == LocatorKind.REMOTE

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "address": self.address}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(kind=LocatorKind(data["kind"]), address=data["address"])

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.address}"


@dataclass(frozen=True, kw_only=True)
class UploadResult:
    """Response of a successful pin on the remote backend."""

    address: str
    size: int
    pinned_at: datetime | None = None


@dataclass(frozen=True, kw_only=True)
class LocalContentMeta:
    """Metadata stored next to locally persisted content."""

    name: str
    uploaded_at: int  # unix milliseconds
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "uploadedAt": self.uploaded_at, "size": self.size}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(name=data["name"], uploaded_at=data["uploadedAt"], size=data["size"])


@dataclass(frozen=True, kw_only=True)
class StorageInfo:
    """
    Operational view of the storage backend.

    Not part of the reveal contract.
    """

    available: bool
    used_bytes: int
    limit_bytes: int

    @property
    def free_bytes(self) -> int:
        return max(self.limit_bytes - self.used_bytes, 0)
