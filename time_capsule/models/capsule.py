"""
Capsule and reveal domain models.

Wire forms use the camelCase keys of the capsule document format so that
payloads and ledgers written by other clients stay readable.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Self

from time_capsule.models.crypto import DecryptedFile, RecoveryKit
from time_capsule.models.storage import Locator

if TYPE_CHECKING:
    from time_capsule.exceptions import TimeCapsuleError


def to_millis(value: datetime) -> int:
    """Convert an aware datetime to unix milliseconds."""
    return round(value.timestamp() * 1000)


def from_millis(value: int | float) -> datetime:
    """Convert unix milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


class Visibility(StrEnum):
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True, kw_only=True)
class CapsuleRecord:
    """
    Directory entry for a sealed capsule.

    Owned by the capsule directory and consumed read-only by the core.

    Attributes:
        id: Capsule identifier.
        creator: Address of the creating account.
        unlock_time: Unix time (seconds) at which the capsule opens naturally.
        locator: Where the encrypted capsule document is stored.
        visibility: Whether the revealed capsule is shown publicly.
        is_synthetic: Test capsule that accepts a kit bound to another id.
    """

    id: str
    creator: str
    unlock_time: int
    locator: Locator
    visibility: Visibility = Visibility.PUBLIC
    is_synthetic: bool = False

    def is_unlocked(self, now: float) -> bool:
        return now >= self.unlock_time

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "creator": self.creator,
            "unlockTime": self.unlock_time,
            "locator": self.locator.to_dict(),
            "visibility": self.visibility.value,
            "isSynthetic": self.is_synthetic,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=data["id"],
            creator=data["creator"],
            unlock_time=int(data["unlockTime"]),
            locator=Locator.from_dict(data["locator"]),
            visibility=Visibility(data.get("visibility", Visibility.PUBLIC)),
            is_synthetic=bool(data.get("isSynthetic", False)),
        )


@dataclass(frozen=True, kw_only=True)
class CapsuleFile:
    """
    Descriptor of a file embedded in a capsule document.

    Each file is sealed on its own key and IV, carried here in base64.
    """

    name: str
    mime_type: str
    size: int
    encrypted_data: str = field(repr=False)
    key: str = field(repr=False)
    iv: str = field(repr=False)

    def recovery_kit(self, capsule_id: str) -> RecoveryKit:
        """Ephemeral kit scoped to this file's own key and IV."""
        return RecoveryKit(key=self.key, iv=self.iv, capsule_id=capsule_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.mime_type,
            "size": self.size,
            "encryptedData": self.encrypted_data,
            "key": self.key,
            "iv": self.iv,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            name=data["name"],
            mime_type=data.get("type", ""),
            size=int(data.get("size", 0)),
            encrypted_data=data["encryptedData"],
            key=data["key"],
            iv=data["iv"],
        )


@dataclass(frozen=True, kw_only=True)
class CapsuleContent:
    """Decrypted capsule document."""

    title: str
    description: str
    creator: str
    created_at: datetime
    files: tuple[CapsuleFile, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "files": [f.to_dict() for f in self.files],
            "createdAt": to_millis(self.created_at),
            "creator": self.creator,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """
        Raises:
            KeyError: If a required field is missing.
            TypeError: If title, description or creator is not a string.
        """
        description = data.get("description") or ""
        for name, value in (
            ("title", data["title"]),
            ("creator", data["creator"]),
            ("description", description),
        ):
            if not isinstance(value, str):
                msg = f"{name} must be a string, got {type(value).__name__}"
                raise TypeError(msg)
        return cls(
            title=data["title"],
            description=description,
            creator=data["creator"],
            created_at=from_millis(data["createdAt"]),
            files=tuple(CapsuleFile.from_dict(f) for f in data.get("files") or ()),
        )


@dataclass(frozen=True, kw_only=True)
class Comment:
    id: str
    author: str
    content: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "author": self.author,
            "content": self.content,
            "timestamp": to_millis(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=data["id"],
            author=data["author"],
            content=data["content"],
            timestamp=from_millis(data["timestamp"]),
        )


@dataclass(frozen=True, kw_only=True)
class SocialInteractions:
    """Likes and an append-only comment thread."""

    likes: int = 0
    comments: tuple[Comment, ...] = ()

    def with_like(self) -> Self:
        return replace(self, likes=self.likes + 1)

    def with_comment(self, comment: Comment) -> Self:
        return replace(self, comments=(*self.comments, comment))

    def to_dict(self) -> dict[str, Any]:
        return {"likes": self.likes, "comments": [c.to_dict() for c in self.comments]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            likes=int(data.get("likes", 0)),
            comments=tuple(Comment.from_dict(c) for c in data.get("comments") or ()),
        )


@dataclass(frozen=True, kw_only=True)
class RevealMetadata:
    revealed_at: datetime
    revealed_by: str
    is_early_reveal: bool
    original_unlock_time: int
    reveal_message: str | None = None
    social_interactions: SocialInteractions = field(default_factory=SocialInteractions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "revealedAt": to_millis(self.revealed_at),
            "revealedBy": self.revealed_by,
            "isEarlyReveal": self.is_early_reveal,
            "originalUnlockTime": self.original_unlock_time,
            "revealMessage": self.reveal_message,
            "socialInteractions": self.social_interactions.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            revealed_at=from_millis(data["revealedAt"]),
            revealed_by=data["revealedBy"],
            is_early_reveal=bool(data["isEarlyReveal"]),
            original_unlock_time=int(data["originalUnlockTime"]),
            reveal_message=data.get("revealMessage"),
            social_interactions=SocialInteractions.from_dict(data.get("socialInteractions") or {}),
        )


@dataclass(frozen=True, kw_only=True)
class RevealedCapsule:
    """
    A capsule whose content has been decrypted and published.

    Created once per capsule id. Only its social interactions change afterwards.
    """

    id: str
    content: CapsuleContent
    reveal_metadata: RevealMetadata

    def with_social(self, social: SocialInteractions) -> Self:
        return replace(
            self, reveal_metadata=replace(self.reveal_metadata, social_interactions=social)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "originalData": self.content.to_dict(),
            "revealMetadata": self.reveal_metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=data["id"],
            content=CapsuleContent.from_dict(data["originalData"]),
            reveal_metadata=RevealMetadata.from_dict(data["revealMetadata"]),
        )


class RevealState(StrEnum):
    """Reveal pipeline states. Every REJECTED_* state is terminal."""

    SEALED = "sealed"
    LOCATED = "located"
    FETCHED = "fetched"
    DECRYPTED = "decrypted"
    REVEALED = "revealed"
    REJECTED_INVALID_KIT = "rejected-invalid-kit"
    REJECTED_BINDING = "rejected-binding"
    REJECTED_DUPLICATE = "rejected-duplicate"
    REJECTED_NOT_FOUND = "rejected-not-found"
    REJECTED_FETCH_FAILED = "rejected-fetch-failed"
    REJECTED_DECRYPT_FAILED = "rejected-decrypt-failed"
    REJECTED_UNAUTHORIZED = "rejected-unauthorized"

    @property
    def is_terminal(self) -> bool:
        return self == RevealState.REVEALED or self.value.startswith("rejected-")


@dataclass(frozen=True, kw_only=True)
class RevealResult:
    """
    Structured outcome of a reveal or preview.

    Attributes:
        state: Final state reached by the pipeline.
        capsule: Revealed (or previewed) capsule on success.
        error: Typed cause on rejection.
    """

    state: RevealState
    capsule: RevealedCapsule | None = None
    error: "TimeCapsuleError | None" = None

    @property
    def success(self) -> bool:
        return self.error is None and self.capsule is not None

    @property
    def message(self) -> str | None:
        """Human-readable cause, with guidance where the error provides it."""
        if self.error is None:
            return None
        guidance = getattr(self.error, "guidance", None)
        if guidance:
            return f"{self.error.message}. {guidance}"
        return self.error.message


@dataclass(frozen=True, kw_only=True)
class FileFailure:
    name: str
    reason: str


@dataclass(frozen=True, kw_only=True)
class FileDecryptionReport:
    """Files recovered from a capsule, plus the ones that could not be decrypted."""

    decrypted: tuple[DecryptedFile, ...] = ()
    failed: tuple[FileFailure, ...] = ()

    @property
    def complete(self) -> bool:
        return not self.failed


@dataclass(frozen=True, kw_only=True)
class SealedCapsule:
    """Output of sealing: the directory record to register and the kit to hand out."""

    record: CapsuleRecord
    recovery_kit: RecoveryKit = field(repr=False)
