"""
Capsule sealing (upload path).

Encrypts each file on its own key, embeds the file descriptors in the capsule
document, encrypts the document on a fresh key and stores the ciphertext.
"""

import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog

from time_capsule.crypto.engine import CryptoEngine
from time_capsule.crypto.recovery_kit import b64encode
from time_capsule.exceptions import ValidationError
from time_capsule.models.capsule import (
    CapsuleContent,
    CapsuleFile,
    CapsuleRecord,
    SealedCapsule,
    Visibility,
)
from time_capsule.services.content_store import ContentStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, kw_only=True)
class FileInput:
    """A plaintext file to seal into a capsule."""

    name: str
    content: bytes = field(repr=False)
    mime_type: str = "application/octet-stream"


class SealService:
    """Seals capsule content and produces its directory record and recovery kit."""

    def __init__(
        self,
        content_store: ContentStore,
        crypto: CryptoEngine | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = content_store
        self._crypto = crypto or CryptoEngine()
        self._clock = clock

    async def seal(
        self,
        *,
        title: str,
        description: str,
        creator: str,
        unlock_time: int,
        files: Iterable[FileInput] = (),
        capsule_id: str | None = None,
        visibility: Visibility = Visibility.PUBLIC,
    ) -> SealedCapsule:
        """
        Seal a capsule.

        Args:
            title: Capsule title.
            description: Capsule text.
            creator: Creator address, the only account allowed to reveal.
            unlock_time: Unix time (seconds) at which the capsule opens.
            files: Files to embed.
            capsule_id: Identifier to bind the kit to. Generated when omitted.
            visibility: Visibility of the revealed capsule.

        Returns:
            SealedCapsule with the record to register and the recovery kit.

        Raises:
            ValidationError: If title or creator is empty.
        """
        if not title.strip():
            raise ValidationError("Capsule title must not be empty")
        if not creator.strip():
            raise ValidationError("Capsule creator must not be empty")

        capsule_id = capsule_id or uuid.uuid4().hex
        content = CapsuleContent(
            title=title,
            description=description,
            creator=creator,
            created_at=datetime.fromtimestamp(self._clock(), tz=timezone.utc),
            files=tuple(self._seal_file(f) for f in files),
        )

        envelope = self._crypto.encrypt_capsule_content(content)
        locator = await self._store.put(envelope.ciphertext, f"capsule-{capsule_id}.bin")
        kit = self._crypto.create_recovery_kit(envelope, capsule_id)

        record = CapsuleRecord(
            id=capsule_id,
            creator=creator,
            unlock_time=unlock_time,
            locator=locator,
            visibility=visibility,
        )
        logger.info(
            "Capsule sealed",
            capsule_id=capsule_id,
            locator=str(locator),
            files=len(content.files),
            unlock_time=unlock_time,
        )
        return SealedCapsule(record=record, recovery_kit=kit)

    def _seal_file(self, file: FileInput) -> CapsuleFile:
        encrypted = self._crypto.encrypt_file(file.name, file.mime_type, file.content)
        return CapsuleFile(
            name=encrypted.name,
            mime_type=encrypted.mime_type,
            size=encrypted.size,
            encrypted_data=b64encode(encrypted.envelope.ciphertext),
            key=b64encode(encrypted.envelope.raw_key),
            iv=b64encode(encrypted.envelope.iv),
        )
