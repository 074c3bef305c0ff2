"""
Reveal pipeline for time capsules.

Binds a recovery kit to a capsule, fetches and decrypts its content,
authorizes the caller and records an at-most-once reveal in the ledger.
"""

import asyncio
import base64
import binascii
import time
import weakref
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

import structlog

from time_capsule.crypto.engine import CryptoEngine
from time_capsule.exceptions import (
    AuthenticationFailure,
    AuthorizationError,
    BindingError,
    DuplicateRevealError,
    FetchError,
    NotFoundError,
    PayloadError,
    TimeCapsuleError,
    ValidationError,
)
from time_capsule.models.capsule import (
    CapsuleContent,
    CapsuleRecord,
    Comment,
    FileDecryptionReport,
    FileFailure,
    RevealedCapsule,
    RevealMetadata,
    RevealResult,
    RevealState,
    to_millis,
)
from time_capsule.models.crypto import DecryptedFile, RecoveryKit
from time_capsule.services.content_store import ContentStore
from time_capsule.storage.directory import CapsuleDirectory, RecoveryKitStore
from time_capsule.storage.ledger import RevealLedger

logger = structlog.get_logger(__name__)

AUTO_REVEAL_MESSAGE = "Automatically revealed when unlock time was reached"


class _Rejected(Exception):
    """Internal short-circuit carrying the terminal state of a pipeline run."""

    def __init__(self, state: RevealState, error: TimeCapsuleError) -> None:
        super().__init__(error.message)
        self.state = state
        self.error = error


class RevealCoordinator:
    """
    Drives reveals, previews, file decryption, social interactions and the
    auto-reveal sweep.

    Pipeline: SEALED → LOCATED → FETCHED → DECRYPTED → REVEALED, with a
    terminal REJECTED_* state for each failure class. Transient network
    failures are retried inside ContentStore only, never here.

    The duplicate check and the ledger write of a reveal run under a
    per-capsule lock, so two coroutines revealing the same capsule cannot both
    pass the duplicate check.
    """

    def __init__(
        self,
        content_store: ContentStore,
        ledger: RevealLedger,
        directory: CapsuleDirectory,
        *,
        crypto: CryptoEngine | None = None,
        kit_store: RecoveryKitStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            content_store: Content retrieval.
            ledger: Persisted reveal ledger, written only by this coordinator.
            directory: Capsule directory collaborator.
            crypto: Crypto engine.
            kit_store: Local recovery kits, used by the auto-reveal sweep.
            clock: Unix time source in seconds.
        """
        self._store = content_store
        self._ledger = ledger
        self._directory = directory
        self._crypto = crypto or CryptoEngine()
        self._kit_store = kit_store
        self._clock = clock
        # Entries vanish once no reveal of that capsule holds or awaits the lock.
        self._reveal_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    # Reveal and preview

    async def reveal(
        self,
        capsule_id: str,
        kit: RecoveryKit | Mapping[str, Any],
        caller_address: str,
        original_unlock_time: int,
        message: str | None = None,
    ) -> RevealResult:
        """
        Reveal a capsule once and record it in the ledger.

        Never raises for a rejected reveal: every failure comes back as a
        RevealResult carrying its terminal state and typed error. Cancelling
        the calling task aborts an in-flight fetch without touching the ledger.

        Args:
            capsule_id: Capsule to reveal.
            kit: Recovery kit for the capsule.
            caller_address: Address of the account asking for the reveal.
            original_unlock_time: Nominal unlock time (unix seconds).
            message: Optional message published with the reveal.

        Returns:
            RevealResult with the new ledger record on success.
        """
        log = logger.bind(capsule_id=capsule_id, caller=caller_address)
        log.info("Starting capsule reveal")
        try:
            kit, record = await self._check_kit_binding(capsule_id, kit)
            async with self._lock_for(capsule_id):
                if capsule_id in self._ledger:
                    msg = "This capsule has already been revealed"
                    raise _Rejected(
                        RevealState.REJECTED_DUPLICATE,
                        DuplicateRevealError(msg, capsule_id=capsule_id),
                    )
                content = await self._open(capsule_id, record, kit, caller_address)
                revealed = self._build_revealed(
                    capsule_id, content, caller_address, original_unlock_time, message
                )
                try:
                    self._ledger.insert(revealed)
                except DuplicateRevealError as e:
                    raise _Rejected(RevealState.REJECTED_DUPLICATE, e) from e
        except _Rejected as rejected:
            log.warning(
                "Capsule reveal rejected", state=rejected.state.value, error=str(rejected.error)
            )
            return RevealResult(state=rejected.state, error=rejected.error)

        log.info("Capsule revealed", is_early_reveal=revealed.reveal_metadata.is_early_reveal)
        return RevealResult(state=RevealState.REVEALED, capsule=revealed)

    async def preview_capsule(
        self,
        capsule_id: str,
        kit: RecoveryKit | Mapping[str, Any],
        caller_address: str,
        original_unlock_time: int,
    ) -> RevealResult:
        """
        Decrypt a capsule without consuming its one-time reveal.

        Same validation, binding, fetch, decryption and authorization as
        ``reveal``, but the ledger is neither read nor written.

        Returns:
            RevealResult in DECRYPTED state with an unrecorded capsule on success.
        """
        log = logger.bind(capsule_id=capsule_id, caller=caller_address)
        log.info("Starting capsule preview")
        try:
            kit, record = await self._check_kit_binding(capsule_id, kit)
            content = await self._open(capsule_id, record, kit, caller_address)
        except _Rejected as rejected:
            log.warning(
                "Capsule preview rejected", state=rejected.state.value, error=str(rejected.error)
            )
            return RevealResult(state=rejected.state, error=rejected.error)

        preview = self._build_revealed(
            capsule_id, content, caller_address, original_unlock_time, None
        )
        log.info("Capsule preview loaded", is_early_reveal=preview.reveal_metadata.is_early_reveal)
        return RevealResult(state=RevealState.DECRYPTED, capsule=preview)

    async def _check_kit_binding(
        self, capsule_id: str, kit: RecoveryKit | Mapping[str, Any]
    ) -> tuple[RecoveryKit, CapsuleRecord | None]:
        validation = self._crypto.validate_recovery_kit(kit)
        if not validation.is_valid:
            raise _Rejected(
                RevealState.REJECTED_INVALID_KIT,
                ValidationError(f"Invalid recovery kit: {validation.error}"),
            )
        if not isinstance(kit, RecoveryKit):
            kit = RecoveryKit.from_dict(kit)

        if kit.capsule_id == capsule_id:
            return kit, None

        record = await self._directory.get_capsule(capsule_id)
        if record is not None and record.is_synthetic:
            logger.info("Synthetic capsule accepts a foreign kit", capsule_id=capsule_id)
            return kit, record

        msg = "Recovery kit does not match the specified capsule"
        raise _Rejected(
            RevealState.REJECTED_BINDING,
            BindingError(msg, capsule_id=capsule_id, kit_capsule_id=kit.capsule_id),
        )

    async def _open(
        self,
        capsule_id: str,
        record: CapsuleRecord | None,
        kit: RecoveryKit,
        caller_address: str,
    ) -> CapsuleContent:
        """Locate, fetch, decrypt and authorize."""
        if record is None:
            record = await self._directory.get_capsule(capsule_id)
        if record is None:
            msg = f"Could not find stored content for capsule: {capsule_id}"
            raise _Rejected(RevealState.REJECTED_NOT_FOUND, NotFoundError(msg))
        logger.debug("Capsule located", capsule_id=capsule_id, locator=str(record.locator))

        try:
            ciphertext = await self._store.get(record.locator)
        except NotFoundError as e:
            raise _Rejected(RevealState.REJECTED_NOT_FOUND, e) from e
        except FetchError as e:
            raise _Rejected(RevealState.REJECTED_FETCH_FAILED, e) from e
        logger.debug("Capsule fetched", capsule_id=capsule_id, size=len(ciphertext))

        try:
            content = self._crypto.decrypt_capsule_content(ciphertext, kit)
        except (AuthenticationFailure, PayloadError, ValidationError) as e:
            raise _Rejected(RevealState.REJECTED_DECRYPT_FAILED, e) from e

        if not self._is_authorized(content, caller_address):
            msg = "You are not authorized to reveal this capsule"
            raise _Rejected(RevealState.REJECTED_UNAUTHORIZED, AuthorizationError(msg))
        return content

    @staticmethod
    def _is_authorized(content: CapsuleContent, caller_address: str) -> bool:
        # Creator-only policy, recipients are not consulted.
        return content.creator.lower() == caller_address.lower()

    def _build_revealed(
        self,
        capsule_id: str,
        content: CapsuleContent,
        caller_address: str,
        original_unlock_time: int,
        message: str | None,
    ) -> RevealedCapsule:
        now = self._clock()
        return RevealedCapsule(
            id=capsule_id,
            content=content,
            reveal_metadata=RevealMetadata(
                revealed_at=datetime.fromtimestamp(now, tz=timezone.utc),
                revealed_by=caller_address,
                is_early_reveal=now < original_unlock_time,
                original_unlock_time=original_unlock_time,
                reveal_message=message,
            ),
        )

    def _lock_for(self, capsule_id: str) -> asyncio.Lock:
        if (lock := self._reveal_locks.get(capsule_id)) is None:
            lock = self._reveal_locks[capsule_id] = asyncio.Lock()
        return lock

    # Files

    async def decrypt_capsule_files(self, revealed: RevealedCapsule) -> FileDecryptionReport:
        """
        Decrypt every file embedded in a revealed capsule.

        Each file is opened with its own ephemeral kit. A file that fails is
        reported and skipped, the batch carries on.
        """
        decrypted: list[DecryptedFile] = []
        failed: list[FileFailure] = []
        for file in revealed.content.files:
            try:
                ciphertext = base64.b64decode(file.encrypted_data, validate=True)
                decrypted.append(
                    self._crypto.decrypt_file(ciphertext, file.recovery_kit(revealed.id))
                )
            except binascii.Error as e:
                logger.error(
                    "File data is not valid base64", capsule_id=revealed.id, file=file.name
                )
                failed.append(FileFailure(name=file.name, reason=f"Invalid base64: {e}"))
            except TimeCapsuleError as e:
                logger.error(
                    "Failed to decrypt file", capsule_id=revealed.id, file=file.name, error=str(e)
                )
                failed.append(FileFailure(name=file.name, reason=e.message))
        return FileDecryptionReport(decrypted=tuple(decrypted), failed=tuple(failed))

    # Ledger views

    def get_revealed_capsules(self) -> list[RevealedCapsule]:
        return self._ledger.all()

    def get_revealed_capsule(self, capsule_id: str) -> RevealedCapsule | None:
        return self._ledger.get(capsule_id)

    def clear_all_revealed_capsules(self) -> None:
        self._ledger.clear()

    # Social interactions

    def like_capsule(self, capsule_id: str) -> bool:
        """
        Add a like to a revealed capsule.

        Returns:
            False, with no side effect, if the capsule has not been revealed.
        """
        if (revealed := self._ledger.get(capsule_id)) is None:
            return False
        social = revealed.reveal_metadata.social_interactions
        self._ledger.update(revealed.with_social(social.with_like()))
        return True

    def add_comment(self, capsule_id: str, author: str, content: str) -> bool:
        """
        Append a comment to a revealed capsule.

        Comment ids are millisecond timestamps, strictly increasing within a
        capsule even when comments land in the same millisecond.

        Returns:
            False, with no side effect, if the capsule has not been revealed.
        """
        if (revealed := self._ledger.get(capsule_id)) is None:
            return False
        social = revealed.reveal_metadata.social_interactions
        stamp = int(self._clock() * 1000)
        if social.comments:
            stamp = max(stamp, to_millis(social.comments[-1].timestamp) + 1)
        comment = Comment(
            id=str(stamp),
            author=author,
            content=content,
            timestamp=datetime.fromtimestamp(stamp / 1000, tz=timezone.utc),
        )
        self._ledger.update(revealed.with_social(social.with_comment(comment)))
        logger.debug("Comment added", capsule_id=capsule_id, comment_id=comment.id)
        return True

    # Auto-reveal

    async def check_and_reveal_unlocked_capsules(self, caller_address: str) -> int:
        """
        Reveal every naturally unlocked capsule that has a local kit.

        Capsules with a future unlock time or an existing ledger record are
        skipped. A failure on one capsule is logged and the sweep continues.

        Args:
            caller_address: Address the reveals are performed as.

        Returns:
            Number of capsules revealed by this sweep.
        """
        if self._kit_store is None:
            logger.warning("No recovery kit store configured, skipping unlock sweep")
            return 0

        now = self._clock()
        capsules = await self._directory.list_capsules()
        logger.info("Checking for naturally unlocked capsules", total=len(capsules))

        revealed_count = 0
        for record in capsules:
            if not record.is_unlocked(now) or record.id in self._ledger:
                continue
            try:
                kit = await self._kit_store.get_kit(record.id, record.locator)
                if kit is None:
                    logger.warning(
                        "No recovery kit found for unlocked capsule", capsule_id=record.id
                    )
                    continue
                result = await self.reveal(
                    record.id, kit, caller_address, record.unlock_time, AUTO_REVEAL_MESSAGE
                )
            except TimeCapsuleError as e:
                logger.error("Error auto-revealing capsule", capsule_id=record.id, error=str(e))
                continue
            if result.success:
                revealed_count += 1
            else:
                logger.warning(
                    "Failed to auto-reveal capsule",
                    capsule_id=record.id,
                    state=result.state.value,
                    error=result.message,
                )

        if revealed_count:
            logger.info("Auto-revealed unlocked capsules", count=revealed_count)
        return revealed_count
