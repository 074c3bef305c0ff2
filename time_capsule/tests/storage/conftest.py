from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from time_capsule.models.capsule import CapsuleContent, RevealedCapsule, RevealMetadata


@pytest.fixture
def make_revealed() -> Callable[..., RevealedCapsule]:
    def _make(capsule_id: str = "c1", creator: str = "0xabc") -> RevealedCapsule:
        return RevealedCapsule(
            id=capsule_id,
            content=CapsuleContent(
                title=f"Capsule {capsule_id}",
                description="",
                creator=creator,
                created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
            ),
            reveal_metadata=RevealMetadata(
                revealed_at=datetime(2025, 6, 1, tzinfo=timezone.utc),
                revealed_by=creator,
                is_early_reveal=False,
                original_unlock_time=1_700_000_000,
            ),
        )

    return _make
