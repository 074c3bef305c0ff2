"""
Business logic services for time capsules.
"""

from time_capsule.services.content_store import ContentStore
from time_capsule.services.reveal_coordinator import RevealCoordinator
from time_capsule.services.seal_service import FileInput, SealService

__all__ = [
    "ContentStore",
    "FileInput",
    "RevealCoordinator",
    "SealService",
]
