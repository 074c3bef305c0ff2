"""Shared building blocks: retry policy, content cache, log redaction."""

from time_capsule.core.cache import ContentCache
from time_capsule.core.retry import RetryPolicy
from time_capsule.core.sanitize import sanitize_for_log

__all__ = ["ContentCache", "RetryPolicy", "sanitize_for_log"]
