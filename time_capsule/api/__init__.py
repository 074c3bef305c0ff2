"""
Storage network client layer.

Provides async HTTP communication with the pinning API and read gateways.
"""

from time_capsule.api.http_client import StorageHttpClient

__all__ = ["StorageHttpClient"]
