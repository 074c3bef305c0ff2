"""Size-bounded LRU cache for fetched content."""

from collections import OrderedDict


class ContentCache:
    """
    LRU cache of content bytes keyed by content address.

    Bounded by total byte size rather than entry count. Content addressing
    makes entries immutable, so there is no invalidation.

    Safe for a single event loop.
    """

    def __init__(self, max_bytes: int = 64 * 1024**2) -> None:
        """
        Args:
            max_bytes: Total size budget. 0 disables caching.
        """
        self._max_bytes = max_bytes
        self._size = 0
        self._cache: OrderedDict[str, bytes] = OrderedDict()

    def get(self, address: str) -> bytes | None:
        """
        Get content, marking it most recently used.

        Args:
            address: Content address.

        Returns:
            Cached bytes or None.
        """
        if address not in self._cache:
            return None

        self._cache.move_to_end(address)
        return self._cache[address]

    def put(self, address: str, content: bytes) -> None:
        """
        Cache content, evicting least recently used entries to fit.

        Content larger than the whole budget is not cached.
        """
        if len(content) > self._max_bytes:
            return

        if (previous := self._cache.pop(address, None)) is not None:
            self._size -= len(previous)

        while self._cache and self._size + len(content) > self._max_bytes:
            _, evicted = self._cache.popitem(last=False)
            self._size -= len(evicted)

        self._cache[address] = content
        self._size += len(content)

    def clear(self) -> None:
        self._cache.clear()
        self._size = 0

    @property
    def size_bytes(self) -> int:
        return self._size

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, address: str) -> bool:
        return address in self._cache
