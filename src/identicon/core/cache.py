"""Bounded LRU cache of encoded identicons.

Identicons are pure functions of their input, so a cached entry never goes
stale.  The cache only bounds how many are kept.  It is used from the event
loop thread only and needs no locking.
"""

from __future__ import annotations

from collections import OrderedDict

from identicon.core.encoder import EncodedImage


class ImageCache:
    """Least-recently-used mapping of input identifier to encoded image.

    Args:
        capacity: Maximum number of entries kept.  ``0`` disables caching.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must not be negative, got {capacity}")
        self._capacity = capacity
        self._entries: OrderedDict[bytes, EncodedImage] = OrderedDict()
        self.hits = 0
        self.misses = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: bytes) -> bool:
        return key in self._entries

    def get(self, key: bytes) -> EncodedImage | None:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return entry

    def put(self, key: bytes, image: EncodedImage) -> None:
        if self._capacity == 0:
            return
        self._entries[key] = image
        self._entries.move_to_end(key)
        while len(self._entries) > self._capacity:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()
