"""Tests for identicon.core.cache - LRU cache of encoded images."""

from __future__ import annotations

import pytest

from identicon.core.cache import ImageCache
from identicon.core.encoder import EncodedImage


def _image(tag: str) -> EncodedImage:
    return EncodedImage(data=tag.encode(), mime_type="image/png", etag=f'"{tag}"')


class TestImageCache:
    """Test LRU behaviour and counters."""

    def test_get_miss_then_hit(self):
        cache = ImageCache(2)
        assert cache.get(b"a") is None
        cache.put(b"a", _image("a"))
        assert cache.get(b"a") == _image("a")
        assert (cache.hits, cache.misses) == (1, 1)

    def test_evicts_least_recently_used(self):
        cache = ImageCache(2)
        cache.put(b"a", _image("a"))
        cache.put(b"b", _image("b"))
        cache.get(b"a")
        cache.put(b"c", _image("c"))
        assert b"a" in cache
        assert b"b" not in cache
        assert len(cache) == 2

    def test_zero_capacity_disables(self):
        cache = ImageCache(0)
        cache.put(b"a", _image("a"))
        assert len(cache) == 0
        assert cache.get(b"a") is None

    def test_clear(self):
        cache = ImageCache(4)
        cache.put(b"a", _image("a"))
        cache.clear()
        assert len(cache) == 0

    def test_negative_capacity(self):
        with pytest.raises(ValueError):
            ImageCache(-1)
