"""Core identicon pipeline and admission control.

The core module contains everything that is independent of HTTP:

- **digest.py**: input identifier to 16-byte MD5 digest
- **pattern.py**: digest to symmetric 5x5 grid and palette color
- **raster.py**: grid to Pillow RGB image
- **encoder.py**: image to PNG bytes with an ETag
- **gate.py**: ``RequestGate``, the bounded-concurrency admission gate
- **cache.py**: LRU cache of encoded identicons
- **pipeline.py**: synchronous and gated async drivers for the stages above
- **config.py**: ``IdenticonConfig`` loaded with Pydantic Settings
- **errors.py**: the error taxonomy translated to HTTP statuses by the API

Usage Example
-------------
::

    from identicon.core import build_identicon

    image = build_identicon(b"alice@example.com")
    open("alice.png", "wb").write(image.data)
"""

from identicon.core.config import IdenticonConfig, config
from identicon.core.encoder import EncodedImage
from identicon.core.errors import (
    EncodingFailed,
    GateTimeout,
    IdenticonError,
    InputMalformed,
    InputTooLong,
    ServiceOverloaded,
)
from identicon.core.gate import Permit, RequestGate
from identicon.core.pipeline import build_identicon, render

__all__ = [
    "EncodedImage",
    "EncodingFailed",
    "GateTimeout",
    "IdenticonConfig",
    "IdenticonError",
    "InputMalformed",
    "InputTooLong",
    "Permit",
    "RequestGate",
    "ServiceOverloaded",
    "build_identicon",
    "config",
    "render",
]
