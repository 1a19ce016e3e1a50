"""Digest derivation - the first stage of the identicon pipeline.

The digest is the only source of entropy for an identicon, so the hash
algorithm is part of the service's visual-compatibility contract: switching
it changes the appearance of every identicon ever served.  MD5 is used for
dispersion only, never for security.
"""

from __future__ import annotations

import hashlib

from identicon.core.errors import InputTooLong

#: Hash algorithm used for every identicon.  Changing it is a breaking change.
DIGEST_ALGORITHM = "md5"

#: Length of the digest in bytes.
DIGEST_SIZE = 16

#: Largest input identifier accepted, in bytes.
MAX_INPUT_LENGTH = 256


def derive(data: bytes, max_length: int = MAX_INPUT_LENGTH) -> bytes:
    """Derive the fixed-length digest for an input identifier.

    Args:
        data: Raw identifier bytes (callers encode text as UTF-8).
        max_length: Largest accepted input length in bytes.

    Returns:
        The :data:`DIGEST_SIZE`-byte digest of ``data``.

    Raises:
        TypeError: If ``data`` is not a bytes-like object.
        InputTooLong: If ``data`` is longer than ``max_length`` bytes.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"expected bytes, got {type(data).__name__}")
    if len(data) > max_length:
        raise InputTooLong(len(data), max_length)
    return hashlib.new(DIGEST_ALGORITHM, bytes(data), usedforsecurity=False).digest()
