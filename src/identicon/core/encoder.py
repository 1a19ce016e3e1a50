"""PNG encoding of rendered identicons."""

from __future__ import annotations

import hashlib
import io
import logging
from dataclasses import dataclass

from PIL import Image

from identicon.core.errors import EncodingFailed

logger = logging.getLogger(__name__)

PNG_MIME_TYPE = "image/png"


@dataclass(frozen=True)
class EncodedImage:
    """Encoded image bytes ready to be sent to a client.

    Attributes:
        data: The PNG file contents.
        mime_type: Content type of ``data``.
        etag: Quoted entity tag, the hex MD5 of ``data``.
    """

    data: bytes
    mime_type: str
    etag: str

    def __len__(self) -> int:
        return len(self.data)


def encode(image: Image.Image) -> EncodedImage:
    """Serialize an RGB image as a lossless PNG.

    Pillow writes no timestamps or text chunks unless asked, so identical
    pixel buffers always encode to identical bytes.

    Args:
        image: The rasterized identicon.

    Returns:
        The encoded image.

    Raises:
        EncodingFailed: If the buffer is not a non-empty RGB image or Pillow
            fails to write it.
    """
    if image.mode != "RGB":
        raise EncodingFailed(f"expected an RGB buffer, got mode {image.mode!r}")
    width, height = image.size
    if width < 1 or height < 1:
        raise EncodingFailed(f"invalid buffer dimensions {width}x{height}")

    buf = io.BytesIO()
    try:
        image.save(buf, format="PNG", optimize=False)
    except (OSError, ValueError) as e:
        logger.error("PNG encoder failed for %dx%d buffer: %s", width, height, e)
        raise EncodingFailed() from e

    data = buf.getvalue()
    etag = '"' + hashlib.md5(data, usedforsecurity=False).hexdigest() + '"'
    return EncodedImage(data=data, mime_type=PNG_MIME_TYPE, etag=etag)
