"""Identicon server - deterministic 5x5 avatars rendered as PNG over HTTP."""

__version__ = "0.1.0"

from identicon.core.config import IdenticonConfig, config
from identicon.core.pipeline import build_identicon, render

__all__ = [
    "IdenticonConfig",
    "build_identicon",
    "config",
    "render",
]
