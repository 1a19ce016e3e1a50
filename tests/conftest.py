"""Shared pytest fixtures for identicon tests."""

from __future__ import annotations

from collections.abc import Callable, Generator
from dataclasses import dataclass

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from identicon.api.main import create_app
from identicon.core.config import IdenticonConfig
from identicon.core.pattern import BACKGROUND


@dataclass(frozen=True)
class GoldenIdenticon:
    """Hand-computed expectations for one input."""

    data: bytes
    digest_hex: str
    rows: tuple[str, ...]
    palette_index: int
    color: tuple[int, int, int]


# MD5 c160f8cc69a4f0bf2b0362752353d060:
#   pattern nibbles c 1 6 | 0 f 8 | c c 6 | 9 a 4 | f 0 b  (even = filled)
#   color bytes 0x75 + 0x23 + 0x60 = 248, 248 % 16 = 8
ALICE = GoldenIdenticon(
    data=b"alice@example.com",
    digest_hex="c160f8cc69a4f0bf2b0362752353d060",
    rows=("X.X.X", "X.X.X", "XXXXX", ".XXX.", ".X.X."),
    palette_index=8,
    color=(0, 77, 64),
)


def reference_pixels(
    rows: tuple[str, ...], color: tuple[int, int, int], scale: int = 48
) -> list[tuple[int, int, int]]:
    """Build the expected row-major pixel list for a grid drawn as text."""
    size = len(rows) * scale
    background = tuple(BACKGROUND)
    return [
        color if rows[y // scale][x // scale] == "X" else background
        for y in range(size)
        for x in range(size)
    ]


@pytest.fixture
def test_config() -> IdenticonConfig:
    """Create a small, environment-independent configuration.

    Returns:
        IdenticonConfig instance for testing
    """
    return IdenticonConfig(
        _env_file=None,
        addr="127.0.0.1:8080",
        concurrency=4,
        queue_limit=4,
        timeout=1.0,
        lru_cap=8,
    )


@pytest.fixture
def app(test_config: IdenticonConfig) -> FastAPI:
    """Create a fresh FastAPI app bound to the test configuration."""
    return create_app(test_config)


@pytest.fixture
def test_client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Create a TestClient with the app lifespan running.

    Yields:
        TestClient whose app has its gate and cache on ``app.state``
    """
    with TestClient(app) as client:
        yield client


@pytest.fixture
def alice() -> GoldenIdenticon:
    """Golden expectations for ``alice@example.com``."""
    return ALICE


@pytest.fixture
def reference() -> Callable[..., list[tuple[int, int, int]]]:
    """Return the helper that draws a text grid as an expected pixel list."""
    return reference_pixels
