"""Pattern generation: digest bits to a symmetric grid and a foreground color.

Bit layout of the 16-byte digest
--------------------------------
============  ===============  ==============================================
Field         Bytes            Use
============  ===============  ==============================================
pattern       0-7              nibbles, high nibble first; the first 15 fill
                               the left half of the grid (columns 0-2)
reserved      8, 9, 10, 13,    unused
              14
color         11, 12, 15       ``PALETTE[(d[11] + d[12] + d[15]) % 16]``
============  ===============  ==============================================

Left-half cells are enumerated left-to-right, top-to-bottom: cell
``(row, col)`` for ``col < 3`` takes nibble ``row * 3 + col``.  An even
nibble marks the cell filled.  The right half mirrors the left, so
``cell(r, c) == cell(r, GRID_SIZE - 1 - c)`` always holds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from identicon.core.digest import DIGEST_SIZE

GRID_SIZE = 5

#: Columns drawn from the digest; the rest are mirrored.
HALF_WIDTH = (GRID_SIZE + 1) // 2

PATTERN_BYTES = slice(0, 8)
COLOR_BYTES = (11, 12, 15)
RESERVED_BYTES = (8, 9, 10, 13, 14)


class Color(NamedTuple):
    """An opaque RGB color."""

    red: int
    green: int
    blue: int

    def hex(self) -> str:
        return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"


BACKGROUND = Color(240, 240, 240)

# Dark enough to stand out against BACKGROUND.  Order is part of the
# visual-compatibility contract.
PALETTE: tuple[Color, ...] = (
    Color(183, 28, 28),
    Color(136, 14, 79),
    Color(74, 20, 140),
    Color(49, 27, 146),
    Color(26, 35, 126),
    Color(13, 71, 161),
    Color(1, 87, 155),
    Color(0, 96, 100),
    Color(0, 77, 64),
    Color(27, 94, 32),
    Color(51, 105, 30),
    Color(130, 119, 23),
    Color(191, 54, 12),
    Color(230, 81, 0),
    Color(62, 39, 35),
    Color(38, 50, 56),
)


@dataclass(frozen=True)
class Grid:
    """Immutable square matrix of filled/empty cells."""

    rows: tuple[tuple[bool, ...], ...]

    @property
    def size(self) -> int:
        return len(self.rows)

    def cell(self, row: int, col: int) -> bool:
        return self.rows[row][col]

    def filled(self) -> list[tuple[int, int]]:
        """Return ``(row, col)`` of every filled cell in row-major order."""
        return [
            (r, c) for r, cells in enumerate(self.rows) for c, on in enumerate(cells) if on
        ]

    def __str__(self) -> str:
        return "\n".join("".join("X" if on else "." for on in cells) for cells in self.rows)


def _nibbles(data: bytes):
    for byte in data:
        yield byte >> 4
        yield byte & 0x0F


def generate(digest: bytes) -> tuple[Grid, Color]:
    """Build the grid and foreground color for a digest.

    Args:
        digest: A :data:`~identicon.core.digest.DIGEST_SIZE`-byte digest.

    Returns:
        Tuple of ``(grid, color)``.

    Raises:
        ValueError: If ``digest`` has the wrong length.  This is a
            programming error, not a client error.
    """
    if len(digest) != DIGEST_SIZE:
        raise ValueError(f"digest must be {DIGEST_SIZE} bytes, got {len(digest)}")

    nibbles = _nibbles(digest[PATTERN_BYTES])
    rows = []
    for _ in range(GRID_SIZE):
        left = [next(nibbles) % 2 == 0 for _ in range(HALF_WIDTH)]
        mirrored = left[: GRID_SIZE - HALF_WIDTH][::-1]
        rows.append(tuple(left + mirrored))

    # An all-zero color field lands on PALETTE[0], never on the background.
    color = PALETTE[sum(digest[i] for i in COLOR_BYTES) % len(PALETTE)]
    return Grid(tuple(rows)), color
