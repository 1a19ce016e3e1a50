"""Tests for identicon.core.pattern - digest to grid and color.

Tests cover:
- The golden alice@example.com grid and color.
- Mirror symmetry for many digests.
- Which digest bits drive the grid and which drive the color.
- The all-zero color field edge case.
- Statistical distinctness across many inputs.
"""

from __future__ import annotations

import pytest

from identicon.core.digest import derive
from identicon.core.pattern import (
    BACKGROUND,
    GRID_SIZE,
    PALETTE,
    RESERVED_BYTES,
    Color,
    Grid,
    generate,
)


def _rows(grid: Grid) -> tuple[str, ...]:
    return tuple(str(grid).splitlines())


class TestGenerateGolden:
    """Test generate() against hand-computed output."""

    def test_alice_grid(self, alice):
        grid, _ = generate(bytes.fromhex(alice.digest_hex))
        assert _rows(grid) == alice.rows

    def test_alice_color(self, alice):
        _, color = generate(bytes.fromhex(alice.digest_hex))
        assert color == PALETTE[alice.palette_index]
        assert tuple(color) == alice.color

    def test_all_zero_digest(self):
        """Zero nibbles are even, so every cell is filled."""
        grid, color = generate(bytes(16))
        assert all(all(row) for row in grid.rows)
        assert color == PALETTE[0]

    def test_all_ones_digest(self):
        """0xF nibbles are odd, so every cell is empty."""
        grid, _ = generate(b"\xff" * 16)
        assert grid.filled() == []


class TestGenerateInvariants:
    """Test properties that hold for every digest."""

    @pytest.mark.parametrize("seed", range(200))
    def test_mirror_symmetry(self, seed):
        grid, _ = generate(derive(f"user-{seed}".encode()))
        assert grid.size == GRID_SIZE
        for r in range(GRID_SIZE):
            for c in range(GRID_SIZE):
                assert grid.cell(r, c) == grid.cell(r, GRID_SIZE - 1 - c)

    def test_color_never_background(self):
        assert BACKGROUND not in PALETTE
        assert len(set(PALETTE)) == len(PALETTE)

    def test_zero_color_field_is_visible(self):
        """A digest whose color bytes are all zero still gets a real color."""
        digest = bytearray(b"\x5a" * 16)
        for i in (11, 12, 15):
            digest[i] = 0
        _, color = generate(bytes(digest))
        assert color == PALETTE[0]
        assert color != BACKGROUND

    def test_reserved_bytes_do_not_matter(self):
        base = bytearray(derive(b"reserved"))
        flipped = bytearray(base)
        for i in RESERVED_BYTES:
            flipped[i] ^= 0xFF
        assert generate(bytes(base)) == generate(bytes(flipped))

    def test_color_bytes_do_not_change_grid(self):
        base = bytearray(derive(b"color"))
        other = bytearray(base)
        other[11] ^= 0x01
        grid_a, color_a = generate(bytes(base))
        grid_b, color_b = generate(bytes(other))
        assert grid_a == grid_b
        assert color_a != color_b

    def test_first_nibble_drives_top_left_cell(self):
        """Left-half cells are read left-to-right, top-to-bottom."""
        digest = bytearray(b"\xff" * 16)
        digest[0] = 0x0F  # nibble 0 even -> (0, 0); nibble 1 odd
        grid, _ = generate(bytes(digest))
        assert grid.filled() == [(0, 0), (0, 4)]

        digest[0] = 0xFF
        digest[1] = 0xF0  # nibble 3 even -> (1, 0)
        grid, _ = generate(bytes(digest))
        assert grid.filled() == [(1, 0), (1, 4)]

    def test_wrong_digest_length(self):
        with pytest.raises(ValueError):
            generate(b"\x00" * 15)


class TestDistinctness:
    """Test that distinct inputs spread over the pattern space."""

    def test_few_collisions(self):
        """2000 inputs over 2**15 grids x 16 colors should almost never collide."""
        samples = [generate(derive(f"user-{i}@example.com".encode())) for i in range(2000)]
        distinct = {(str(grid), color) for grid, color in samples}
        # Birthday bound expects about 4 collisions.
        assert len(distinct) >= 1950

    def test_all_colors_used(self):
        colors = {generate(derive(f"c{i}".encode()))[1] for i in range(2000)}
        assert colors == set(PALETTE)

    def test_fill_rate_is_balanced(self):
        cells = filled = 0
        for i in range(1000):
            grid, _ = generate(derive(str(i).encode()))
            cells += GRID_SIZE * GRID_SIZE
            filled += len(grid.filled())
        assert 0.45 < filled / cells < 0.55


class TestTypes:
    """Test the Grid and Color value types."""

    def test_color_hex(self):
        assert Color(0, 77, 64).hex() == "#004d40"

    def test_grid_is_hashable_and_immutable(self):
        grid, _ = generate(bytes(16))
        assert hash(grid) == hash(Grid(grid.rows))
        with pytest.raises(AttributeError):
            grid.rows = ()  # type: ignore[misc]
