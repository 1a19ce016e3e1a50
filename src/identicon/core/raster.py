"""Rasterizer: expand a grid into a Pillow RGB image.

Each filled cell becomes a solid ``cell_scale x cell_scale`` block of the
foreground color; everything else is :data:`~identicon.core.pattern.BACKGROUND`.
The output is always ``grid.size * cell_scale`` pixels square, independent of
the input identifier, which caps memory per request.
"""

from __future__ import annotations

from PIL import Image

from identicon.core.pattern import BACKGROUND, GRID_SIZE, Color, Grid

#: Pixels per grid cell.
CELL_SCALE = 48

#: Edge length of every rendered identicon, in pixels.
IMAGE_SIZE = GRID_SIZE * CELL_SCALE


def rasterize(grid: Grid, color: Color, cell_scale: int = CELL_SCALE) -> Image.Image:
    """Render ``grid`` into a new RGB image.

    Args:
        grid: The cell pattern.
        color: Foreground color for filled cells.
        cell_scale: Edge length of one cell in pixels.

    Returns:
        A ``grid.size * cell_scale`` square image in mode ``RGB``.

    Raises:
        ValueError: If ``cell_scale`` is not positive.
    """
    if cell_scale < 1:
        raise ValueError(f"cell_scale must be positive, got {cell_scale}")

    size = grid.size * cell_scale
    image = Image.new("RGB", (size, size), tuple(BACKGROUND))
    fill = tuple(color)
    for row, col in grid.filled():
        x0 = col * cell_scale
        y0 = row * cell_scale
        image.paste(fill, (x0, y0, x0 + cell_scale, y0 + cell_scale))
    return image
