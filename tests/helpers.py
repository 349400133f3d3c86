"""Synthetic images shared by the test modules."""

from __future__ import annotations

import numpy as np

# Luminance of the eight rows of one soft-edged cell.  Its absolute first
# difference is the triangle 0,10,20,30,40,30,20,10, so the derivative has
# no content at even harmonics and little at the third.
SOFT_CELL_PROFILE = [100, 100, 110, 90, 120, 160, 130, 110]
CELL = len(SOFT_CELL_PROFILE)


def make_soft_pixel_art(art_delta: np.ndarray) -> np.ndarray:
    """Upscale a cell map into soft-shaded pixel art.

    Every cell covers ``CELL`` rows and columns.  Rows follow the soft
    profile, while ``art_delta[gy, gx]`` tints the cell as
    ``(L + d, L - d, L)``, which keeps the luminance of every column equal
    to the profile.  One extra row is appended so the derivative length is
    an exact multiple of the cell size.
    """
    grid_h, grid_w = art_delta.shape
    height = grid_h * CELL + 1
    width = grid_w * CELL
    img = np.zeros((height, width, 4), dtype=np.uint8)
    for y in range(height):
        lum = SOFT_CELL_PROFILE[y % CELL]
        gy = y // CELL
        for x in range(width):
            d = int(art_delta[gy, x // CELL]) if gy < grid_h else 0
            img[y, x] = (lum + d, lum - d, lum, 255)
    return img


def make_subject_delta() -> np.ndarray:
    """16x8 cell map: a tinted block with an untinted 2x2 hole inside."""
    delta = np.zeros((16, 8), dtype=np.int32)
    delta[4:12, 2:6] = 30
    delta[7:9, 3:5] = 0
    return delta


def make_nn_upscaled(art: np.ndarray, scale: int) -> np.ndarray:
    return np.repeat(np.repeat(art, scale, axis=0), scale, axis=1)


def make_framed(size: int, border, interior, inner: int = 2) -> np.ndarray:
    """Solid ``border`` colour with a centred ``inner`` x ``inner`` block."""
    img = np.zeros((size, size, 4), dtype=np.uint8)
    img[:, :] = border
    lo = (size - inner) // 2
    img[lo:lo + inner, lo:lo + inner] = interior
    return img


def make_flat_bands(levels, band_height: int, width: int) -> np.ndarray:
    """Hard-edged grey bands, ``band_height`` rows per level, no blur."""
    rows = np.repeat(np.asarray(levels, dtype=np.uint8), band_height)
    img = np.empty((rows.size, width, 4), dtype=np.uint8)
    img[:, :, :3] = rows[:, None, None]
    img[:, :, 3] = 255
    return img


def make_tiled_rows(pattern, height: int, width: int) -> np.ndarray:
    """Tile a K-row grey ``pattern`` down the image.

    ``pattern`` is either ``(K,)``, shared by every column, or ``(K, width)``
    so each column repeats its own K levels.
    """
    pattern = np.asarray(pattern, dtype=np.uint8)
    if pattern.ndim == 1:
        pattern = np.repeat(pattern[:, None], width, axis=1)
    rows = pattern[np.arange(height) % pattern.shape[0]]
    img = np.empty((height, width, 4), dtype=np.uint8)
    img[:, :, :3] = rows[:, :, None]
    img[:, :, 3] = 255
    return img
