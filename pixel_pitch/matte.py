"""
Background removal by flood fill from the image border.

Only pixels that match the background colour AND are 4-connected to the
border through matching pixels are removed; an interior patch of the same
colour enclosed by the subject stays opaque.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import List, Sequence, Tuple

import numpy as np

from .config import DEFAULT_MATTE_TOLERANCE
from .palette import ColorHistogramEntry

logger = logging.getLogger(__name__)


def color_match_mask(pixels: np.ndarray, target_rgb: Sequence[int], tolerance: int) -> np.ndarray:
    """Pixels whose R, G and B each lie within ``tolerance`` of the target."""
    rgb = pixels[:, :, :3].astype(np.int16)
    target = np.asarray(target_rgb[:3], dtype=np.int16)
    return np.all(np.abs(rgb - target) <= tolerance, axis=2)


def _border_indices(width: int, height: int) -> List[int]:
    indices = list(range(width))
    indices += [(height - 1) * width + x for x in range(width)]
    for y in range(height):
        indices.append(y * width)
        indices.append(y * width + width - 1)
    return indices


def background_matte(
    pixels: np.ndarray,
    target_rgb: Sequence[int],
    tolerance: int = DEFAULT_MATTE_TOLERANCE,
) -> np.ndarray:
    """Boolean mask of border-connected pixels matching ``target_rgb``.

    Multi-source breadth-first fill seeded from every matching border pixel.
    Pixels are addressed by linear index ``y * width + x``; each one is
    queued at most once.
    """
    pixels = np.asarray(pixels)
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"Expected an RGBA array, got shape {pixels.shape}")
    height, width = pixels.shape[:2]
    if width == 0 or height == 0:
        return np.zeros((height, width), dtype=bool)

    candidate = color_match_mask(pixels, target_rgb, tolerance).ravel()
    visited = np.zeros(width * height, dtype=bool)
    queue = deque()

    for idx in _border_indices(width, height):
        if candidate[idx] and not visited[idx]:
            visited[idx] = True
            queue.append(idx)

    while queue:
        idx = queue.popleft()
        y, x = divmod(idx, width)
        neighbours: List[int] = []
        if x > 0:
            neighbours.append(idx - 1)
        if x < width - 1:
            neighbours.append(idx + 1)
        if y > 0:
            neighbours.append(idx - width)
        if y < height - 1:
            neighbours.append(idx + width)
        for n in neighbours:
            if candidate[n] and not visited[n]:
                visited[n] = True
                queue.append(n)

    return visited.reshape(height, width)


def apply_matte(pixels: np.ndarray, matte: np.ndarray) -> np.ndarray:
    """Copy of ``pixels`` with alpha zeroed wherever ``matte`` is set."""
    out = np.array(pixels, dtype=np.uint8, copy=True)
    out[matte, 3] = 0
    return out


def remove_background(
    pixels: np.ndarray,
    histogram: Sequence[ColorHistogramEntry],
    tolerance: int = DEFAULT_MATTE_TOLERANCE,
) -> Tuple[np.ndarray, np.ndarray]:
    """Matte out the most frequent colour where it touches the border.

    Returns:
        (matte, matted_pixels).  With an empty histogram nothing is removed.
    """
    pixels = np.asarray(pixels)
    if not histogram:
        matte = np.zeros(pixels.shape[:2], dtype=bool)
        return matte, np.array(pixels, dtype=np.uint8, copy=True)

    target = histogram[0].rgb
    matte = background_matte(pixels, target, tolerance)
    logger.debug("Background %s: removed %d of %d pixel(s)",
                 histogram[0].hex, int(matte.sum()), matte.size)
    return matte, apply_matte(pixels, matte)
