"""Colour-frequency histogram of a reconstructed image."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColorHistogramEntry:
    """One unique RGB colour, its count and the first RGBA seen with it."""
    rgb: Tuple[int, int, int]
    count: int
    rgba: Tuple[int, int, int, int]

    @property
    def hex(self) -> str:
        r, g, b = self.rgb
        return f"#{r:02x}{g:02x}{b:02x}"

    def to_dict(self) -> dict:
        return {
            "hex": self.hex,
            "rgb": list(self.rgb),
            "rgba": list(self.rgba),
            "count": int(self.count),
        }


def color_histogram(pixels: np.ndarray) -> List[ColorHistogramEntry]:
    """Count unique colours, most frequent first.

    Fully transparent pixels are skipped.  Colours are keyed by RGB only,
    so pixels differing just in alpha share a bucket whose representative
    RGBA is the first one encountered in row-major order.  Ties keep the
    order of first appearance.

    Args:
        pixels: RGBA array of shape (height, width, 4).

    Returns:
        List of histogram entries; empty if every pixel is transparent.
    """
    pixels = np.asarray(pixels)
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"Expected an RGBA array, got shape {pixels.shape}")

    flat = pixels.reshape(-1, 4)
    visible = flat[flat[:, 3] != 0]
    if len(visible) == 0:
        return []

    rgb = visible[:, :3].astype(np.uint32)
    keys = (rgb[:, 0] << 16) | (rgb[:, 1] << 8) | rgb[:, 2]
    _, first_index, counts = np.unique(keys, return_index=True, return_counts=True)

    # primary key: count descending, secondary: first appearance
    order = np.lexsort((first_index, -counts))

    entries = []
    for i in order:
        r, g, b, a = (int(v) for v in visible[first_index[i]])
        entries.append(ColorHistogramEntry(rgb=(r, g, b), count=int(counts[i]), rgba=(r, g, b, a)))

    logger.debug("Histogram: %d colour(s) over %d visible pixel(s)", len(entries), len(visible))
    return entries


def top_colors(histogram: List[ColorHistogramEntry], n: int = 20) -> List[ColorHistogramEntry]:
    return list(histogram[:max(n, 0)])
