"""Vertical line sampling: column choice, luminance and derivative signals."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import numpy as np

from .config import DEFAULT_LINE_COUNT
from .raster import RasterImage

logger = logging.getLogger(__name__)

RandomSource = Optional[Union[int, np.random.Generator]]


@dataclass
class LineSample:
    """Luminance and absolute first difference of one source column."""
    x: int
    luminance: np.ndarray   # length == image height
    derivative: np.ndarray  # length == image height - 1

    @property
    def is_empty(self) -> bool:
        return self.derivative.size == 0


def make_rng(source: RandomSource = None) -> np.random.Generator:
    """Turn a seed, a generator or ``None`` into a ``numpy`` generator."""
    if isinstance(source, np.random.Generator):
        return source
    return np.random.default_rng(source)


def choose_columns(
    width: int,
    count: int = DEFAULT_LINE_COUNT,
    rng: RandomSource = None,
) -> List[int]:
    """Pick ``min(count, width)`` distinct column indices in ``[0, width)``.

    Drawing without replacement keeps the selection bounded even when
    ``count`` exceeds the image width.
    """
    if width <= 0 or count <= 0:
        return []
    n = min(count, width)
    columns = make_rng(rng).choice(width, size=n, replace=False)
    return [int(x) for x in columns]


def luminance(pixels: np.ndarray, x: int) -> np.ndarray:
    """Mean of R, G and B for every row of column ``x`` (alpha ignored)."""
    column = pixels[:, x, :3].astype(np.float64)
    return column.sum(axis=1) / 3.0


def derivative(signal: np.ndarray) -> np.ndarray:
    """Absolute first difference; empty for signals shorter than two."""
    signal = np.asarray(signal, dtype=np.float64)
    if signal.size < 2:
        return np.zeros(0, dtype=np.float64)
    return np.abs(np.diff(signal))


def sample_line(raster: RasterImage, x: int) -> LineSample:
    lum = luminance(raster.pixels, x)
    return LineSample(x=int(x), luminance=lum, derivative=derivative(lum))


def sample_lines(raster: RasterImage, columns: Sequence[int]) -> List[LineSample]:
    samples = [sample_line(raster, x) for x in columns]
    empty = sum(1 for s in samples if s.is_empty)
    if empty:
        logger.debug("%d of %d lines have no derivative (height=%d)",
                     empty, len(samples), raster.height)
    return samples
