"""Grid-aligned resampling: one representative source pixel per grid cell."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from .raster import RasterImage

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class GridParameters:
    """Pitch in source pixels and fractional shift of the sampling origin."""
    pitch: float
    offset: float = 0.0

    def __post_init__(self):
        if not math.isfinite(self.pitch) or self.pitch <= 0:
            raise ValueError(f"pitch must be a positive number, got {self.pitch}")
        if not 0.0 <= self.offset < 1.0:
            raise ValueError(f"offset must be in [0, 1), got {self.offset}")

    def reconstructed_size(self, width: int, height: int) -> Tuple[int, int]:
        """(width, height) of the native-resolution grid."""
        return (
            round_half_up(width / self.pitch),
            round_half_up(height / self.pitch),
        )

    def cell_centers(self, count: int) -> np.ndarray:
        """Source coordinate sampled for each of ``count`` cells on one axis."""
        cells = np.arange(count, dtype=np.float64)
        return np.floor((cells + 0.5 + self.offset) * self.pitch).astype(np.int64)


@dataclass(frozen=True)
class PixelSample:
    source_x: int
    source_y: int
    grid_x: int
    grid_y: int
    color: Tuple[int, int, int, int]


@dataclass
class Reconstruction:
    """Native-resolution image rebuilt from one sample per grid cell.

    Cells whose sample point fell outside the source stay transparent.
    """
    params: GridParameters
    pixels: np.ndarray                       # (height, width, 4) uint8
    samples: List[PixelSample] = field(default_factory=list)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def to_raster(self) -> RasterImage:
        return RasterImage(self.pixels)


def sample_grid(raster: RasterImage, pitch: float, offset: float = 0.0) -> Reconstruction:
    """Resample ``raster`` on a grid of the given pitch.

    Args:
        raster: Source image.
        pitch: Source pixels per reconstructed pixel.
        offset: Fraction of a cell to shift the sampling origin by.

    Returns:
        Reconstruction whose samples are ordered row-major.  A pitch larger
        than the image yields an empty reconstruction.
    """
    params = GridParameters(pitch=float(pitch), offset=float(offset))
    out_w, out_h = params.reconstructed_size(raster.width, raster.height)
    pixels = np.zeros((out_h, out_w, 4), dtype=np.uint8)
    if out_w == 0 or out_h == 0:
        logger.debug("Degenerate grid: pitch %.3f on %dx%d image",
                     params.pitch, raster.width, raster.height)
        return Reconstruction(params=params, pixels=pixels)

    xs = params.cell_centers(out_w)
    ys = params.cell_centers(out_h)
    grid_xs = np.nonzero((xs >= 0) & (xs < raster.width))[0]
    grid_ys = np.nonzero((ys >= 0) & (ys < raster.height))[0]

    source = raster.pixels
    if grid_xs.size and grid_ys.size:
        # Samples keep their own cell; off-image cells stay transparent
        # rather than letting later samples shift into them.
        pixels[np.ix_(grid_ys, grid_xs)] = source[np.ix_(ys[grid_ys], xs[grid_xs])]

    samples: List[PixelSample] = []
    for gy in grid_ys:
        sy = int(ys[gy])
        for gx in grid_xs:
            sx = int(xs[gx])
            r, g, b, a = (int(v) for v in source[sy, sx])
            samples.append(PixelSample(sx, sy, int(gx), int(gy), (r, g, b, a)))

    omitted = out_w * out_h - len(samples)
    if omitted:
        logger.debug("%d grid cell(s) fell outside the source image", omitted)
    return Reconstruction(params=params, pixels=pixels, samples=samples)
