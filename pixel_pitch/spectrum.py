"""
Frequency analysis of the sampled lines.

Each derivative signal is turned into a DFT magnitude spectrum, the
spectra of all lines are summed into one combined spectrum, the result is
smoothed with a small Gaussian and the strongest non-DC bin is read as the
number of grid rows spanning the image height.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
from scipy.ndimage import correlate1d

from .config import (
    DEFAULT_KERNEL_SIZE,
    DEFAULT_PEAK_START,
    DEFAULT_SIGMA,
    MAX_SPECTRUM_BINS,
)
from .errors import InsufficientSignalError
from .raster import RasterImage
from .sampling import sample_line

logger = logging.getLogger(__name__)


@dataclass
class LineSpectrum:
    """DFT magnitudes of one column's derivative signal."""
    x: int
    magnitudes: np.ndarray


def magnitude_spectrum(signal: np.ndarray) -> np.ndarray:
    """Magnitude of the unpadded, unwindowed DFT of a real signal.

    The transform length equals the signal length; numpy's FFT does not
    need power-of-two input, so bin ``k`` always means ``k`` cycles over
    the derivative length.
    """
    signal = np.asarray(signal, dtype=np.float64)
    if signal.size == 0:
        return np.zeros(0, dtype=np.float64)
    return np.abs(np.fft.fft(signal))


def analyze_line(raster: RasterImage, x: int) -> LineSpectrum:
    """Sample column ``x`` and return its magnitude spectrum."""
    line = sample_line(raster, x)
    return LineSpectrum(x=line.x, magnitudes=magnitude_spectrum(line.derivative))


def combine_spectra(
    spectra: Sequence[np.ndarray],
    height: int,
    max_bins: int = MAX_SPECTRUM_BINS,
) -> np.ndarray:
    """Element-wise sum of magnitude arrays of possibly different lengths.

    The combined length is ``max(1, min(longest, height // 2))`` capped at
    ``max_bins``; lines too short for a bin contribute nothing to it.

    Raises:
        InsufficientSignalError: if no line has a non-empty spectrum.
    """
    lengths = [len(m) for m in spectra]
    longest = max(lengths, default=0)
    if longest == 0:
        raise InsufficientSignalError(
            f"No usable derivative signal among {len(lengths)} sampled line(s) "
            f"(image height {height})"
        )

    length = max(1, min(longest, height // 2))
    length = min(length, max_bins)

    combined = np.zeros(length, dtype=np.float64)
    for magnitudes in spectra:
        usable = min(len(magnitudes), length)
        if usable:
            combined[:usable] += np.asarray(magnitudes[:usable], dtype=np.float64)

    logger.debug("Combined %d spectra (longest %d) into %d bins",
                 len(lengths), longest, length)
    return combined


def gaussian_kernel(sigma: float = DEFAULT_SIGMA, kernel_size: int = DEFAULT_KERNEL_SIZE) -> np.ndarray:
    """Normalised Gaussian weights; even sizes are bumped to the next odd."""
    if sigma <= 0:
        raise ValueError(f"sigma must be positive, got {sigma}")
    if kernel_size < 1:
        raise ValueError(f"kernel_size must be >= 1, got {kernel_size}")
    size = kernel_size + 1 if kernel_size % 2 == 0 else kernel_size
    radius = size // 2
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    weights = np.exp(-(offsets * offsets) / (2.0 * sigma * sigma))
    return weights / weights.sum()


def gaussian_smooth(
    values: np.ndarray,
    sigma: float = DEFAULT_SIGMA,
    kernel_size: int = DEFAULT_KERNEL_SIZE,
    normalize_edges: bool = False,
) -> np.ndarray:
    """Smooth a 1-D spectrum with a Gaussian kernel.

    Neighbours outside the array are left out of the sum.  By default the
    partial kernel at the edges is not renormalised, so boundary bins come
    out lower than their neighbours; ``normalize_edges=True`` divides by
    the partial kernel weight instead.
    """
    values = np.asarray(values, dtype=np.float64)
    kernel = gaussian_kernel(sigma, kernel_size)
    if values.size == 0:
        return values.copy()

    smoothed = correlate1d(values, kernel, mode="constant", cval=0.0)
    if normalize_edges:
        coverage = correlate1d(np.ones_like(values), kernel, mode="constant", cval=0.0)
        smoothed = smoothed / coverage
    return smoothed


def find_dominant_frequency(smoothed: np.ndarray, start_index: int = DEFAULT_PEAK_START) -> int:
    """Index of the strongest bin at or after ``start_index``.

    The left-most maximum wins.  Returns 0 when there are no bins past
    ``start_index`` or nothing positive to pick.
    """
    values = np.asarray(smoothed, dtype=np.float64)
    if values.size <= start_index:
        return 0
    window = values[start_index:]
    best = int(np.argmax(window))
    if not window[best] > 0:
        return 0
    return start_index + best


def pitch_from_frequency(height: int, frequency: int) -> Optional[float]:
    """Source pixels per grid cell, or ``None`` when no peak was found."""
    if frequency <= 0:
        return None
    return height / frequency


def line_magnitudes(spectra: List[LineSpectrum]) -> List[np.ndarray]:
    """Magnitude arrays of the lines that produced a spectrum."""
    return [s.magnitudes for s in spectra if s.magnitudes.size]
