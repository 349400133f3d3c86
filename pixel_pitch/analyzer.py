"""
Grid pitch analysis pipeline.

Two entry points cover the whole flow:

1. ``analyze`` runs every stage: line sampling, per-line spectra, spectrum
   aggregation and smoothing, peak detection, then grid resampling,
   colour histogram and background matte.
2. ``refine`` re-runs only the grid stages with a user supplied pitch and
   offset, reusing the spectrum part of an earlier result.  Use it for
   manual correction; the spectrum stages are the expensive ones.

``reconstruct`` runs the grid stages for an explicit pitch without any
spectrum at all.
"""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

import numpy as np

from .config import AnalysisConfig
from .grid import Reconstruction, sample_grid
from .matte import remove_background
from .palette import ColorHistogramEntry, color_histogram, top_colors
from .raster import RasterImage, as_raster, ensure_analyzable
from .sampling import RandomSource, choose_columns
from .spectrum import (
    LineSpectrum,
    analyze_line,
    combine_spectra,
    find_dominant_frequency,
    gaussian_smooth,
    line_magnitudes,
    pitch_from_frequency,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class SpectrumAnalysis:
    """Output of the spectrum stages; reusable across grid re-runs."""
    width: int
    height: int
    columns: List[int]
    spectra: List[LineSpectrum]
    combined: np.ndarray
    smoothed: np.ndarray
    dominant_frequency: int

    @property
    def found(self) -> bool:
        return self.dominant_frequency > 0

    @property
    def pitch(self) -> Optional[float]:
        return pitch_from_frequency(self.height, self.dominant_frequency)


@dataclass
class GridResult:
    """Reconstruction plus its histogram and background matte."""
    reconstruction: Reconstruction
    histogram: List[ColorHistogramEntry]
    matte: np.ndarray    # (height, width) bool, True = removed
    matted: np.ndarray   # reconstruction pixels with background alpha zeroed

    @property
    def removed_count(self) -> int:
        return int(np.count_nonzero(self.matte))


@dataclass
class AnalysisResult:
    spectrum: SpectrumAnalysis
    grid: Optional[GridResult] = None
    config: AnalysisConfig = field(default_factory=AnalysisConfig)

    @property
    def pitch(self) -> Optional[float]:
        if self.grid is not None:
            return self.grid.reconstruction.params.pitch
        return self.spectrum.pitch

    def summary(self, top_n: Optional[int] = None) -> dict:
        """JSON-serialisable digest for reports and exports."""
        top_n = self.config.histogram_top_n if top_n is None else top_n
        spectrum = self.spectrum
        summary = {
            "width": spectrum.width,
            "height": spectrum.height,
            "lines_sampled": len(spectrum.columns),
            "spectrum_bins": int(spectrum.combined.size),
            "dominant_frequency": spectrum.dominant_frequency,
            "detected_pitch": spectrum.pitch,
            "grid_found": self.grid is not None,
        }
        if self.grid is None:
            return summary

        recon = self.grid.reconstruction
        summary.update(
            {
                "pitch": recon.params.pitch,
                "offset": recon.params.offset,
                "reconstructed_width": recon.width,
                "reconstructed_height": recon.height,
                "samples": len(recon.samples),
                "color_count": len(self.grid.histogram),
                "top_colors": [e.to_dict() for e in top_colors(self.grid.histogram, top_n)],
                "background_removed": self.grid.removed_count,
            }
        )
        return summary


# ---------------------------------------------------------------------------
# Spectrum stages
# ---------------------------------------------------------------------------


def _line_spectra(raster: RasterImage, columns: List[int], workers: int) -> List[LineSpectrum]:
    """Per-line spectra, in column order, optionally on a thread pool."""
    if workers <= 1 or len(columns) <= 1:
        return [analyze_line(raster, x) for x in columns]

    results: List[Optional[LineSpectrum]] = [None] * len(columns)
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futs = {ex.submit(analyze_line, raster, x): i for i, x in enumerate(columns)}
        for fut in concurrent.futures.as_completed(futs):
            results[futs[fut]] = fut.result()
    return results  # type: ignore[return-value]


def analyze_spectrum(
    image,
    config: Optional[AnalysisConfig] = None,
    rng: RandomSource = None,
) -> SpectrumAnalysis:
    """Run the spectrum stages and detect the dominant grid frequency.

    Args:
        image: ``RasterImage`` or an RGB(A) uint8 array.
        config: Stage parameters; defaults are used when omitted.
        rng: Seed or ``numpy`` generator for the column choice.

    Raises:
        InvalidImageError: if the image has no pixels.
        InsufficientSignalError: if the image is a single row tall.
    """
    cfg = (config or AnalysisConfig()).validate()
    raster = ensure_analyzable(as_raster(image))

    columns = choose_columns(raster.width, cfg.line_count, rng)
    logger.debug("Sampling %d column(s): %s", len(columns), columns)

    spectra = _line_spectra(raster, columns, cfg.workers)
    combined = combine_spectra(line_magnitudes(spectra), raster.height, cfg.max_spectrum_bins)
    smoothed = gaussian_smooth(combined, cfg.sigma, cfg.kernel_size, cfg.normalize_edges)
    frequency = find_dominant_frequency(smoothed, cfg.peak_start_index)

    if frequency:
        logger.info("Dominant frequency %d -> pitch %.3f px (%dx%d)",
                    frequency, raster.height / frequency, raster.width, raster.height)
    else:
        logger.warning("No regular grid detected (%dx%d, %d bins)",
                       raster.width, raster.height, combined.size)

    return SpectrumAnalysis(
        width=raster.width,
        height=raster.height,
        columns=columns,
        spectra=spectra,
        combined=combined,
        smoothed=smoothed,
        dominant_frequency=frequency,
    )


# ---------------------------------------------------------------------------
# Grid stages
# ---------------------------------------------------------------------------


def reconstruct(
    image,
    pitch: float,
    offset: float = 0.0,
    config: Optional[AnalysisConfig] = None,
) -> GridResult:
    """Resample on an explicit grid, then histogram and matte the result."""
    cfg = (config or AnalysisConfig()).validate()
    raster = ensure_analyzable(as_raster(image))

    recon = sample_grid(raster, pitch, offset)
    histogram = color_histogram(recon.pixels)
    matte, matted = remove_background(recon.pixels, histogram, cfg.matte_tolerance)

    logger.info("Reconstructed %dx%d at pitch %.3f offset %.2f (%d colour(s))",
                recon.width, recon.height, recon.params.pitch, recon.params.offset,
                len(histogram))
    return GridResult(reconstruction=recon, histogram=histogram, matte=matte, matted=matted)


def analyze(
    image,
    config: Optional[AnalysisConfig] = None,
    rng: RandomSource = None,
) -> AnalysisResult:
    """Full pipeline: detect the grid pitch and rebuild the pixel art.

    When no peak is found ``result.grid`` is ``None``.
    """
    cfg = (config or AnalysisConfig()).validate()
    raster = ensure_analyzable(as_raster(image))

    spectrum = analyze_spectrum(raster, cfg, rng)
    grid = None
    if spectrum.pitch is not None:
        grid = reconstruct(raster, spectrum.pitch, 0.0, cfg)
    return AnalysisResult(spectrum=spectrum, grid=grid, config=cfg)


def refine(
    image,
    previous: Union[AnalysisResult, SpectrumAnalysis],
    pitch: Optional[float] = None,
    offset: float = 0.0,
    config: Optional[AnalysisConfig] = None,
) -> AnalysisResult:
    """Re-run the grid stages for the same image with a new pitch/offset.

    ``pitch`` defaults to the detected one.  The spectrum part of
    ``previous`` is reused untouched.
    """
    spectrum = previous.spectrum if isinstance(previous, AnalysisResult) else previous
    if config is None and isinstance(previous, AnalysisResult):
        config = previous.config
    cfg = (config or AnalysisConfig()).validate()
    raster = ensure_analyzable(as_raster(image))

    if (raster.width, raster.height) != (spectrum.width, spectrum.height):
        raise ValueError(
            f"Image is {raster.width}x{raster.height} but the cached analysis "
            f"is for {spectrum.width}x{spectrum.height}"
        )

    if pitch is None:
        pitch = spectrum.pitch
    grid = None
    if pitch is not None:
        grid = reconstruct(raster, pitch, offset, cfg)
    return AnalysisResult(spectrum=spectrum, grid=grid, config=cfg)
