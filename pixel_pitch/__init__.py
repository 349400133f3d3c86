"""Public interface for the pixel grid pitch analysis toolkit."""

from __future__ import annotations

from .analyzer import (
    AnalysisResult,
    GridResult,
    SpectrumAnalysis,
    analyze,
    analyze_spectrum,
    reconstruct,
    refine,
)
from .config import AnalysisConfig
from .errors import InsufficientSignalError, InvalidImageError, PixelPitchError
from .grid import GridParameters, PixelSample, Reconstruction, sample_grid
from .matte import apply_matte, background_matte, remove_background
from .palette import ColorHistogramEntry, color_histogram, top_colors
from .raster import RasterImage
from .sampling import LineSample, choose_columns, derivative, luminance, sample_lines
from .spectrum import (
    LineSpectrum,
    combine_spectra,
    find_dominant_frequency,
    gaussian_smooth,
    magnitude_spectrum,
    pitch_from_frequency,
)

__all__ = [
    "AnalysisConfig",
    "AnalysisResult",
    "ColorHistogramEntry",
    "GridParameters",
    "GridResult",
    "InsufficientSignalError",
    "InvalidImageError",
    "LineSample",
    "LineSpectrum",
    "PixelPitchError",
    "PixelSample",
    "RasterImage",
    "Reconstruction",
    "SpectrumAnalysis",
    "analyze",
    "analyze_spectrum",
    "apply_matte",
    "background_matte",
    "choose_columns",
    "color_histogram",
    "combine_spectra",
    "derivative",
    "find_dominant_frequency",
    "gaussian_smooth",
    "luminance",
    "magnitude_spectrum",
    "pitch_from_frequency",
    "reconstruct",
    "refine",
    "remove_background",
    "sample_grid",
    "sample_lines",
    "top_colors",
]
