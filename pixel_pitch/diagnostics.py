"""Visual diagnostics for a grid analysis.

Generates inspection-friendly images:
  - Source image with sampled columns, detected grid rows and sample points
  - Blown-up reconstruction with a pixel grid
  - Spectrum chart (combined bars, smoothed curve, dominant frequency)
  - Colour histogram chart
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import cv2
import numpy as np
from PIL import Image

from .analyzer import SpectrumAnalysis
from .grid import Reconstruction
from .palette import ColorHistogramEntry, top_colors
from .raster import RasterImage

logger = logging.getLogger(__name__)

LINE_COLOR = (0, 200, 255)
GRID_COLOR = (255, 0, 0)
SAMPLE_COLOR = (0, 255, 0)


def render_sample_overlay(
    raster: RasterImage,
    spectrum: Optional[SpectrumAnalysis] = None,
    reconstruction: Optional[Reconstruction] = None,
) -> np.ndarray:
    """Draw the analysis on top of the source image.

    Args:
        raster: Source image.
        spectrum: If given, its sampled columns are drawn.
        reconstruction: If given, its grid rows and sample points are drawn.

    Returns:
        RGB numpy array the size of the source image.
    """
    overlay = np.ascontiguousarray(raster.pixels[:, :, :3]).copy()
    h, w = overlay.shape[:2]

    if spectrum is not None:
        for x in spectrum.columns:
            cv2.line(overlay, (x, 0), (x, h - 1), LINE_COLOR, 1)

    if reconstruction is not None and not reconstruction.is_empty:
        pitch = reconstruction.params.pitch
        start = reconstruction.params.offset * pitch
        for gy in range(reconstruction.height + 1):
            y = int(round(start + gy * pitch))
            if 0 <= y < h:
                cv2.line(overlay, (0, y), (w - 1, y), GRID_COLOR, 1)
        for sample in reconstruction.samples:
            cv2.circle(overlay, (sample.source_x, sample.source_y), 2, SAMPLE_COLOR, -1)

    return overlay


def render_pixel_grid(
    pixels: np.ndarray,
    scale: int = 16,
    grid_color: Tuple[int, int, int] = GRID_COLOR,
    background: int = 220,
) -> np.ndarray:
    """Blow up a reconstruction and overlay a pixel grid.

    Transparent pixels are composited over a light grey background.
    """
    h, w = pixels.shape[:2]
    if h == 0 or w == 0:
        return np.zeros((0, 0, 3), dtype=np.uint8)

    big = cv2.resize(np.ascontiguousarray(pixels), (w * scale, h * scale),
                     interpolation=cv2.INTER_NEAREST)
    if big.ndim == 3 and big.shape[2] == 4:
        alpha = big[:, :, 3:4].astype(np.float32) / 255.0
        rgb = big[:, :, :3].astype(np.float32)
        bg = np.full_like(rgb, float(background))
        big_rgb = (rgb * alpha + bg * (1 - alpha)).astype(np.uint8)
    else:
        big_rgb = big[:, :, :3].copy()

    out_h, out_w = big_rgb.shape[:2]
    for y in range(0, out_h + 1, scale):
        big_rgb[min(y, out_h - 1), :] = grid_color
    for x in range(0, out_w + 1, scale):
        big_rgb[:, min(x, out_w - 1)] = grid_color
    return big_rgb


def _pyplot():
    import matplotlib
    try:
        matplotlib.use("Agg")
    except Exception:
        # backend already initialised
        pass
    import matplotlib.pyplot as plt
    return plt


def save_spectrum_plot(spectrum: SpectrumAnalysis, output_path: Path, max_bins: int = 200) -> Path:
    """Chart the combined and smoothed spectra, marking the dominant bin."""
    plt = _pyplot()
    start = 1
    stop = min(spectrum.combined.size, start + max_bins)
    bins = np.arange(start, stop)

    fig, ax = plt.subplots(figsize=(10, 4))
    if bins.size:
        ax.bar(bins, spectrum.combined[start:stop], width=1.0, color="#7aa6c2", label="combined")
        ax.plot(bins, spectrum.smoothed[start:stop], color="#d1495b", label="smoothed")
    if spectrum.found:
        ax.axvline(spectrum.dominant_frequency, color="#2e7d32", linestyle="--",
                   label=f"f={spectrum.dominant_frequency} (pitch {spectrum.pitch:.2f}px)")
    ax.set_xlabel("frequency bin")
    ax.set_ylabel("magnitude")
    ax.set_title(f"Combined spectrum over {len(spectrum.columns)} lines")
    ax.legend(loc="upper right")
    fig.tight_layout()
    fig.savefig(output_path)
    plt.close(fig)
    logger.info("Spectrum plot saved: %s", output_path)
    return Path(output_path)


def save_histogram_plot(histogram: List[ColorHistogramEntry], output_path: Path, top_n: int = 20) -> Path:
    """Bar chart of the most frequent colours, each bar in its own colour."""
    plt = _pyplot()
    entries = top_colors(histogram, top_n)

    fig, ax = plt.subplots(figsize=(max(4, len(entries) * 0.5), 4))
    if entries:
        positions = np.arange(len(entries))
        ax.bar(positions, [e.count for e in entries],
               color=[e.hex for e in entries], edgecolor="#333333")
        ax.set_xticks(positions)
        ax.set_xticklabels([e.hex for e in entries], rotation=90, fontsize=7)
    ax.set_ylabel("pixels")
    ax.set_title(f"Top {len(entries)} of {len(histogram)} colours")
    fig.tight_layout()
    fig.savefig(output_path)
    plt.close(fig)
    return Path(output_path)


def save_overlay(image: np.ndarray, output_path: Path) -> Path:
    Image.fromarray(image).save(output_path)
    return Path(output_path)
