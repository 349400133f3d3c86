"""
Batch command line interface for the grid pitch analysis.

Every input image goes through the full pipeline (or only the grid stages
when ``--pitch`` is given) and the CLI writes the native-resolution pixel
art, the background-matted version, a JSON summary and one CSV row per
image.

Usage examples
--------------

Analyse every image in ``input/`` and drop the results in ``output/``::

    python -m pixel_pitch.cli input --output-dir output

Force a pitch and shift the sampling grid by a quarter cell::

    python -m pixel_pitch.cli sprite.png --pitch 8 --offset 0.25 --diagnostics
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from PIL import Image

from .analyzer import AnalysisResult, analyze, analyze_spectrum, refine
from .config import (
    DEFAULT_KERNEL_SIZE,
    DEFAULT_LINE_COUNT,
    DEFAULT_MATTE_TOLERANCE,
    DEFAULT_PEAK_START,
    DEFAULT_SIGMA,
    DEFAULT_TOP_COLORS,
    AnalysisConfig,
)
from .errors import PixelPitchError
from .raster import RasterImage

logger = logging.getLogger("pixel_pitch")

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tif", ".tiff", ".webp"}

METRIC_FIELDS = [
    "image",
    "width",
    "height",
    "dominant_frequency",
    "pitch",
    "offset",
    "reconstructed_width",
    "reconstructed_height",
    "color_count",
    "background_removed",
    "output_path",
    "matte_path",
]


def _setup_logging(debug: bool = False):
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@dataclass
class BatchConfig:
    """Runtime configuration derived from CLI arguments."""

    inputs: Sequence[Path]
    output_dir: Path
    analysis: AnalysisConfig
    seed: Optional[int]
    pitch: Optional[float]
    offset: float
    save_matte: bool
    diagnostics: bool
    metrics_path: Optional[Path]


def _gather_images(sources: Sequence[Path], recursive: bool) -> List[Path]:
    """Collect candidate image files from the provided locations."""
    seen: set[Path] = set()
    images: List[Path] = []

    for source in sources:
        if source.is_dir():
            iterator: Iterable[Path]
            iterator = source.rglob("*") if recursive else source.iterdir()
            for candidate in iterator:
                if not candidate.is_file():
                    continue
                if candidate.suffix.lower() not in IMAGE_EXTENSIONS:
                    continue
                resolved = candidate.resolve()
                if resolved in seen:
                    continue
                seen.add(resolved)
                images.append(resolved)
        elif source.is_file():
            if source.suffix.lower() not in IMAGE_EXTENSIONS:
                logger.warning("Skipping unsupported file: %s", source)
                continue
            resolved = source.resolve()
            if resolved not in seen:
                seen.add(resolved)
                images.append(resolved)
        else:
            logger.warning("Input path not found: %s", source)

    images.sort()
    return images


def _run_analysis(raster: RasterImage, cfg: BatchConfig) -> AnalysisResult:
    if cfg.pitch is None and not cfg.offset:
        return analyze(raster, cfg.analysis, rng=cfg.seed)
    # manual correction: detected spectrum, user grid
    spectrum = analyze_spectrum(raster, cfg.analysis, rng=cfg.seed)
    return refine(raster, spectrum, pitch=cfg.pitch, offset=cfg.offset, config=cfg.analysis)


def _write_diagnostics(image_path: Path, raster: RasterImage, result: AnalysisResult, cfg: BatchConfig) -> None:
    from .diagnostics import (
        render_pixel_grid,
        render_sample_overlay,
        save_histogram_plot,
        save_overlay,
        save_spectrum_plot,
    )

    debug_dir = cfg.output_dir / "diagnostics"
    debug_dir.mkdir(parents=True, exist_ok=True)
    stem = image_path.stem

    save_spectrum_plot(result.spectrum, debug_dir / f"{stem}_spectrum.png")
    recon = result.grid.reconstruction if result.grid is not None else None
    overlay = render_sample_overlay(raster, result.spectrum, recon)
    save_overlay(overlay, debug_dir / f"{stem}_samples.png")

    if result.grid is not None and not recon.is_empty:
        save_overlay(render_pixel_grid(recon.pixels), debug_dir / f"{stem}_grid.png")
        save_histogram_plot(result.grid.histogram, debug_dir / f"{stem}_colors.png",
                            top_n=cfg.analysis.histogram_top_n)


def _process_single_image(image_path: Path, cfg: BatchConfig) -> Optional[dict]:
    """Run the analysis for one image and persist artefacts."""
    try:
        with Image.open(image_path) as img:
            raster = RasterImage.from_pil(img)
        result = _run_analysis(raster, cfg)
    except (PixelPitchError, OSError) as exc:
        logger.warning("Failed to process %s: %s", image_path.name, exc)
        return None

    summary = result.summary()
    summary["image"] = image_path.name

    output_path: Optional[Path] = None
    matte_path: Optional[Path] = None
    if result.grid is not None and not result.grid.reconstruction.is_empty:
        output_path = cfg.output_dir / f"{image_path.stem}_pixels.png"
        result.grid.reconstruction.to_raster().to_pil().save(output_path)
        if cfg.save_matte:
            matte_path = cfg.output_dir / f"{image_path.stem}_matte.png"
            Image.fromarray(result.grid.matted).save(matte_path)
        logger.info("%s: pitch=%.3f -> %dx%d, %d colour(s)",
                    image_path.name, result.grid.reconstruction.params.pitch,
                    result.grid.reconstruction.width, result.grid.reconstruction.height,
                    len(result.grid.histogram))
    elif result.grid is not None:
        logger.warning("%s: grid is larger than the image, nothing to export", image_path.name)
    else:
        logger.warning("%s: no pixel grid detected", image_path.name)

    summary["output_path"] = str(output_path) if output_path else ""
    summary["matte_path"] = str(matte_path) if matte_path else ""
    summary_path = cfg.output_dir / f"{image_path.stem}_summary.json"
    summary_path.write_text(json.dumps(summary, indent=2))

    if cfg.diagnostics:
        _write_diagnostics(image_path, raster, result, cfg)

    return {name: summary.get(name, "") for name in METRIC_FIELDS}


def _write_metrics_csv(metrics: List[dict], path: Path) -> None:
    with path.open("w", newline="") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=METRIC_FIELDS)
        writer.writeheader()
        writer.writerows(metrics)
    logger.info("Metrics written to %s", path)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Detect the pixel grid of upscaled pixel art and rebuild it.")
    parser.add_argument(
        "inputs",
        nargs="+",
        type=Path,
        help="Image files or directories to process.",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=Path("output"),
        help="Directory for results (default: ./output).",
    )
    parser.add_argument("--lines", type=int, default=DEFAULT_LINE_COUNT,
                        help="Number of vertical lines to sample.")
    parser.add_argument("--seed", type=int, help="Seed for the line selection.")
    parser.add_argument("--sigma", type=float, default=DEFAULT_SIGMA,
                        help="Standard deviation of the spectrum smoothing kernel.")
    parser.add_argument("--kernel-size", type=int, default=DEFAULT_KERNEL_SIZE,
                        help="Smoothing kernel size (even values are bumped to odd).")
    parser.add_argument("--normalize-edges", action="store_true",
                        help="Renormalise the smoothing kernel at the spectrum edges.")
    parser.add_argument("--peak-start", type=int, default=DEFAULT_PEAK_START,
                        help="First spectrum bin considered for the peak.")
    parser.add_argument("--tolerance", type=int, default=DEFAULT_MATTE_TOLERANCE,
                        help="Per-channel tolerance for background matching.")
    parser.add_argument("--pitch", type=float,
                        help="Use this pitch instead of the detected one.")
    parser.add_argument("--offset", type=float, default=0.0,
                        help="Fractional grid offset in [0, 1).")
    parser.add_argument("--workers", type=int, default=1,
                        help="Threads used for the per-line spectra.")
    parser.add_argument("--top-colors", type=int, default=DEFAULT_TOP_COLORS,
                        help="Colours listed in summaries and charts.")
    parser.add_argument("--no-matte", action="store_true",
                        help="Do not export the background-matted image.")
    parser.add_argument("--diagnostics", action="store_true",
                        help="Export spectrum/sample/histogram plots to <output>/diagnostics/.")
    parser.add_argument("--recursive", action="store_true",
                        help="When inputs include directories, walk them recursively.")
    parser.add_argument("--metrics-path", type=Path,
                        help="Write a CSV summary to the provided path (defaults to <output>/metrics.csv).")
    parser.add_argument("--no-metrics", action="store_true",
                        help="Do not emit the metrics CSV.")
    parser.add_argument("--debug", action="store_true", help="Verbose logging.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    _setup_logging(args.debug)

    analysis = AnalysisConfig(
        line_count=args.lines,
        workers=args.workers,
        sigma=args.sigma,
        kernel_size=args.kernel_size,
        normalize_edges=args.normalize_edges,
        peak_start_index=args.peak_start,
        matte_tolerance=args.tolerance,
        histogram_top_n=args.top_colors,
    )
    try:
        analysis.validate()
    except ValueError as exc:
        logger.error("Invalid options: %s", exc)
        return 1

    images = _gather_images(args.inputs, recursive=args.recursive)
    if not images:
        logger.error("No matching images found.")
        return 1

    output_dir = args.output_dir.resolve()
    output_dir.mkdir(parents=True, exist_ok=True)

    metrics_path: Optional[Path]
    if args.no_metrics:
        metrics_path = None
    else:
        metrics_path = args.metrics_path.resolve() if args.metrics_path else output_dir / "metrics.csv"

    cfg = BatchConfig(
        inputs=images,
        output_dir=output_dir,
        analysis=analysis,
        seed=args.seed,
        pitch=args.pitch,
        offset=args.offset,
        save_matte=not args.no_matte,
        diagnostics=args.diagnostics,
        metrics_path=metrics_path,
    )

    logger.info("Found %d image(s) to process -> %s", len(images), output_dir)

    records: List[dict] = []
    for image_path in images:
        try:
            record = _process_single_image(image_path, cfg)
        except ValueError as exc:
            logger.error("Invalid parameters for %s: %s", image_path.name, exc)
            return 1
        if record is not None:
            records.append(record)

    if records and cfg.metrics_path:
        _write_metrics_csv(records, cfg.metrics_path)

    return 0 if records else 1


if __name__ == "__main__":
    sys.exit(main())
