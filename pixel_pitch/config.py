"""Analysis configuration: stage defaults and the runtime config object."""

from __future__ import annotations

from dataclasses import asdict, dataclass


# ---------------------------------------------------------------------------
# Stage defaults
# ---------------------------------------------------------------------------
DEFAULT_LINE_COUNT = 30

# Gaussian smoothing of the combined spectrum
DEFAULT_SIGMA = 2.0
DEFAULT_KERNEL_SIZE = 7

# Bins below this index are DC / very low frequency and never win
DEFAULT_PEAK_START = 5

# Upper bound on the combined spectrum length
MAX_SPECTRUM_BINS = 10000

# Per-channel tolerance when matching the background colour
DEFAULT_MATTE_TOLERANCE = 5

# Colours listed in summaries and charts
DEFAULT_TOP_COLORS = 20


@dataclass
class AnalysisConfig:
    """Tunable parameters for one analysis run."""
    # Line sampling
    line_count: int = DEFAULT_LINE_COUNT
    workers: int = 1

    # Spectrum
    sigma: float = DEFAULT_SIGMA
    kernel_size: int = DEFAULT_KERNEL_SIZE
    normalize_edges: bool = False
    peak_start_index: int = DEFAULT_PEAK_START
    max_spectrum_bins: int = MAX_SPECTRUM_BINS

    # Background removal
    matte_tolerance: int = DEFAULT_MATTE_TOLERANCE

    # Presentation
    histogram_top_n: int = DEFAULT_TOP_COLORS

    def validate(self) -> "AnalysisConfig":
        if self.line_count < 1:
            raise ValueError(f"line_count must be >= 1, got {self.line_count}")
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.sigma <= 0:
            raise ValueError(f"sigma must be positive, got {self.sigma}")
        if self.kernel_size < 1:
            raise ValueError(f"kernel_size must be >= 1, got {self.kernel_size}")
        if self.peak_start_index < 0:
            raise ValueError(f"peak_start_index must be >= 0, got {self.peak_start_index}")
        if self.max_spectrum_bins < 1:
            raise ValueError(f"max_spectrum_bins must be >= 1, got {self.max_spectrum_bins}")
        if not 0 <= self.matte_tolerance <= 255:
            raise ValueError(f"matte_tolerance must be in [0, 255], got {self.matte_tolerance}")
        if self.histogram_top_n < 0:
            raise ValueError(f"histogram_top_n must be >= 0, got {self.histogram_top_n}")
        return self

    def to_dict(self) -> dict:
        return asdict(self)
