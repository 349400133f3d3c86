"""Exception types raised by the grid analysis pipeline.

All errors derive from ``ValueError`` so callers that already guard the
reconstruction with ``except ValueError`` keep working.  Results such as
"no grid detected" or an empty histogram are not errors and are reported
through the result objects instead.
"""

from __future__ import annotations


class PixelPitchError(ValueError):
    """Base class for invalid-input failures of the analysis pipeline."""


class InvalidImageError(PixelPitchError):
    """The raster is empty or its buffer does not describe an RGBA image."""


class InsufficientSignalError(PixelPitchError):
    """No sampled line produced a derivative signal, so no spectrum exists."""
