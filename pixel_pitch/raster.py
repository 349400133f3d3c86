"""
Immutable RGBA raster used as the input of every analysis stage.

The decoded buffer boundary is ``width``, ``height`` and a row-major
``width * height * 4`` byte sequence.  Internally the pixels live in a
read-only ``(height, width, 4)`` uint8 array so stages can slice columns
and blocks without copying.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from PIL import Image

from .errors import InvalidImageError


@dataclass(frozen=True, eq=False)
class RasterImage:
    """RGBA raster, row-major with a top-left origin."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        pixels = np.asarray(self.pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise InvalidImageError(
                f"Expected an (height, width, 4) RGBA array, got shape {pixels.shape}"
            )
        if pixels.dtype != np.uint8:
            raise InvalidImageError(f"Expected uint8 pixels, got {pixels.dtype}")
        # private copy so the caller's buffer and ours never alias
        pixels = pixels.copy()
        pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)

    # ------------------------- constructors ---------------------------

    @classmethod
    def from_array(cls, array: np.ndarray) -> "RasterImage":
        """Build a raster from a grey, RGB or RGBA array.

        Grey and RGB inputs get a fully opaque alpha channel.
        """
        array = np.asarray(array)
        if array.dtype != np.uint8:
            raise InvalidImageError(f"Expected uint8 pixels, got {array.dtype}")
        if array.ndim == 2:
            array = np.repeat(array[:, :, None], 3, axis=2)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise InvalidImageError(f"Unsupported image shape {array.shape}")
        if array.shape[2] == 3:
            alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
            array = np.concatenate([array, alpha], axis=2)
        return cls(array)

    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes) -> "RasterImage":
        """Wrap a decoded RGBA byte buffer."""
        if width < 0 or height < 0:
            raise InvalidImageError(f"Negative image dimensions {width}x{height}")
        expected = width * height * 4
        if len(data) != expected:
            raise InvalidImageError(
                f"Buffer holds {len(data)} bytes, expected {expected} for {width}x{height} RGBA"
            )
        flat = np.frombuffer(bytes(data), dtype=np.uint8)
        return cls(flat.reshape(height, width, 4))

    @classmethod
    def from_pil(cls, image: Image.Image) -> "RasterImage":
        return cls(np.array(image.convert("RGBA"), dtype=np.uint8))

    # --------------------------- accessors ----------------------------

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def to_bytes(self) -> bytes:
        return self.pixels.tobytes()

    def to_pil(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.pixels))

    def __repr__(self) -> str:
        return f"RasterImage(width={self.width}, height={self.height})"


def ensure_analyzable(raster: RasterImage) -> RasterImage:
    """Reject rasters no stage can run on."""
    if raster.is_empty:
        raise InvalidImageError(
            f"Image has no pixels ({raster.width}x{raster.height})"
        )
    return raster


def as_raster(image) -> RasterImage:
    """Accept either a ``RasterImage`` or a numpy array."""
    if isinstance(image, RasterImage):
        return image
    if isinstance(image, Image.Image):
        return RasterImage.from_pil(image)
    return RasterImage.from_array(image)
