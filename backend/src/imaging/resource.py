"""Image resources — the pixel source/sink a blur reads from and writes back to."""

import logging
import math
from pathlib import Path
from typing import Protocol, runtime_checkable

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

Size = tuple[int, int]
Origin = tuple[int, int]


@runtime_checkable
class ImageResource(Protocol):
    """Pixel-addressable image exposing flat RGBA buffers."""

    @property
    def size(self) -> Size: ...

    def resize(self, new_size: Size) -> None: ...

    def read_pixels(self, origin: Origin, size: Size) -> np.ndarray: ...

    def write_pixels(self, origin: Origin, size: Size, buffer: np.ndarray) -> None: ...


def scaled_size(size: Size, factor: float) -> Size:
    """Scale (width, height) by factor, flooring and keeping at least 1px."""
    if math.isnan(factor) or math.isinf(factor) or factor <= 0:
        raise ValueError(f"scale factor must be a positive finite number, got {factor}")
    width, height = size
    return max(1, math.floor(width * factor)), max(1, math.floor(height * factor))


def _check_region(origin: Origin, size: Size, bounds: Size):
    x, y = origin
    w, h = size
    if w <= 0 or h <= 0:
        raise ValueError(f"region size must be positive, got {size}")
    if x < 0 or y < 0 or x + w > bounds[0] or y + h > bounds[1]:
        raise ValueError(f"region {origin}+{size} outside image of size {bounds}")


class PILImageResource:
    """ImageResource backed by a Pillow RGBA image.

    Reads return float64 samples; writes round and clip to uint8.
    """

    def __init__(self, image: Image.Image):
        self.image = image if image.mode == "RGBA" else image.convert("RGBA")

    @classmethod
    def open(cls, path: str | Path) -> "PILImageResource":
        with Image.open(path) as img:
            img.load()
            return cls(img.convert("RGBA"))

    @classmethod
    def from_array(cls, frame: np.ndarray) -> "PILImageResource":
        """Wrap an (H, W, 4) uint8 frame."""
        if frame.ndim != 3 or frame.shape[2] != 4:
            raise ValueError(f"expected (H, W, 4) RGBA frame, got shape {frame.shape}")
        return cls(Image.fromarray(np.ascontiguousarray(frame, dtype=np.uint8)))

    def save(self, path: str | Path):
        self.image.save(path)

    def to_array(self) -> np.ndarray:
        return np.asarray(self.image, dtype=np.uint8).copy()

    @property
    def size(self) -> Size:
        return self.image.size

    def resize(self, new_size: Size):
        if new_size == self.image.size:
            return
        logger.debug("Resizing image %s -> %s", self.image.size, new_size)
        self.image = self.image.resize(new_size, Image.Resampling.BILINEAR)

    def read_pixels(self, origin: Origin, size: Size) -> np.ndarray:
        _check_region(origin, size, self.image.size)
        x, y = origin
        w, h = size
        region = self.image.crop((x, y, x + w, y + h))
        return np.asarray(region, dtype=np.float64).reshape(-1).copy()

    def write_pixels(self, origin: Origin, size: Size, buffer: np.ndarray):
        _check_region(origin, size, self.image.size)
        w, h = size
        samples = np.asarray(buffer)
        if samples.size != w * h * 4:
            raise ValueError(
                f"buffer holds {samples.size} samples, expected {w * h * 4} "
                f"for {w}x{h} RGBA"
            )
        pixels = np.clip(np.rint(samples), 0, 255).astype(np.uint8).reshape(h, w, 4)
        self.image.paste(Image.fromarray(pixels), origin)
