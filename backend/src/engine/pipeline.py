"""Gaussian blur pipeline — plans box radii and runs three box passes.

Also the glue between a blur request and an image resource:
read buffer (optionally after downscaling the image) → 3 passes → write back.
Includes rolling timing stats like the rest of the engine.
"""

import logging
import math
import numbers
import threading
import time
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np
import sentry_sdk

from config import BlurSettings
from engine import box_radius
from engine.box_blur import box_blur_pass, validate_pass_args
from engine.box_radius import BoxRadii, BoxRadiusPlanner
from imaging.resource import ImageResource, scaled_size

logger = logging.getLogger(__name__)

# Blurs slower than this are logged as warnings (milliseconds)
BLUR_WARN_MS = 100

_settings = BlurSettings()
_timing_lock = threading.Lock()
_blur_timing: deque = deque(maxlen=100)

# Option names accepted by BlurRequest.from_config (camelCase and snake_case)
_CONFIG_KEYS = {
    "image": "image",
    "pixelData": "pixel_data",
    "pixel_data": "pixel_data",
    "blurRadius": "blur_radius",
    "blur_radius": "blur_radius",
    "skipAlpha": "skip_alpha",
    "skip_alpha": "skip_alpha",
    "downscaleFactor": "downscale_factor",
    "downscale_factor": "downscale_factor",
    "inPlace": "in_place",
    "in_place": "in_place",
}


def configure(settings: BlurSettings) -> BlurSettings:
    """Install process defaults and a fresh radius cache sized from settings."""
    global _settings
    _settings = settings
    box_radius.reset_default_planner(settings.radius_cache_size)
    logger.info(
        "Blur defaults: strength=%s downscale=%s mode=%s cache=%d",
        settings.default_strength,
        settings.downscale_factor,
        settings.mode,
        settings.radius_cache_size,
    )
    return settings


def get_settings() -> BlurSettings:
    return _settings


def record_timing(elapsed_ms: float):
    with _timing_lock:
        _blur_timing.append(elapsed_ms)


def get_blur_stats() -> dict:
    """Return p50/p95/max over the most recent blurs."""
    with _timing_lock:
        s = sorted(_blur_timing)
    return {
        "p50": s[len(s) // 2] if s else 0,
        "p95": s[int(len(s) * 0.95)] if len(s) >= 20 else None,
        "max": max(s) if s else 0,
        "samples": len(s),
    }


def flush_timing():
    with _timing_lock:
        _blur_timing.clear()


def as_pixel_buffer(data) -> np.ndarray:
    """Copy any RGBA sample sequence into a fresh flat float64 buffer."""
    return np.array(data, dtype=np.float64).reshape(-1)


def apply_gaussian_blur(
    buffer: np.ndarray,
    width: int,
    height: int,
    strength: float,
    skip_alpha: bool = False,
    *,
    in_place: bool = True,
    planner: BoxRadiusPlanner | None = None,
) -> BoxRadii:
    """Approximate a Gaussian blur of ``strength`` with three box passes.

    Mutates ``buffer``. Each pass consumes the previous pass's output.
    Returns the radii used.

    Raises:
        TypeError, ValueError: On invalid strength or buffer geometry,
            before the buffer is touched.
    """
    planner = planner or box_radius.default_planner
    radii = planner.plan(strength)
    return run_box_passes(buffer, width, height, radii, skip_alpha, in_place=in_place)


def run_box_passes(
    buffer: np.ndarray,
    width: int,
    height: int,
    radii: BoxRadii,
    skip_alpha: bool = False,
    *,
    in_place: bool = True,
) -> BoxRadii:
    """Run one box pass per planned radius, in order, and record the timing."""
    validate_pass_args(buffer, width, height, 0)

    t0 = time.monotonic()
    for radius in radii:
        box_blur_pass(buffer, width, height, radius, skip_alpha, in_place=in_place)
    elapsed_ms = (time.monotonic() - t0) * 1000

    record_timing(elapsed_ms)
    fields = {
        "width": width,
        "height": height,
        "radii": list(radii),
        "elapsed_ms": round(elapsed_ms, 3),
        "in_place": in_place,
        "skip_alpha": skip_alpha,
    }
    if elapsed_ms > BLUR_WARN_MS:
        logger.warning(
            "Blur of %dx%d with radii %s took %.1fms",
            width,
            height,
            tuple(radii),
            elapsed_ms,
            extra=fields,
        )
    else:
        logger.debug("Blur of %dx%d took %.1fms", width, height, elapsed_ms, extra=fields)
    return radii


def _check_positive(name: str, value: float | None):
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise TypeError(f"{name} must be a number, got {type(value).__name__}")
    if math.isnan(value) or math.isinf(value) or value <= 0:
        raise ValueError(f"{name} must be a positive finite number, got {value}")


def _check_flag(name: str, value: bool | None):
    if value is not None and not isinstance(value, bool):
        raise TypeError(f"{name} must be a bool, got {type(value).__name__}")


@dataclass
class BlurRequest:
    """One blur invocation. Unset options fall back to the process settings.

    ``pixel_data`` bypasses reading (and downscaling) the image; its geometry
    is the image's current size. A request without an image is a no-op.
    """

    image: ImageResource | None = None
    pixel_data: Any = None
    blur_radius: float | None = None
    skip_alpha: bool = False
    downscale_factor: float | None = None
    in_place: bool | None = None

    def __post_init__(self):
        _check_positive("blur_radius", self.blur_radius)
        _check_positive("downscale_factor", self.downscale_factor)
        _check_flag("skip_alpha", self.skip_alpha)
        _check_flag("in_place", self.in_place)

    @classmethod
    def from_config(cls, config: Mapping) -> "BlurRequest":
        """Build from a config mapping; None values mean "use the default"."""
        unknown = sorted(set(config) - set(_CONFIG_KEYS))
        if unknown:
            raise ValueError(f"unknown blur options: {unknown}")
        kwargs = {}
        for key, value in config.items():
            if value is not None:
                kwargs[_CONFIG_KEYS[key]] = value
        return cls(**kwargs)


def gaussian_blur(
    request: BlurRequest | Mapping,
    *,
    settings: BlurSettings | None = None,
    planner: BoxRadiusPlanner | None = None,
) -> np.ndarray | None:
    """Blur an image resource, optionally from caller-supplied pixels.

    Returns the blurred flat float64 buffer, or None when the request has no
    image. Caller-supplied pixel data is copied, never mutated, and never
    downscaled; it must match the image's current size. The result is
    written back into the image.
    """
    if isinstance(request, Mapping):
        request = BlurRequest.from_config(request)
    settings = settings or _settings
    planner = planner or box_radius.default_planner

    image = request.image
    if image is None:
        logger.debug("Blur request has no image, skipping")
        return None

    strength = request.blur_radius if request.blur_radius is not None else settings.default_strength
    in_place = request.in_place if request.in_place is not None else settings.in_place
    # Plan first so a bad strength fails before the image is resized
    radii = planner.plan(strength)

    if request.pixel_data is not None:
        buffer = as_pixel_buffer(request.pixel_data)
    else:
        factor = (
            request.downscale_factor
            if request.downscale_factor is not None
            else settings.downscale_factor
        )
        if factor != 1:
            image.resize(scaled_size(image.size, factor))
        buffer = as_pixel_buffer(image.read_pixels((0, 0), image.size))
    width, height = image.size

    validate_pass_args(buffer, width, height, 0)

    sentry_sdk.add_breadcrumb(
        category="blur",
        message=f"Gaussian blur {width}x{height}",
        data={
            "strength": strength,
            "radii": list(radii),
            "skip_alpha": request.skip_alpha,
            "in_place": in_place,
            "source": "pixel_data" if request.pixel_data is not None else "image",
        },
        level="info",
    )

    run_box_passes(buffer, width, height, radii, request.skip_alpha, in_place=in_place)

    image.write_pixels((0, 0), (width, height), buffer)
    return buffer
