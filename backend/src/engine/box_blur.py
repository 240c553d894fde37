"""Separable box blur — one horizontal + vertical sliding-window pass over RGBA.

The buffer is a flat, row-major float array of ``width * height * 4`` samples.
Out-of-range window reads replicate the first/last sample of the line.

Two strategies:
- in-place (default): the running sum subtracts samples that were already
  overwritten earlier in the same sweep. Slightly less accurate than a true
  box blur, but needs no second buffer. This is the reference output.
- buffered: every window reads only pre-sweep values (cumulative sums over an
  edge-padded copy of the lines).

Each row of a sweep is independent of the others, so rows (and columns in
the vertical sweep) are processed together as numpy vectors.
"""

import logging
import numbers
from enum import Enum

import numpy as np

logger = logging.getLogger(__name__)

CHANNELS = 4
RGB_CHANNELS = 3


class LinePolicy(Enum):
    IDENTITY = "identity"
    MEAN = "mean"
    SLIDE = "slide"


def line_policy(radius: int, length: int) -> LinePolicy:
    """How a sweep treats every line of the given length.

    A window that covers the whole line collapses to the line's mean.
    """
    if radius == 0:
        return LinePolicy.IDENTITY
    if radius >= length / 2:
        return LinePolicy.MEAN
    return LinePolicy.SLIDE


def channel_count(skip_alpha: bool) -> int:
    return RGB_CHANNELS if skip_alpha else CHANNELS


def validate_pass_args(buffer: np.ndarray, width: int, height: int, radius: int):
    """Raise on arguments that would read or write outside the buffer."""
    for name, value in (("width", width), ("height", height)):
        if isinstance(value, bool) or not isinstance(value, numbers.Integral):
            raise TypeError(f"{name} must be an int, got {type(value).__name__}")
        if value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")
    if isinstance(radius, bool) or not isinstance(radius, numbers.Integral):
        raise TypeError(f"radius must be an int, got {type(radius).__name__}")
    if radius < 0:
        raise ValueError(f"radius must be >= 0, got {radius}")
    if not isinstance(buffer, np.ndarray):
        raise TypeError(f"buffer must be a numpy array, got {type(buffer).__name__}")
    if not np.issubdtype(buffer.dtype, np.floating):
        raise TypeError(f"buffer must hold floating samples, got {buffer.dtype}")
    if buffer.ndim != 1 or not buffer.flags.c_contiguous or not buffer.flags.writeable:
        raise ValueError("buffer must be a flat, contiguous, writeable array")
    expected = width * height * CHANNELS
    if buffer.size != expected:
        raise ValueError(
            f"buffer holds {buffer.size} samples, expected {expected} "
            f"for {width}x{height} RGBA"
        )


def _slide_in_place(lines: np.ndarray, radius: int):
    """Sliding-window average along axis 1, overwriting samples as it goes.

    ``lines`` is a (n_lines, length, channels) view into the pixel buffer.
    """
    last = lines.shape[1] - 1
    inverse_area = 1.0 / (radius + radius + 1)

    # Window centred one step before the line start: [-radius - 1, radius - 1]
    accumulator = lines[:, 0, :] * (radius + 2)
    for i in range(1, radius):
        accumulator += lines[:, min(i, last), :]

    for target in range(last + 1):
        next_index = min(target + radius, last)
        last_index = max(target - radius - 1, 0)
        accumulator += lines[:, next_index, :] - lines[:, last_index, :]
        lines[:, target, :] = accumulator * inverse_area


def _slide_buffered(lines: np.ndarray, radius: int):
    """Sliding-window average along axis 1 reading only pre-sweep values."""
    length = lines.shape[1]
    window = radius + radius + 1
    # One extra leading sample so cs[j + window] - cs[j] spans [j - r, j + r]
    padded = np.pad(lines, ((0, 0), (radius + 1, radius), (0, 0)), mode="edge")
    cs = np.cumsum(padded, axis=1)
    lines[...] = (cs[:, window:, :] - cs[:, :length, :]) / window


def _sweep(lines: np.ndarray, radius: int, policy: LinePolicy, in_place: bool):
    if policy is LinePolicy.IDENTITY:
        return
    if policy is LinePolicy.MEAN:
        lines[...] = lines.mean(axis=1, keepdims=True)
    elif in_place:
        _slide_in_place(lines, radius)
    else:
        _slide_buffered(lines, radius)


def box_blur_pass(
    buffer: np.ndarray,
    width: int,
    height: int,
    radius: int,
    skip_alpha: bool = False,
    *,
    in_place: bool = True,
):
    """Box blur ``buffer`` in place: horizontal sweep, then vertical sweep.

    Args:
        buffer:     Flat float RGBA samples, length width * height * 4.
        width:      Image width in pixels.
        height:     Image height in pixels.
        radius:     Box radius; the window spans 2 * radius + 1 samples.
        skip_alpha: Leave channel 3 untouched.
        in_place:   Use the aliased in-place strategy (reference output).
                    False reads only pre-sweep values.

    Raises:
        TypeError, ValueError: On invalid arguments, before any mutation.
    """
    validate_pass_args(buffer, width, height, radius)

    horizontal = line_policy(radius, width)
    vertical = line_policy(radius, height)
    if horizontal is LinePolicy.IDENTITY:
        return

    pixels = buffer.reshape(height, width, CHANNELS)
    channels = pixels[:, :, : channel_count(skip_alpha)]

    logger.debug(
        "Box pass r=%d on %dx%d (h=%s, v=%s, in_place=%s)",
        radius,
        width,
        height,
        horizontal.value,
        vertical.value,
        in_place,
    )

    # Rows: (height, width, c); columns: (width, height, c) view of the same data
    _sweep(channels, radius, horizontal, in_place)
    _sweep(channels.transpose(1, 0, 2), radius, vertical, in_place)
