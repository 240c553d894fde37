"""Gaussian blur effect — three box passes approximating a gaussian."""

import numpy as np

from config import MODE_EXACT, MODE_FAST
from engine.pipeline import apply_gaussian_blur, as_pixel_buffer

EFFECT_ID = "fx.gaussian_blur"
EFFECT_NAME = "Gaussian Blur"
EFFECT_CATEGORY = "blur"

PARAMS: dict = {
    "strength": {
        "type": "float",
        "min": 0.0,
        "max": 50.0,
        "default": 2.0,
        "label": "Strength",
        "unit": "px",
        "curve": "logarithmic",
        "description": "Gaussian-equivalent standard deviation",
    },
    "preserve_alpha": {
        "type": "bool",
        "default": True,
        "label": "Preserve Alpha",
        "description": "Blur only RGB and keep the alpha channel as-is",
    },
    "mode": {
        "type": "choice",
        "options": [MODE_FAST, MODE_EXACT],
        "default": MODE_FAST,
        "label": "Mode",
        "description": "fast = in-place passes, exact = buffered passes",
    },
}


def apply(
    frame: np.ndarray,
    params: dict,
    state_in: dict | None = None,
    *,
    frame_index: int,
    seed: int,
    resolution: tuple[int, int],
) -> tuple[np.ndarray, dict | None]:
    """Apply the box-approximated gaussian blur. Stateless."""
    strength = float(params.get("strength", 2.0))
    strength = max(0.0, min(50.0, strength))
    preserve_alpha = bool(params.get("preserve_alpha", True))
    mode = params.get("mode", MODE_FAST)
    if mode not in (MODE_FAST, MODE_EXACT):
        mode = MODE_FAST

    if strength == 0.0:
        return frame.copy(), None

    h, w = frame.shape[:2]
    buffer = as_pixel_buffer(frame)
    apply_gaussian_blur(
        buffer, w, h, strength, preserve_alpha, in_place=mode == MODE_FAST
    )
    output = np.clip(np.rint(buffer), 0, 255).astype(np.uint8).reshape(h, w, 4)
    return output, None
