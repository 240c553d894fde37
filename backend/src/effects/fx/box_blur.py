"""Box blur effect — a single separable box pass of a fixed radius."""

import numpy as np

from engine.box_blur import box_blur_pass
from engine.pipeline import as_pixel_buffer

EFFECT_ID = "fx.box_blur"
EFFECT_NAME = "Box Blur"
EFFECT_CATEGORY = "blur"

PARAMS: dict = {
    "radius": {
        "type": "int",
        "min": 0,
        "max": 100,
        "default": 2,
        "label": "Radius",
        "unit": "px",
        "curve": "linear",
        "description": "Window spans 2 * radius + 1 pixels",
    },
    "passes": {
        "type": "int",
        "min": 1,
        "max": 5,
        "default": 1,
        "label": "Passes",
        "unit": "",
        "curve": "linear",
        "description": "Repeated passes soften toward a gaussian",
    },
    "preserve_alpha": {
        "type": "bool",
        "default": True,
        "label": "Preserve Alpha",
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
    """Apply box blur passes. Stateless."""
    radius = max(0, min(100, int(params.get("radius", 2))))
    passes = max(1, min(5, int(params.get("passes", 1))))
    preserve_alpha = bool(params.get("preserve_alpha", True))

    if radius == 0:
        return frame.copy(), None

    h, w = frame.shape[:2]
    buffer = as_pixel_buffer(frame)
    for _ in range(passes):
        box_blur_pass(buffer, w, h, radius, preserve_alpha)
    output = np.clip(np.rint(buffer), 0, 255).astype(np.uint8).reshape(h, w, 4)
    return output, None
