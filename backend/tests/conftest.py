import numpy as np
import pytest

from config import BlurSettings
from engine.box_radius import BoxRadiusPlanner, RadiusCache
from engine.pipeline import configure, flush_timing


@pytest.fixture(autouse=True)
def _reset_blur_state():
    """Each test starts with default settings, an empty radius cache, no timings."""
    configure(BlurSettings())
    flush_timing()
    yield
    configure(BlurSettings())
    flush_timing()


@pytest.fixture
def planner():
    """Planner with its own empty cache."""
    return BoxRadiusPlanner(RadiusCache())


@pytest.fixture
def rgba_buffer():
    """Factory for deterministic flat float RGBA buffers."""

    def _make(w=16, h=12, seed=42):
        rng = np.random.default_rng(seed)
        return rng.integers(0, 256, w * h * 4).astype(np.float64)

    return _make


@pytest.fixture
def rgba_frame():
    """Factory for deterministic (H, W, 4) uint8 frames."""

    def _make(h=100, w=100, seed=42):
        rng = np.random.default_rng(seed)
        return rng.integers(0, 256, (h, w, 4), dtype=np.uint8)

    return _make
