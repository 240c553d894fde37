"""Box radius planning — three box sizes whose passes approximate a Gaussian.

Based on https://blog.ivank.net/fastest-gaussian-blur.html (n = 3 boxes).
"""

import collections
import logging
import math
import numbers
import threading
from typing import NamedTuple

logger = logging.getLogger(__name__)

# Number of box passes the radii are planned for
BOX_PASSES = 3

# Strength is an exclusive lower bound: anything above 0 is accepted
MIN_STRENGTH = 0.0

DEFAULT_CACHE_SIZE = 256


class BoxRadii(NamedTuple):
    r0: int
    r1: int
    r2: int


class RadiusCache:
    """Bounded LRU memo of strength -> BoxRadii.

    Thread-safe. Keys are the exact strength floats. ``max_entries=0``
    turns the cache into a no-op.
    """

    def __init__(self, max_entries: int = DEFAULT_CACHE_SIZE):
        if max_entries < 0:
            raise ValueError(f"max_entries must be >= 0, got {max_entries}")
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: collections.OrderedDict[float, BoxRadii] = (
            collections.OrderedDict()
        )

    def get(self, strength: float) -> BoxRadii | None:
        with self._lock:
            radii = self._entries.get(strength)
            if radii is not None:
                self._entries.move_to_end(strength)
            return radii

    def put(self, strength: float, radii: BoxRadii) -> BoxRadii:
        """Insert if absent. Returns the cached value (first writer wins)."""
        if self.max_entries == 0:
            return radii
        with self._lock:
            existing = self._entries.get(strength)
            if existing is not None:
                self._entries.move_to_end(strength)
                return existing
            self._entries[strength] = radii
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
            return radii

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, strength: float) -> bool:
        with self._lock:
            return strength in self._entries


def _validate_strength(strength: float) -> float:
    if isinstance(strength, bool) or not isinstance(strength, numbers.Real):
        raise TypeError(f"strength must be a real number, got {type(strength).__name__}")
    strength = float(strength)
    if math.isnan(strength) or math.isinf(strength):
        raise ValueError(f"strength must be finite, got {strength}")
    if strength <= MIN_STRENGTH:
        raise ValueError(f"strength must be > {MIN_STRENGTH}, got {strength}")
    return strength


def box_radii_for_strength(strength: float) -> BoxRadii:
    """Uncached radius computation for a validated strength."""
    ideal_width = math.sqrt((12 * strength * strength / BOX_PASSES) + 1)
    lower_width = math.floor(ideal_width)
    # Odd widths keep the window symmetric around the centre sample
    if lower_width % 2 == 0:
        lower_width -= 1
    upper_width = (lower_width + 1) // 2
    return BoxRadii((lower_width - 1) // 2, upper_width, upper_width)


class BoxRadiusPlanner:
    """Plans box radii for a blur strength, memoised in an owned cache."""

    def __init__(self, cache: RadiusCache | None = None):
        self.cache = cache if cache is not None else RadiusCache()

    def plan(self, strength: float) -> BoxRadii:
        strength = _validate_strength(strength)
        radii = self.cache.get(strength)
        if radii is not None:
            return radii
        radii = box_radii_for_strength(strength)
        logger.debug("Planned box radii %s for strength %s", tuple(radii), strength)
        return self.cache.put(strength, radii)


default_planner = BoxRadiusPlanner()


def reset_default_planner(max_entries: int = DEFAULT_CACHE_SIZE) -> BoxRadiusPlanner:
    """Replace the process-wide planner with one holding a fresh cache."""
    global default_planner
    default_planner = BoxRadiusPlanner(RadiusCache(max_entries))
    return default_planner


def compute_box_radii(strength: float) -> BoxRadii:
    """Three box radii approximating a Gaussian of the given strength."""
    return default_planner.plan(strength)
