"""Runtime configuration — blur defaults from the environment, Sentry init."""

import logging
import math
import os
from dataclasses import dataclass

import sentry_sdk

from _version import __version__

logger = logging.getLogger(__name__)

DEFAULT_STRENGTH = 2.0
DEFAULT_DOWNSCALE_FACTOR = 0.5
DEFAULT_RADIUS_CACHE_SIZE = 256

MODE_FAST = "fast"  # in-place sweeps, reference output
MODE_EXACT = "exact"  # buffered sweeps, textbook box blur
MODES = (MODE_FAST, MODE_EXACT)


def _env_float(env: dict, key: str, default: float) -> float:
    raw = env.get(key, "")
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}") from None
    if math.isnan(value) or math.isinf(value) or value <= 0:
        raise ValueError(f"{key} must be a positive finite number, got {raw!r}")
    return value


def _env_int(env: dict, key: str, default: int) -> int:
    raw = env.get(key, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{key} must be >= 0, got {raw!r}")
    return value


@dataclass(frozen=True)
class BlurSettings:
    """Defaults applied to blur requests that leave an option unset."""

    default_strength: float = DEFAULT_STRENGTH
    downscale_factor: float = DEFAULT_DOWNSCALE_FACTOR
    radius_cache_size: int = DEFAULT_RADIUS_CACHE_SIZE
    mode: str = MODE_FAST

    def __post_init__(self):
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {self.mode!r}")

    @property
    def in_place(self) -> bool:
        return self.mode == MODE_FAST

    @classmethod
    def from_env(cls, env: dict | None = None) -> "BlurSettings":
        """Read GAUSSBLUR_* variables. Unset or empty values keep defaults."""
        env = os.environ if env is None else env
        return cls(
            default_strength=_env_float(
                env, "GAUSSBLUR_DEFAULT_STRENGTH", DEFAULT_STRENGTH
            ),
            downscale_factor=_env_float(
                env, "GAUSSBLUR_DOWNSCALE_FACTOR", DEFAULT_DOWNSCALE_FACTOR
            ),
            radius_cache_size=_env_int(
                env, "GAUSSBLUR_RADIUS_CACHE_SIZE", DEFAULT_RADIUS_CACHE_SIZE
            ),
            mode=env.get("GAUSSBLUR_MODE", "").strip().lower() or MODE_FAST,
        )


def init_sentry():
    """Initialize Sentry. Without SENTRY_DSN the SDK stays disabled."""
    sentry_sdk.init(
        dsn=os.environ.get("SENTRY_DSN", ""),
        release=f"gaussblur@{__version__}",
        environment=os.environ.get("SENTRY_ENV", "development"),
        send_default_pii=False,
        max_breadcrumbs=50,
    )
    logger.info("Sentry initialized (release=gaussblur@%s)", __version__)
