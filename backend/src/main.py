"""Process bootstrap — logging, Sentry and blur defaults from the environment."""

from config import BlurSettings, init_sentry
from diagnostics import init_diagnostics
from engine.pipeline import configure


def init_runtime(env: dict | None = None) -> BlurSettings:
    """Initialize diagnostics and Sentry, then install env-derived blur settings."""
    init_diagnostics()
    init_sentry()
    return configure(BlurSettings.from_env(env))
