"""Effect container — runs a pure effect function and contains its failures."""

import logging
import math

import numpy as np
import sentry_sdk

logger = logging.getLogger(__name__)


def _capture_with_context(e: Exception, effect_id: str, extra: dict):
    """Capture exception to Sentry with effect-level context and fingerprint dedup."""
    with sentry_sdk.new_scope() as scope:
        scope.set_tag("effect_id", effect_id)
        scope.fingerprint = ["effect-crash", effect_id, type(e).__name__]
        scope.set_context("effect", extra)
        sentry_sdk.capture_exception(e, scope=scope)


class EffectContainer:
    """Wraps an effect's apply() so a failing blur never breaks the caller.

    On failure ``last_error`` holds the exception and the input frame is
    returned unchanged (as a copy).
    """

    def __init__(self, effect_fn, effect_id: str):
        self.effect_fn = effect_fn
        self.effect_id = effect_id
        self.last_error: Exception | None = None

    def _fail(self, e: Exception, ctx: dict, what: str, frame_index: int):
        self.last_error = e
        _capture_with_context(e, self.effect_id, ctx)
        logger.error(
            "Effect %s %s on frame %d: %s",
            self.effect_id,
            what,
            frame_index,
            type(e).__name__,
        )
        logger.debug("Effect %s error detail: %s", self.effect_id, e)

    def process(
        self,
        frame: np.ndarray,
        params: dict,
        state_in: dict | None,
        *,
        frame_index: int,
        seed: int,
        resolution: tuple[int, int],
    ) -> tuple[np.ndarray, dict | None]:
        self.last_error = None

        # NaN/Inf params are dropped so the effect falls back to its default
        effect_params = {
            k: v
            for k, v in params.items()
            if not (isinstance(v, float) and (math.isnan(v) or math.isinf(v)))
        }

        # Context for Sentry (keys only, no values)
        sentry_ctx = {
            "frame_index": frame_index,
            "param_keys": list(effect_params.keys()),
            "resolution": resolution,
            "frame_shape": list(frame.shape),
        }

        try:
            output, state_out = self.effect_fn(
                frame,
                effect_params,
                state_in,
                frame_index=frame_index,
                seed=seed,
                resolution=resolution,
            )
        except Exception as e:
            self._fail(e, sentry_ctx, "failed", frame_index)
            return frame.copy(), state_in

        try:
            if not isinstance(output, np.ndarray):
                raise TypeError(
                    f"Effect returned {type(output).__name__}, expected ndarray"
                )
            if output.shape != frame.shape:
                raise ValueError(
                    f"Effect returned shape {output.shape}, expected {frame.shape}"
                )
        except (TypeError, ValueError) as e:
            self._fail(e, sentry_ctx, "produced invalid output", frame_index)
            return frame.copy(), state_in

        if output.dtype != np.uint8:
            output = np.clip(np.rint(output), 0, 255).astype(np.uint8)
        return output, state_out
