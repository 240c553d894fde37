"""Tests for effect container — failure containment and output validation."""

from unittest.mock import patch

import numpy as np
import pytest

from effects.fx.gaussian_blur import apply as blur_apply
from engine.container import EffectContainer

pytestmark = pytest.mark.smoke

KW = {"frame_index": 3, "seed": 0, "resolution": (40, 30)}


def _frame(h=30, w=40):
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, (h, w, 4), dtype=np.uint8)


def test_container_runs_effect():
    container = EffectContainer(blur_apply, "fx.gaussian_blur")
    frame = _frame()
    output, state = container.process(frame, {"strength": 2.0}, None, **KW)
    expected, _ = blur_apply(frame, {"strength": 2.0}, None, **KW)
    np.testing.assert_array_equal(output, expected)
    assert state is None
    assert container.last_error is None


def test_container_drops_nan_params():
    container = EffectContainer(blur_apply, "fx.gaussian_blur")
    frame = _frame()
    output, _ = container.process(frame, {"strength": float("nan")}, None, **KW)
    expected, _ = blur_apply(frame, {}, None, **KW)
    np.testing.assert_array_equal(output, expected)
    assert container.last_error is None


def test_container_contains_exception():
    def boom(frame, params, state_in, **kw):
        raise RuntimeError("kaboom")

    container = EffectContainer(boom, "fx.boom")
    frame = _frame()
    with patch("engine.container._capture_with_context") as capture:
        output, state = container.process(frame, {}, {"k": 1}, **KW)
    np.testing.assert_array_equal(output, frame)
    assert output is not frame
    assert state == {"k": 1}
    assert isinstance(container.last_error, RuntimeError)
    capture.assert_called_once()
    assert capture.call_args[0][1] == "fx.boom"


def test_container_rejects_wrong_shape():
    def shrink(frame, params, state_in, **kw):
        return frame[:10], None

    container = EffectContainer(shrink, "fx.shrink")
    frame = _frame()
    with patch("engine.container._capture_with_context"):
        output, _ = container.process(frame, {}, None, **KW)
    np.testing.assert_array_equal(output, frame)
    assert isinstance(container.last_error, ValueError)


def test_container_rejects_non_array():
    container = EffectContainer(lambda f, p, s, **kw: ([], None), "fx.list")
    with patch("engine.container._capture_with_context"):
        container.process(_frame(), {}, None, **KW)
    assert isinstance(container.last_error, TypeError)


def test_container_clips_float_output():
    def float_out(frame, params, state_in, **kw):
        out = np.full(frame.shape, 300.0)
        out[0, 0, 0] = -4.0
        out[0, 0, 1] = 12.6
        return out, None

    container = EffectContainer(float_out, "fx.float")
    output, _ = container.process(_frame(), {}, None, **KW)
    assert output.dtype == np.uint8
    assert output[0, 0, 0] == 0
    assert output[0, 0, 1] == 13
    assert output[1, 1, 1] == 255
    assert container.last_error is None


def test_error_resets_between_calls():
    calls = {"n": 0}

    def flaky(frame, params, state_in, **kw):
        calls["n"] += 1
        if calls["n"] == 1:
            raise ValueError("first")
        return frame.copy(), None

    container = EffectContainer(flaky, "fx.flaky")
    with patch("engine.container._capture_with_context"):
        container.process(_frame(), {}, None, **KW)
    assert container.last_error is not None
    container.process(_frame(), {}, None, **KW)
    assert container.last_error is None
