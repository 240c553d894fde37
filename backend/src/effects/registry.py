"""Effect registry — central lookup for the blur effects, plus a run helper."""

from typing import Any, Callable

import numpy as np

EffectFn = Callable[..., tuple[Any, dict | None]]

PARAM_TYPES = {"float", "int", "bool", "choice"}

_REGISTRY: dict[str, dict] = {}


def _check_params(effect_id: str, params: dict):
    for key, pdef in params.items():
        ptype = pdef.get("type")
        if ptype not in PARAM_TYPES:
            raise ValueError(f"{effect_id}.{key}: unknown param type {ptype!r}")
        if ptype == "choice" and pdef.get("default") not in pdef.get("options", []):
            raise ValueError(f"{effect_id}.{key}: default not among options")
        if ptype in ("float", "int") and not (
            pdef["min"] <= pdef["default"] <= pdef["max"]
        ):
            raise ValueError(f"{effect_id}.{key}: default outside [min, max]")


def register(effect_id: str, fn: EffectFn, params: dict, name: str, category: str):
    """Register an effect. Raises ValueError on a malformed param schema."""
    _check_params(effect_id, params)
    _REGISTRY[effect_id] = {
        "fn": fn,
        "params": params,
        "name": name,
        "category": category,
    }


def get(effect_id: str) -> dict | None:
    """Get effect info by ID."""
    return _REGISTRY.get(effect_id)


def list_all() -> list[dict]:
    """List all registered effects with metadata."""
    return [
        {
            "id": eid,
            "name": info["name"],
            "category": info["category"],
            "params": info["params"],
        }
        for eid, info in _REGISTRY.items()
    ]


def defaults(effect_id: str) -> dict:
    """Default value of every param of an effect."""
    info = _REGISTRY.get(effect_id)
    if info is None:
        raise ValueError(f"unknown effect: {effect_id}")
    return {key: pdef.get("default") for key, pdef in info["params"].items()}


def run(
    effect_id: str,
    frame: np.ndarray,
    params: dict | None = None,
    *,
    frame_index: int = 0,
    seed: int = 0,
) -> tuple[np.ndarray, Exception | None]:
    """Run one effect through an EffectContainer.

    Returns (output_frame, error). On failure the output is a copy of the
    input and the error is the exception the effect raised.
    """
    from engine.container import EffectContainer

    info = _REGISTRY.get(effect_id)
    if info is None:
        raise ValueError(f"unknown effect: {effect_id}")
    merged = {**defaults(effect_id), **(params or {})}
    container = EffectContainer(info["fn"], effect_id)
    h, w = frame.shape[:2]
    output, _ = container.process(
        frame, merged, None, frame_index=frame_index, seed=seed, resolution=(w, h)
    )
    return output, container.last_error


def _auto_register():
    """Import and register all built-in effects."""
    from effects.fx import box_blur, gaussian_blur

    for mod in [gaussian_blur, box_blur]:
        register(
            mod.EFFECT_ID, mod.apply, mod.PARAMS, mod.EFFECT_NAME, mod.EFFECT_CATEGORY
        )


_auto_register()
