"""Utility helpers for dataset loaders."""

from __future__ import annotations

import os
from pathlib import Path

import numpy as np

from ..core.types import Array

DEFAULT_CACHE_SUBDIR = Path.home() / ".cache" / "backpropnet"

TARGET_LOW = 0.01
TARGET_HIGH = 0.99


def resolve_cache_dir(cache_dir: str | Path | None = None) -> Path:
    """Resolve the effective cache directory for datasets."""

    env_dir = os.environ.get("BACKPROPNET_CACHE_DIR")
    base = Path(cache_dir or env_dir or DEFAULT_CACHE_SUBDIR)
    base.mkdir(parents=True, exist_ok=True)
    return base


def smoothed_target(
    label: int, num_labels: int, *, low: float = TARGET_LOW, high: float = TARGET_HIGH
) -> Array:
    """Return a target vector with ``high`` at ``label`` and ``low`` elsewhere."""

    target = np.full(num_labels, low, dtype=np.float64)
    target[label] = high
    return target


def scale_pixels(pixels: Array, max_value: float = 255.0) -> Array:
    """Rescale raw intensities from ``[0, max_value]`` to ``[0.01, 1.0]``."""

    values = np.asarray(pixels, dtype=np.float64)
    return values / max_value * 0.99 + 0.01


__all__ = [
    "TARGET_HIGH",
    "TARGET_LOW",
    "resolve_cache_dir",
    "scale_pixels",
    "smoothed_target",
]
