"""Pure in-memory synthetic classification data."""

from __future__ import annotations

from pathlib import Path

import numpy as np

from .memory import ArrayDataset
from .registry import register_dataset


def make_blobs(
    n_samples: int = 256,
    num_inputs: int = 8,
    num_labels: int = 3,
    *,
    seed: int = 0,
    sample_seed: int | None = None,
    spread: float = 0.15,
) -> tuple[np.ndarray, np.ndarray]:
    """Return ``(inputs, labels)`` drawn from one Gaussian cluster per class.

    ``seed`` fixes the cluster centres and ``sample_seed`` (defaulting to
    ``seed``) the noise and ordering, so a held-out split can share centres
    with its training split. Centres lie in ``[0.1, 0.9]``, the same range
    as scaled pixel intensities.
    """

    centres = np.random.default_rng(seed).uniform(0.1, 0.9, size=(num_labels, num_inputs))
    rng = np.random.default_rng(seed if sample_seed is None else sample_seed)
    labels = np.arange(n_samples) % num_labels
    inputs = centres[labels] + spread * rng.standard_normal((n_samples, num_inputs))
    order = rng.permutation(n_samples)
    return inputs[order].astype(np.float64), labels[order].astype(np.int64)


@register_dataset("synthetic")
def build_synthetic(
    *,
    n_samples: int = 256,
    num_inputs: int = 8,
    num_labels: int = 3,
    seed: int = 0,
    sample_seed: int | None = None,
    spread: float = 0.15,
    cache_dir: str | Path | None = None,
) -> ArrayDataset:
    inputs, labels = make_blobs(
        n_samples, num_inputs, num_labels, seed=seed, sample_seed=sample_seed, spread=spread
    )
    return ArrayDataset(inputs, labels, num_labels)


__all__ = ["build_synthetic", "make_blobs"]
