"""Render raw digit pixels as images."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List

import numpy as np

from ..errors import DimensionError

if TYPE_CHECKING:  # pragma: no cover
    from ..data.registry import Dataset

DIGIT_SHAPE = (28, 28)


def save_digit_image(
    pixels: Iterable[float],
    path: str | Path,
    *,
    shape: tuple[int, int] = DIGIT_SHAPE,
    max_value: float = 255.0,
) -> Path:
    """Write ``pixels`` as an inverted grayscale image (dark ink on white)."""

    values = np.asarray(list(pixels), dtype=np.float64)
    if values.size != shape[0] * shape[1]:
        raise DimensionError(
            f"Expected {shape[0] * shape[1]} pixels for a {shape} image, got {values.size}"
        )
    image = 1.0 - np.clip(values / max_value, 0.0, 1.0).reshape(shape)

    import matplotlib

    matplotlib.use("Agg", force=True)
    import matplotlib.pyplot as plt

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.imsave(path, image, cmap="gray", vmin=0.0, vmax=1.0)
    return path


def export_digit_images(dataset: "Dataset", out_dir: str | Path, limit: int) -> List[Path]:
    """Save the first ``limit`` samples of ``dataset`` as ``<index>_<label>.png``.

    Sample inputs are already scaled to ``[0.01, 1.0]``.
    """

    out_dir = Path(out_dir)
    written: List[Path] = []
    dataset.reset()
    for idx in range(limit):
        sample = dataset.next_sample()
        if sample is None:
            break
        path = out_dir / f"{idx}_{sample.label}.png"
        written.append(save_digit_image(sample.input, path, max_value=1.0))
    dataset.close()
    return written


__all__ = ["DIGIT_SHAPE", "export_digit_images", "save_digit_image"]
