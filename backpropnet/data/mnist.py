"""Streaming MNIST reader for the CSV distribution of the dataset.

Each row holds the digit label followed by 784 grayscale intensities in
``[0, 255]``. Rows are read lazily in chunks, so only one chunk is resident
at a time.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Optional

import numpy as np
import pandas as pd

from ..core.types import DataSample
from ..errors import DimensionError
from .registry import register_dataset
from .utils import resolve_cache_dir, scale_pixels, smoothed_target

logger = logging.getLogger(__name__)

MNIST_INPUTS = 28 * 28
MNIST_LABELS = 10


class MnistCsvDataset:
    """Dataset reading ``label,pixel0,...,pixel783`` rows from a CSV file."""

    def __init__(
        self,
        path: str | Path,
        *,
        num_inputs: int = MNIST_INPUTS,
        num_labels: int = MNIST_LABELS,
        chunk_size: int = 1024,
    ) -> None:
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"MNIST CSV not found: {self.path}")
        self._num_inputs = int(num_inputs)
        self._num_labels = int(num_labels)
        self.chunk_size = int(chunk_size)
        self._reader: Optional[pd.io.parsers.TextFileReader] = None
        self._rows: Optional[Iterator[np.ndarray]] = None

    def num_inputs(self) -> int:
        return self._num_inputs

    def num_labels(self) -> int:
        return self._num_labels

    def _open(self) -> None:
        self._reader = pd.read_csv(
            self.path, header=None, chunksize=self.chunk_size, dtype=np.float64
        )
        self._rows = self._iter_rows(self._reader)

    @staticmethod
    def _iter_rows(reader: pd.io.parsers.TextFileReader) -> Iterator[np.ndarray]:
        for chunk in reader:
            yield from chunk.to_numpy(dtype=np.float64)

    def next_sample(self) -> Optional[DataSample]:
        if self._rows is None:
            self._open()
        row = next(self._rows, None)  # type: ignore[arg-type]
        if row is None:
            return None
        if row.shape[0] != self._num_inputs + 1:
            raise DimensionError(
                f"{self.path.name}: row has {row.shape[0] - 1} pixels, "
                f"expected {self._num_inputs}"
            )
        label = int(row[0])
        if not 0 <= label < self._num_labels:
            raise DimensionError(f"{self.path.name}: label {label} out of range")
        return DataSample(
            label=label,
            input=scale_pixels(row[1:]),
            target=smoothed_target(label, self._num_labels),
        )

    def reset(self) -> None:
        self.close()
        self._open()

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
        self._reader = None
        self._rows = None


def write_mnist_fixture(
    path: str | Path,
    n_samples: int = 200,
    *,
    seed: int = 0,
    num_inputs: int = MNIST_INPUTS,
    num_labels: int = MNIST_LABELS,
) -> Path:
    """Write a deterministic MNIST-like CSV for offline runs.

    Every class gets its own fixed prototype image; samples are noisy copies
    of the prototype for their label, so the fixture is learnable.
    """

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    rng = np.random.default_rng(seed)
    prototypes = rng.integers(0, 256, size=(num_labels, num_inputs))
    labels = np.arange(n_samples) % num_labels
    noise = rng.integers(-32, 33, size=(n_samples, num_inputs))
    pixels = np.clip(prototypes[labels] + noise, 0, 255)
    frame = pd.DataFrame(np.column_stack([labels, pixels]).astype(np.int64))
    frame.to_csv(path, header=False, index=False)
    return path


@register_dataset("mnist_csv")
def build_mnist_csv(
    *,
    path: str | Path | None = None,
    cache_dir: str | Path | None = None,
    n_samples: int = 200,
    seed: int = 0,
    chunk_size: int = 1024,
) -> MnistCsvDataset:
    """Open ``path`` or, without one, an offline fixture in the cache dir."""

    if path is None:
        fixture = resolve_cache_dir(cache_dir) / f"mnist_fixture_{n_samples}_{seed}.csv"
        if not fixture.exists():
            logger.info("Writing offline MNIST fixture to %s", fixture)
            write_mnist_fixture(fixture, n_samples, seed=seed)
        path = fixture
    return MnistCsvDataset(path, chunk_size=chunk_size)


__all__ = ["MNIST_INPUTS", "MNIST_LABELS", "MnistCsvDataset", "build_mnist_csv", "write_mnist_fixture"]
