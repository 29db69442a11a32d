"""In-memory datasets backed by NumPy arrays."""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ..core.types import Array, DataSample
from ..errors import DimensionError
from .utils import TARGET_HIGH, TARGET_LOW, smoothed_target


class ArrayDataset:
    """Serve rows of ``inputs`` in order, paired with smoothed targets."""

    def __init__(
        self,
        inputs: Array,
        labels: Sequence[int] | Array,
        num_labels: int,
        *,
        low: float = TARGET_LOW,
        high: float = TARGET_HIGH,
    ) -> None:
        self.inputs = np.asarray(inputs, dtype=np.float64)
        self.labels = np.asarray(labels, dtype=np.int64).reshape(-1)
        if self.inputs.ndim != 2:
            raise DimensionError(f"inputs must be 2-D, got shape {self.inputs.shape}")
        if self.inputs.shape[0] != self.labels.shape[0]:
            raise DimensionError(
                f"{self.inputs.shape[0]} input rows but {self.labels.shape[0]} labels"
            )
        if self.labels.size and (self.labels.min() < 0 or self.labels.max() >= num_labels):
            raise DimensionError(f"labels must lie in [0, {num_labels})")
        self._num_labels = int(num_labels)
        self.low = low
        self.high = high
        self._cursor = 0

    def __len__(self) -> int:
        return int(self.inputs.shape[0])

    def num_inputs(self) -> int:
        return int(self.inputs.shape[1])

    def num_labels(self) -> int:
        return self._num_labels

    def next_sample(self) -> Optional[DataSample]:
        if self._cursor >= len(self):
            return None
        idx = self._cursor
        self._cursor += 1
        label = int(self.labels[idx])
        return DataSample(
            label=label,
            input=self.inputs[idx].copy(),
            target=smoothed_target(label, self._num_labels, low=self.low, high=self.high),
        )

    def reset(self) -> None:
        self._cursor = 0

    def close(self) -> None:
        pass


__all__ = ["ArrayDataset"]
