"""Core typing contracts for backpropnet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import numpy as np

Array = np.ndarray


@dataclass(frozen=True)
class DataSample:
    """A single labelled sample read from a dataset."""

    label: int
    input: Array
    target: Array


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of :meth:`backpropnet.training.trainer.Trainer.test`."""

    predictions: List[int] = field(default_factory=list)
    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> float:
        """Percentage of correctly classified samples."""

        if self.total == 0:
            return 0.0
        return self.correct / self.total * 100.0


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`backpropnet.training.pipelines.run_pipeline`."""

    epochs: int
    accuracy: float
    model_path: str
    metrics_path: str
    manifest_path: str
