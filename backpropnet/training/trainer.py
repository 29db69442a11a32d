"""Training and evaluation loops."""

from __future__ import annotations

import logging
import time
from typing import Mapping, Sequence

import numpy as np

from ..core.network import Network
from ..core.types import EvaluationResult
from ..data.registry import Dataset
from ..errors import ConfigurationError, DimensionError
from .batching import BatchPipeline

logger = logging.getLogger(__name__)


class Trainer:
    """Drive :meth:`Network.train` over a dataset, epoch by epoch.

    ``callbacks`` are objects with an ``on_epoch(epoch, metrics)`` method or
    plain callables taking the same arguments. ``rng`` controls the batch
    shuffling order.
    """

    def __init__(
        self,
        network: Network,
        *,
        rng: np.random.Generator | None = None,
        callbacks: Sequence[object] | None = None,
        chain_derivatives: bool = False,
    ) -> None:
        self.network = network
        self.rng = rng if rng is not None else np.random.default_rng()
        self.callbacks = list(callbacks or [])
        self.chain_derivatives = chain_derivatives

    def train_with_dataset(self, dataset: Dataset, batch_size: int, epochs: int) -> None:
        """Train for ``epochs`` passes over ``dataset`` and close it."""

        self._check_dataset(dataset)
        if epochs < 1:
            raise ConfigurationError(f"Number of epochs must be at least 1, got {epochs}")
        pipeline = BatchPipeline(dataset, batch_size, rng=self.rng)
        context = self.network.new_context(chain_derivatives=self.chain_derivatives)

        started = time.perf_counter()
        try:
            for epoch in range(1, epochs + 1):
                samples = 0
                squared_error = 0.0
                for sample in pipeline:
                    self.network.train(sample.input, sample.target, context)
                    squared_error += context.squared_error()
                    samples += 1
                metrics = {
                    "loss": squared_error / (samples * self.network.output_size) if samples else 0.0,
                    "samples": float(samples),
                }
                logger.info("Status: epoch %d/%d done (loss %.6f)", epoch, epochs, metrics["loss"])
                self._emit_epoch(epoch, metrics)
        finally:
            dataset.close()

        logger.info("Finished. Time elapsed: %.2fs", time.perf_counter() - started)

    def test(self, dataset: Dataset) -> EvaluationResult:
        """Classify every sample of ``dataset`` in order and close it."""

        self._check_dataset(dataset)
        predictions: list[int] = []
        correct = 0
        try:
            sample = dataset.next_sample()
            while sample is not None:
                predicted = self.network.predict(sample.input)
                predictions.append(predicted)
                if predicted == sample.label:
                    correct += 1
                sample = dataset.next_sample()
        finally:
            dataset.close()

        result = EvaluationResult(
            predictions=predictions, correct=correct, total=len(predictions)
        )
        logger.info("Percent correct: %0.2f%%", result.accuracy)
        return result

    # ------------------------------------------------------------------
    # Internal helpers

    def _check_dataset(self, dataset: Dataset) -> None:
        if dataset.num_inputs() != self.network.input_size:
            raise DimensionError(
                f"Dataset provides {dataset.num_inputs()} inputs, network has "
                f"{self.network.input_size} input nodes"
            )
        if dataset.num_labels() != self.network.output_size:
            raise DimensionError(
                f"Dataset provides {dataset.num_labels()} labels, network has "
                f"{self.network.output_size} output nodes"
            )

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


__all__ = ["Trainer"]
