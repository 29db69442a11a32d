"""Asynchronous shuffled mini-batch streaming.

A producer greenlet drains the dataset into a buffer of ``batch_size``
samples, shuffles the buffer and pushes it onto a bounded queue. The
training loop consumes one sample at a time. Putting ``StopIteration`` on
the queue closes it and ends the epoch.
"""

from __future__ import annotations

import logging
from typing import Iterator, List

import gevent
import numpy as np
from gevent.queue import Queue

from ..core.types import DataSample
from ..data.registry import Dataset
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


class BatchPipeline:
    """Re-iterable epoch stream over ``dataset``.

    Each ``iter()`` rewinds the dataset and starts a fresh producer, so a
    pipeline object can be reused for every epoch of a run.
    """

    def __init__(
        self,
        dataset: Dataset,
        batch_size: int,
        *,
        rng: np.random.Generator | None = None,
    ) -> None:
        if int(batch_size) < 1:
            raise ConfigurationError(f"batch_size must be at least 1, got {batch_size}")
        self.dataset = dataset
        self.batch_size = int(batch_size)
        self.rng = rng if rng is not None else np.random.default_rng()

    def __iter__(self) -> Iterator[DataSample]:
        self.dataset.reset()
        channel: Queue = Queue(maxsize=self.batch_size)
        producer = gevent.spawn(self._produce, channel)
        try:
            for sample in channel:
                yield sample
            # Re-raises whatever stopped the producer early.
            producer.get()
        finally:
            producer.kill()

    def _produce(self, channel: Queue) -> None:
        buffer: List[DataSample] = []
        sent = 0
        try:
            sample = self.dataset.next_sample()
            while sample is not None:
                buffer.append(sample)
                if len(buffer) == self.batch_size:
                    sent += self._send(buffer, channel)
                    buffer.clear()
                sample = self.dataset.next_sample()
            sent += self._send(buffer, channel)
        except Exception:
            channel.put(StopIteration)
            raise
        channel.put(StopIteration)
        logger.debug("Producer finished after %d samples", sent)

    def _send(self, buffer: List[DataSample], channel: Queue) -> int:
        for idx in self.rng.permutation(len(buffer)):
            channel.put(buffer[idx])
        return len(buffer)


__all__ = ["BatchPipeline"]
