"""Training loops, batch streaming and pipeline assembly."""

from .batching import BatchPipeline
from .trainer import Trainer

__all__ = ["BatchPipeline", "Trainer"]
