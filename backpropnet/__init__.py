"""backpropnet public API."""

from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.activations import ActivationKind
from .core.network import HiddenLayerSpec, Network, NetworkSettings, construct
from .core.types import DataSample, EvaluationResult, RunResult
from .errors import (
    ConfigurationError,
    DimensionError,
    NetworkError,
    SerializationError,
    UnsupportedActivationError,
)
from .persistence import from_file, to_file
from .training.batching import BatchPipeline
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer

__all__ = [
    "ActivationKind",
    "BatchPipeline",
    "ConfigurationError",
    "DataSample",
    "DimensionError",
    "EvaluationResult",
    "HiddenLayerSpec",
    "Network",
    "NetworkError",
    "NetworkSettings",
    "RunResult",
    "SerializationError",
    "Trainer",
    "UnsupportedActivationError",
    "activations",
    "construct",
    "from_file",
    "load_preset",
    "presets",
    "run_pipeline",
    "to_file",
    "types",
]
