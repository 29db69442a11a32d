"""Feed-forward network with an in-place backpropagation step."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Sequence

import numpy as np

from ..errors import ConfigurationError, DimensionError, UnsupportedActivationError
from .activations import ActivationKind
from .context import TrainingContext
from .layers import WeightLayer
from .types import Array

logger = logging.getLogger(__name__)

MIN_LEARNING_RATE = 1e-6
MAX_LEARNING_RATE = 100.0


@dataclass(frozen=True)
class HiddenLayerSpec:
    """Size and activation of one hidden layer."""

    size: int
    activation: ActivationKind = ActivationKind.SIGMOID


@dataclass(frozen=True)
class NetworkSettings:
    """Parameters accepted by :func:`construct`."""

    input_size: int
    output_size: int
    learning_rate: float
    hidden_layers: Sequence[HiddenLayerSpec] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, config: Mapping[str, object]) -> "NetworkSettings":
        """Build settings from a config section.

        ``hidden`` accepts either ``{"size": 64, "activation": "leaky_relu"}``
        mappings or bare integers, which default to ``activation``.
        """

        try:
            default_act = config.get("activation", "sigmoid")
            hidden: list[HiddenLayerSpec] = []
            for entry in config.get("hidden", []):  # type: ignore[union-attr]
                if isinstance(entry, Mapping):
                    size = int(entry["size"])
                    act = ActivationKind.parse(entry.get("activation", default_act))
                else:
                    size = int(entry)  # type: ignore[arg-type]
                    act = ActivationKind.parse(default_act)  # type: ignore[arg-type]
                hidden.append(HiddenLayerSpec(size=size, activation=act))
            return cls(
                input_size=int(config["input_size"]),  # type: ignore[arg-type]
                output_size=int(config["output_size"]),  # type: ignore[arg-type]
                learning_rate=float(config["learning_rate"]),  # type: ignore[arg-type]
                hidden_layers=tuple(hidden),
            )
        except UnsupportedActivationError as exc:
            raise ConfigurationError(str(exc)) from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid network settings: {exc}") from exc

    def validate(self) -> None:
        if self.input_size < 1:
            raise ConfigurationError("Need at least 1 input node")
        if self.output_size < 1:
            raise ConfigurationError("Need at least 1 output node")
        if not MIN_LEARNING_RATE <= self.learning_rate <= MAX_LEARNING_RATE:
            raise ConfigurationError(
                f"Learning rate must lie in [{MIN_LEARNING_RATE}, {MAX_LEARNING_RATE}], "
                f"got {self.learning_rate}"
            )
        if not self.hidden_layers:
            raise ConfigurationError("Need at least one hidden layer")
        for idx, spec in enumerate(self.hidden_layers):
            if spec.size < 1:
                raise ConfigurationError(f"Hidden layer {idx} needs at least 1 node")


@dataclass(eq=False)
class Network:
    """Ordered stack of :class:`WeightLayer` objects ending in a softmax."""

    input_size: int
    output_size: int
    learning_rate: float
    layers: List[WeightLayer]

    def __post_init__(self) -> None:
        if not self.layers:
            raise ConfigurationError("A network needs at least one weight layer")
        if self.layers[0].left_size != self.input_size:
            raise ConfigurationError(
                f"First layer expects {self.layers[0].left_size} inputs, "
                f"network has {self.input_size}"
            )
        for idx, (left, right) in enumerate(zip(self.layers[:-1], self.layers[1:])):
            if left.right_size != right.left_size:
                raise ConfigurationError(
                    f"Layer {idx} outputs {left.right_size} nodes but layer "
                    f"{idx + 1} expects {right.left_size}"
                )
        last = self.layers[-1]
        if last.right_size != self.output_size:
            raise ConfigurationError(
                f"Last layer outputs {last.right_size} nodes, network has "
                f"{self.output_size}"
            )
        if last.activation != ActivationKind.SOFTMAX:
            raise ConfigurationError("The output layer must use the softmax activation")

    @property
    def dims(self) -> List[int]:
        return [self.input_size] + [layer.right_size for layer in self.layers]

    def parameter_count(self) -> int:
        return int(sum(layer.parameter_count() for layer in self.layers))

    def feed_forward(self, inputs: Array) -> Array:
        """Send ``inputs`` through every layer and return the output vector."""

        current = np.asarray(inputs, dtype=np.float64)
        if current.ndim != 1 or current.shape[0] != self.input_size:
            raise DimensionError(
                f"Expected an input vector of length {self.input_size}, "
                f"got shape {current.shape}"
            )
        for layer in self.layers:
            current = layer.matrix @ current
            layer.forward(current)
        return current

    def predict(self, inputs: Array) -> int:
        """Return the index of the strongest output."""

        return int(np.argmax(self.feed_forward(inputs)))

    def train(self, inputs: Array, target: Array, context: TrainingContext) -> None:
        """Run one forward/backward pass and update the weights in place.

        No validation happens here: ``inputs``, ``target`` and ``context``
        must already match the network's dimensions.
        """

        layers = self.layers
        outputs = context.outputs
        errors = context.errors
        adjustments = context.adjustments
        deltas = context.weight_deltas

        previous = inputs
        for layer, out in zip(layers, outputs):
            np.matmul(layer.matrix, previous, out=out)
            layer.forward(out)
            previous = out

        last = len(layers) - 1
        np.subtract(target, outputs[last], out=errors[last])

        # Output to input: layer i - 1 needs the error of layer i, taken from
        # the weights before they are updated.
        for idx in range(last, -1, -1):
            layer = layers[idx]
            np.multiply(errors[idx], layer.derivative(outputs[idx]), out=adjustments[idx])
            if idx > 0:
                signal = adjustments[idx] if context.chain_derivatives else errors[idx]
                np.matmul(layer.matrix.T, signal, out=errors[idx - 1])
            previous = outputs[idx - 1] if idx > 0 else inputs
            np.outer(adjustments[idx], previous, out=deltas[idx])
            deltas[idx] *= self.learning_rate
            layer.matrix += deltas[idx]

    def new_context(self, *, chain_derivatives: bool = False) -> TrainingContext:
        return TrainingContext.for_network(self, chain_derivatives=chain_derivatives)

    def to_file(self, path: str | Path) -> None:
        from ..persistence import to_file

        to_file(self, path)

    @classmethod
    def from_file(cls, path: str | Path) -> "Network":
        from ..persistence import from_file

        return from_file(path)


def construct(
    settings: NetworkSettings, *, rng: np.random.Generator | None = None
) -> Network:
    """Build a randomly initialised :class:`Network` from ``settings``.

    The output layer always uses softmax. ``rng`` defaults to a freshly
    seeded generator, so pass one explicitly for reproducible weights.
    """

    settings.validate()
    rng = rng if rng is not None else np.random.default_rng()
    hidden = list(settings.hidden_layers)

    layers = [
        WeightLayer.random(settings.input_size, hidden[0].size, hidden[0].activation, rng)
    ]
    for left, right in zip(hidden[:-1], hidden[1:]):
        layers.append(WeightLayer.random(left.size, right.size, right.activation, rng))
    layers.append(
        WeightLayer.random(
            hidden[-1].size, settings.output_size, ActivationKind.SOFTMAX, rng
        )
    )

    network = Network(
        input_size=settings.input_size,
        output_size=settings.output_size,
        learning_rate=float(settings.learning_rate),
        layers=layers,
    )
    logger.debug("Constructed network with dimensions %s", network.dims)
    return network


__all__ = ["HiddenLayerSpec", "Network", "NetworkSettings", "construct"]
