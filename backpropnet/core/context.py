"""Scratch buffers reused across training steps."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List

import numpy as np

from .types import Array

if TYPE_CHECKING:  # pragma: no cover
    from .network import Network


@dataclass
class TrainingContext:
    """Pre-sized per-layer buffers written by :meth:`Network.train`.

    A context belongs to a single training loop. ``chain_derivatives``
    switches error propagation from the default rule, which sends the raw
    error through the next layer's weights, to textbook backpropagation,
    which sends the derivative-scaled adjustment instead.
    """

    outputs: List[Array]
    errors: List[Array]
    adjustments: List[Array]
    weight_deltas: List[Array]
    chain_derivatives: bool = False

    @classmethod
    def for_network(
        cls, network: "Network", *, chain_derivatives: bool = False
    ) -> "TrainingContext":
        outputs: list[Array] = []
        errors: list[Array] = []
        adjustments: list[Array] = []
        deltas: list[Array] = []
        for layer in network.layers:
            outputs.append(np.zeros(layer.right_size))
            errors.append(np.zeros(layer.right_size))
            adjustments.append(np.zeros(layer.right_size))
            deltas.append(np.zeros((layer.right_size, layer.left_size)))
        return cls(
            outputs=outputs,
            errors=errors,
            adjustments=adjustments,
            weight_deltas=deltas,
            chain_derivatives=chain_derivatives,
        )

    def squared_error(self) -> float:
        """Sum of squared output errors from the most recent step."""

        last = self.errors[-1]
        return float(last @ last)


__all__ = ["TrainingContext"]
