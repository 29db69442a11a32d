"""Dense weight layers."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from ..errors import DimensionError
from .activations import Activation, ActivationKind, resolve
from .types import Array


@dataclass(eq=False)
class WeightLayer:
    """Weights connecting ``left_size`` nodes to ``right_size`` nodes.

    The matrix has shape ``(right_size, left_size)`` so that a forward step is
    ``matrix @ inputs``.
    """

    left_size: int
    right_size: int
    activation: ActivationKind
    matrix: Array = field(repr=False)
    _activation: Activation = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.activation = ActivationKind.parse(self.activation)
        self._activation = resolve(self.activation)
        self.matrix = np.asarray(self.matrix, dtype=np.float64)
        expected = (self.right_size, self.left_size)
        if self.matrix.shape != expected:
            raise DimensionError(
                f"Weight matrix has shape {self.matrix.shape}, expected {expected}"
            )

    @classmethod
    def random(
        cls,
        left_size: int,
        right_size: int,
        activation: ActivationKind | int | str,
        rng: np.random.Generator,
    ) -> "WeightLayer":
        """Draw weights from N(0, 1) scaled by ``sqrt(2 / (left + right))``."""

        scale = np.sqrt(2.0 / (left_size + right_size))
        matrix = rng.standard_normal((right_size, left_size)) * scale
        return cls(left_size, right_size, activation, matrix)

    def forward(self, values: Array) -> None:
        self._activation.forward(values)

    def derivative(self, activated: Array) -> Array:
        return self._activation.derivative(activated)

    def parameter_count(self) -> int:
        return int(self.matrix.size)


__all__ = ["WeightLayer"]
