"""Activation registry for backpropnet.

Every activation exposes an in-place ``forward`` transform and a
``derivative`` that is evaluated on the *activated* output rather than on
the raw weighted sum.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from ..errors import UnsupportedActivationError
from .types import Array

ForwardFn = Callable[[Array], None]
DerivativeFn = Callable[[Array], Array]


class ActivationKind(enum.IntEnum):
    """Activation kinds with their persisted integer codes."""

    SIGMOID = 0
    TANH = 1
    RELU = 2
    LEAKY_RELU = 3
    SOFTMAX = 4

    @classmethod
    def parse(cls, value: "ActivationKind | int | str") -> "ActivationKind":
        """Resolve an integer code or a (case-insensitive) name."""

        if isinstance(value, cls):
            return value
        if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            try:
                return cls(int(value))
            except ValueError:
                raise UnsupportedActivationError(
                    f"Unknown activation code: {value}"
                ) from None
        if isinstance(value, str):
            key = value.strip().lower().replace("-", "_")
            key = _ALIASES.get(key, key)
            for kind in cls:
                if kind.name.lower() == key:
                    return kind
        raise UnsupportedActivationError(f"Unknown activation: {value!r}")


_ALIASES = {
    "leakyrelu": "leaky_relu",
    "lrelu": "leaky_relu",
}


def sigmoid(x: Array) -> None:
    with np.errstate(over="ignore"):
        np.negative(x, out=x)
        np.exp(x, out=x)
        x += 1.0
        np.reciprocal(x, out=x)


def sigmoid_deriv(a: Array) -> Array:
    return a * (1.0 - a)


def tanh(x: Array) -> None:
    np.tanh(x, out=x)


def tanh_deriv(a: Array) -> Array:
    return 1.0 - a * a


def relu(x: Array) -> None:
    np.maximum(x, 0.0, out=x)


def relu_deriv(a: Array) -> Array:
    return np.where(np.asarray(a) < 0, 0.0, 1.0)


def leaky_relu(x: Array) -> None:
    np.multiply(x, 0.01, out=x, where=x < 0)


def leaky_relu_deriv(a: Array) -> Array:
    return np.where(np.asarray(a) < 0, 0.01, 1.0)


def softmax(x: Array) -> None:
    x -= x.max()
    np.exp(x, out=x)
    x /= x.sum()


def softmax_deriv(a: Array) -> Array:
    # Diagonal of the Jacobian only; off-diagonal terms are ignored.
    return a * (1.0 - a)


@dataclass(frozen=True)
class Activation:
    """Forward transform and derivative bound to an :class:`ActivationKind`."""

    kind: ActivationKind
    forward: ForwardFn
    derivative: DerivativeFn

    @property
    def name(self) -> str:
        return self.kind.name.lower()


class ActivationRegistry:
    """Central registry for activation functions."""

    def __init__(self) -> None:
        self._registry: Dict[ActivationKind, Activation] = {}

    def register(
        self, kind: ActivationKind, forward: ForwardFn, derivative: DerivativeFn
    ) -> None:
        self._registry[kind] = Activation(kind, forward, derivative)

    def get(self, kind: ActivationKind | int | str) -> Activation:
        resolved = ActivationKind.parse(kind)
        try:
            return self._registry[resolved]
        except KeyError:
            available = ", ".join(self.names())
            raise UnsupportedActivationError(
                f"Activation {resolved.name} is not registered. Available: {available}"
            ) from None

    def names(self) -> Iterable[str]:
        return [kind.name.lower() for kind in sorted(self._registry)]


REGISTRY = ActivationRegistry()
REGISTRY.register(ActivationKind.SIGMOID, sigmoid, sigmoid_deriv)
REGISTRY.register(ActivationKind.TANH, tanh, tanh_deriv)
REGISTRY.register(ActivationKind.RELU, relu, relu_deriv)
REGISTRY.register(ActivationKind.LEAKY_RELU, leaky_relu, leaky_relu_deriv)
REGISTRY.register(ActivationKind.SOFTMAX, softmax, softmax_deriv)


def resolve(kind: ActivationKind | int | str) -> Activation:
    """Return the registered :class:`Activation` for ``kind``."""

    return REGISTRY.get(kind)


__all__ = [
    "Activation",
    "ActivationKind",
    "ActivationRegistry",
    "REGISTRY",
    "resolve",
]
