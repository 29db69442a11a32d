"""Core numerical primitives for backpropnet."""

from . import activations, context, layers, network, types

__all__ = ["activations", "context", "layers", "network", "types"]
