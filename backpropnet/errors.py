"""Exception hierarchy for backpropnet."""

from __future__ import annotations


class NetworkError(ValueError):
    """Base class for every error raised by backpropnet."""


class ConfigurationError(NetworkError):
    """Invalid construction or training parameters."""


class DimensionError(NetworkError):
    """A vector or matrix does not have the size the network expects."""


class SerializationError(NetworkError):
    """Persisted network data is malformed or cannot be decoded."""


class UnsupportedActivationError(NetworkError):
    """An activation kind is not present in the registry."""


__all__ = [
    "ConfigurationError",
    "DimensionError",
    "NetworkError",
    "SerializationError",
    "UnsupportedActivationError",
]
