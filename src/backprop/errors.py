"""Exceptions raised by the backpropagation network."""
from __future__ import annotations


class BackpropError(Exception):
    """Base class for all errors raised by :mod:`backprop`."""


class ConfigurationError(BackpropError, ValueError):
    """Raised for an invalid topology or hyperparameter."""


class ShapeMismatchError(BackpropError, ValueError):
    """Raised when data or weights disagree with the configured topology."""


class UninitializedStateError(BackpropError, RuntimeError):
    """Raised when the network is used before it has been built or initialised."""


__all__ = [
    "BackpropError",
    "ConfigurationError",
    "ShapeMismatchError",
    "UninitializedStateError",
]
