"""Configuration dataclasses for the backpropagation trainer."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError


@dataclass(slots=True)
class TrainingConfig:
    """Hyperparameters controlling :meth:`NeuralNetwork.train`.

    Parameters
    ----------
    learning_rate:
        Step size of the per-example gradient descent update. Must be
        positive.
    max_error:
        Training stops as soon as the epoch error (half the sum of squared
        output differences over the epoch) is at or below this value.
    max_epochs:
        Upper bound on the number of epochs. ``None`` means unbounded, in
        which case only ``max_error`` can end training.
    seed:
        Optional seed for weight randomisation. Leaving it unset makes
        :meth:`NeuralNetwork.randomize` non-deterministic.
    """

    learning_rate: float = 0.1
    max_error: float = 0.01
    max_epochs: Optional[int] = None
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.learning_rate > 0:
            raise ConfigurationError("learning_rate must be positive")
        if not self.max_error > 0:
            raise ConfigurationError("max_error must be positive")
        if self.max_epochs is not None:
            if isinstance(self.max_epochs, bool) or not isinstance(self.max_epochs, int):
                raise ConfigurationError("max_epochs must be an integer or None")
            if self.max_epochs <= 0:
                raise ConfigurationError("max_epochs must be positive or None for unbounded")


__all__ = ["TrainingConfig"]
