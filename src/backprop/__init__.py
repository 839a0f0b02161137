"""Feed-forward neural network trained with the backpropagation algorithm."""

from .config import TrainingConfig
from .errors import BackpropError, ConfigurationError, ShapeMismatchError, UninitializedStateError
from .network import NeuralNetwork, TrainingHistory, sigmoid
from .progress import LoggingProgress, ProgressCallback, TqdmProgress, null_progress

__version__ = "0.1.0"

__all__ = [
    "TrainingConfig",
    "BackpropError",
    "ConfigurationError",
    "ShapeMismatchError",
    "UninitializedStateError",
    "NeuralNetwork",
    "TrainingHistory",
    "sigmoid",
    "LoggingProgress",
    "ProgressCallback",
    "TqdmProgress",
    "null_progress",
]
