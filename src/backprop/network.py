"""Fully-connected feed-forward network trained by online backpropagation.

Every layer except the output layer carries a trailing bias neuron fixed at
``1.0``. The weights between layer ``l`` and layer ``l + 1`` form one dense
``(n_l + 1, n_{l+1})`` block: row ``i`` holds the outgoing weights of source
neuron ``i`` and the last row holds the bias weights.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
import threading
from typing import List, Optional, Sequence

import numpy as np

from .config import TrainingConfig
from .errors import ConfigurationError, ShapeMismatchError, UninitializedStateError
from .progress import ProgressCallback, null_progress

logger = logging.getLogger(__name__)


def sigmoid(x: np.ndarray) -> np.ndarray:
    """Logistic function ``1 / (1 + e^-x)``."""

    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-x))


@dataclass
class TrainingHistory:
    """Outcome of :meth:`NeuralNetwork.train`."""

    errors: list[float] = field(default_factory=list)
    converged: bool = False
    cancelled: bool = False

    @property
    def epochs(self) -> int:
        return len(self.errors)


class NeuralNetwork:
    """Multi-layer perceptron with sigmoid units and bias neurons.

    Typical use::

        net = NeuralNetwork(TrainingConfig(learning_rate=0.5, max_epochs=5000))
        net.build(2, 2, 1)
        net.randomize()
        net.set_training_data([[0, 0], [0, 1], [1, 0], [1, 1]])
        net.set_target([[0], [1], [1], [0]])
        history = net.train()
        net.test([1, 0])

    Activations and deltas are scratch buffers owned by the instance and reused
    by every :meth:`train` and :meth:`test` call, so a single instance must not
    be used from several threads at once.
    """

    def __init__(
        self,
        config: Optional[TrainingConfig] = None,
        *,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.config = config or TrainingConfig()
        self.progress = progress or null_progress
        self.rng = np.random.default_rng(self.config.seed)
        self._layers: tuple[int, ...] = ()
        self._neurons: List[np.ndarray] = []
        self._deltas: List[np.ndarray] = []
        self._weights: List[np.ndarray] = []
        self._weights_ready = False
        self._training_set: Optional[np.ndarray] = None
        self._target: Optional[np.ndarray] = None
        self._final_error: Optional[float] = None

    # ------------------------------------------------------------------
    # Topology
    def build(self, *layers) -> None:
        """Allocate the network for the given layer sizes.

        Sizes are given input layer first, either as separate arguments
        (``build(3, 4, 1)``) or as one sequence (``build([3, 4, 1])``). Any
        previous weights are discarded; the new weights are zero and count as
        uninitialised until :meth:`randomize` or :meth:`set_weights` is called.
        """

        if len(layers) == 1 and not isinstance(layers[0], (int, np.integer)):
            layers = tuple(layers[0])
        if len(layers) < 2:
            raise ConfigurationError("a network needs at least an input and an output layer")
        for size in layers:
            if isinstance(size, bool) or not isinstance(size, (int, np.integer)) or size <= 0:
                raise ConfigurationError(f"layer sizes must be positive integers, got {size!r}")

        sizes = tuple(int(size) for size in layers)
        self._neurons = [np.zeros(size + 1) for size in sizes[:-1]]
        for size, neurons in zip(sizes, self._neurons):
            neurons[size] = 1.0
        self._neurons.append(np.zeros(sizes[-1]))
        self._deltas = [np.zeros(size) for size in sizes[1:]]
        self._weights = [np.zeros((n_in + 1, n_out)) for n_in, n_out in zip(sizes[:-1], sizes[1:])]
        self._layers = sizes
        self._weights_ready = False
        self._final_error = None
        logger.debug("built network %s with %d weights", sizes, self.weight_count)

    @property
    def layers(self) -> tuple[int, ...]:
        return self._layers

    @property
    def weight_count(self) -> int:
        return sum(block.size for block in self._weights)

    # ------------------------------------------------------------------
    # Weights
    def randomize(self) -> None:
        """Draw every weight independently from ``U[-1, 1)``."""

        self._require_built()
        for block in self._weights:
            block[...] = self.rng.uniform(-1.0, 1.0, size=block.shape)
        self._weights_ready = True

    def set_weights(self, weights) -> None:
        """Overwrite all weights.

        ``weights`` is either a flat sequence of ``weight_count`` numbers laid
        out stage by stage, row by row, column by column, or one nested block
        per stage shaped ``(n_l + 1, n_{l+1})``. Nothing is modified when the
        shape does not match.
        """

        self._require_built()
        try:
            flat = np.asarray(weights, dtype=float)
        except (TypeError, ValueError):
            flat = None

        if flat is not None and flat.ndim == 1:
            if flat.size != self.weight_count:
                raise ShapeMismatchError(f"expected {self.weight_count} weights, got {flat.size}")
            blocks = []
            offset = 0
            for block in self._weights:
                blocks.append(flat[offset:offset + block.size].reshape(block.shape))
                offset += block.size
        else:
            if len(weights) != len(self._weights):
                raise ShapeMismatchError(f"expected {len(self._weights)} weight stages, got {len(weights)}")
            blocks = []
            for stage, (block, values) in enumerate(zip(self._weights, weights)):
                try:
                    candidate = np.asarray(values, dtype=float)
                except ValueError as exc:
                    raise ShapeMismatchError(f"weight stage {stage} has rows of different lengths") from exc
                if candidate.shape != block.shape:
                    raise ShapeMismatchError(
                        f"weight stage {stage} must have shape {block.shape}, got {candidate.shape}"
                    )
                blocks.append(candidate)

        for block, values in zip(self._weights, blocks):
            block[...] = values
        self._weights_ready = True

    @property
    def weights(self) -> list[np.ndarray]:
        """Copies of the weight blocks, one per stage."""

        return [block.copy() for block in self._weights]

    @property
    def neurons(self) -> list[np.ndarray]:
        """Copies of the activation buffers, bias slots included."""

        return [layer.copy() for layer in self._neurons]

    @property
    def deltas(self) -> list[np.ndarray]:
        """Copies of the error terms of layers ``1..L``."""

        return [layer.copy() for layer in self._deltas]

    # ------------------------------------------------------------------
    # Data and hyperparameters
    def set_training_data(self, training_set: Sequence[Sequence[float]]) -> None:
        self._training_set = _as_matrix(training_set, "training set")

    def set_target(self, target: Sequence[Sequence[float]]) -> None:
        self._target = _as_matrix(target, "target set")

    @property
    def learning_rate(self) -> float:
        return self.config.learning_rate

    @learning_rate.setter
    def learning_rate(self, value: float) -> None:
        self.config = replace(self.config, learning_rate=value)

    @property
    def max_error(self) -> float:
        return self.config.max_error

    @max_error.setter
    def max_error(self, value: float) -> None:
        self.config = replace(self.config, max_error=value)

    @property
    def max_epochs(self) -> Optional[int]:
        return self.config.max_epochs

    @max_epochs.setter
    def max_epochs(self, value: Optional[int]) -> None:
        self.config = replace(self.config, max_epochs=value)

    @property
    def final_error(self) -> Optional[float]:
        """Error of the last completed epoch, ``None`` before any training."""

        return self._final_error

    # ------------------------------------------------------------------
    # Training and inference
    def train(self, stop_event: Optional[threading.Event] = None) -> TrainingHistory:
        """Run epochs until the error target or the epoch budget is reached.

        Weights are updated after every example. The epoch error is half the
        sum of squared output differences over all examples of the epoch. When
        ``stop_event`` is set, the running epoch is abandoned before its next
        example and the history is returned with ``cancelled=True``.
        """

        self._require_ready()
        inputs, targets = self._checked_training_data()
        max_epochs = self.config.max_epochs
        history = TrainingHistory()
        logger.info(
            "training %s on %d examples (learning_rate=%g, max_error=%g, max_epochs=%s)",
            self._layers,
            len(inputs),
            self.config.learning_rate,
            self.config.max_error,
            "unbounded" if max_epochs is None else max_epochs,
        )

        epoch = 0
        while True:
            error = self._run_epoch(inputs, targets, stop_event)
            if error is None:
                history.cancelled = True
                break
            epoch += 1
            history.errors.append(error)
            self._final_error = error
            logger.debug("epoch %d error %.6f", epoch, error)
            self.progress(epoch, error)
            if error <= self.config.max_error:
                history.converged = True
                break
            if max_epochs is not None and epoch >= max_epochs:
                break

        if history.cancelled:
            logger.info("training cancelled after %d epochs", epoch)
        elif history.converged:
            logger.info("converged after %d epochs with error %.6f", epoch, self._final_error)
        else:
            logger.info("epoch budget exhausted after %d epochs with error %.6f", epoch, self._final_error)
        return history

    def test(self, inputs: Sequence[float]) -> np.ndarray:
        """Forward ``inputs`` through the network and return the output activations."""

        self._require_ready()
        try:
            vector = np.asarray(inputs, dtype=float)
        except ValueError as exc:
            raise ShapeMismatchError("input must be a flat sequence of numbers") from exc
        if vector.shape != (self._layers[0],):
            raise ShapeMismatchError(f"input must have {self._layers[0]} values, got shape {vector.shape}")
        self._forward(vector)
        return self._neurons[-1].copy()

    def _run_epoch(
        self,
        inputs: np.ndarray,
        targets: np.ndarray,
        stop_event: Optional[threading.Event],
    ) -> Optional[float]:
        error_sum = 0.0
        for example, target in zip(inputs, targets):
            if stop_event is not None and stop_event.is_set():
                return None
            self._forward(example)
            error_sum += self._backward(target)
            self._update_weights()
        return error_sum / 2.0

    def _forward(self, inputs: np.ndarray) -> None:
        self._neurons[0][: self._layers[0]] = inputs
        for stage, block in enumerate(self._weights):
            width = block.shape[1]
            self._neurons[stage + 1][:width] = sigmoid(self._neurons[stage] @ block)

    def _backward(self, target: np.ndarray) -> float:
        output = self._neurons[-1]
        diff = target - output
        self._deltas[-1][:] = diff * output * (1.0 - output)

        # Hidden layers from last to first; the input layer has no delta.
        # self._deltas[i] belongs to layer i + 1.
        for layer in range(len(self._layers) - 2, 0, -1):
            width = self._layers[layer]
            y = self._neurons[layer][:width]
            back = self._weights[layer][:width] @ self._deltas[layer]
            self._deltas[layer - 1][:] = back * y * (1.0 - y)
        return float(diff @ diff)

    def _update_weights(self) -> None:
        rate = self.config.learning_rate
        for stage, block in enumerate(self._weights):
            block += rate * np.outer(self._neurons[stage], self._deltas[stage])

    def _checked_training_data(self) -> tuple[np.ndarray, np.ndarray]:
        inputs, targets = self._training_set, self._target
        if inputs is None:
            raise UninitializedStateError("training data has not been set")
        if targets is None:
            raise UninitializedStateError("target set has not been set")
        if len(inputs) == 0:
            raise ShapeMismatchError("training set is empty")
        if len(inputs) != len(targets):
            raise ShapeMismatchError(
                f"training set has {len(inputs)} examples but target set has {len(targets)}"
            )
        if inputs.ndim != 2 or inputs.shape[1] != self._layers[0]:
            raise ShapeMismatchError(f"training examples must have {self._layers[0]} values")
        if targets.ndim != 2 or targets.shape[1] != self._layers[-1]:
            raise ShapeMismatchError(f"targets must have {self._layers[-1]} values")
        return inputs, targets

    def _require_built(self) -> None:
        if not self._layers:
            raise UninitializedStateError("network has not been built; call build() first")

    def _require_ready(self) -> None:
        self._require_built()
        if not self._weights_ready:
            raise UninitializedStateError("weights are not initialised; call randomize() or set_weights()")


def _as_matrix(data: Sequence[Sequence[float]], name: str) -> np.ndarray:
    try:
        return np.asarray(data, dtype=float)
    except ValueError as exc:
        raise ShapeMismatchError(f"{name} rows must all have the same length") from exc


__all__ = ["NeuralNetwork", "TrainingHistory", "sigmoid"]
