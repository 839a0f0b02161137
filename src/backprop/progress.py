"""Status sinks that observe training progress.

A sink is any callable accepting ``(epoch, error)``; :meth:`NeuralNetwork.train`
invokes it once after every completed epoch with a one-indexed epoch number.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from tqdm.auto import tqdm

ProgressCallback = Callable[[int, float], None]

logger = logging.getLogger(__name__)


def null_progress(epoch: int, error: float) -> None:
    """Default sink that ignores every report."""


class LoggingProgress:
    """Emit an ``INFO`` record every ``every`` epochs."""

    def __init__(self, every: int = 1, log: Optional[logging.Logger] = None) -> None:
        if every <= 0:
            raise ValueError("every must be positive")
        self.every = every
        self.log = log or logger

    def __call__(self, epoch: int, error: float) -> None:
        if epoch % self.every == 0:
            self.log.info("epoch %d error %.6f", epoch, error)


class TqdmProgress:
    """Advance a ``tqdm`` bar once per epoch with the current error as postfix.

    ``total`` should be the epoch budget when one is set; an unbounded run
    renders as a plain counter.
    """

    def __init__(self, total: Optional[int] = None, *, desc: str = "Training", **tqdm_kwargs) -> None:
        self.bar = tqdm(total=total, desc=desc, unit="epoch", **tqdm_kwargs)

    def __call__(self, epoch: int, error: float) -> None:
        self.bar.update(epoch - self.bar.n)
        self.bar.set_postfix(error=f"{error:.6f}", refresh=False)

    def close(self) -> None:
        self.bar.close()

    def __enter__(self) -> "TqdmProgress":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = ["ProgressCallback", "null_progress", "LoggingProgress", "TqdmProgress"]
