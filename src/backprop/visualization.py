"""Plotting utilities for training progress."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Union

import matplotlib.pyplot as plt


def plot_error_history(errors: Sequence[float], path: Optional[Union[str, Path]] = None):
    """Plot the per-epoch training error on a log scale.

    The figure is saved to ``path`` and closed when a path is given; otherwise
    it is returned for further customisation.
    """

    fig, ax = plt.subplots()
    ax.plot(range(1, len(errors) + 1), errors)
    ax.set_xlabel("Epoch")
    ax.set_ylabel("Error")
    if errors and min(errors) > 0:
        ax.set_yscale("log")
    ax.set_title("Training Error")
    fig.tight_layout()
    if path is not None:
        fig.savefig(path)
        plt.close(fig)
        return None
    return fig
