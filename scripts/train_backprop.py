"""Train a backpropagation network on one of the bundled toy datasets."""

from __future__ import annotations

import argparse
import logging
from dataclasses import asdict
from typing import List, Optional, Tuple

from backprop import LoggingProgress, NeuralNetwork, TqdmProgress, TrainingConfig

Dataset = Tuple[List[List[float]], List[List[float]]]


def _xor_dataset() -> Dataset:
    inputs = [[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]]
    targets = [[0.0], [1.0], [1.0], [0.0]]
    return inputs, targets


def _intensity_dataset() -> Dataset:
    # Eight raw intensity readings per sample with a binary label.
    inputs = [
        [94, 94, 78, 94, 109, 187, 110, 109],
        [93, 125, 94, 63, 140, 203, 157, 109],
        [78, 109, 94, 62, 141, 188, 140, 125],
        [78, 125, 62, 94, 125, 187, 125, 110],
        [110, 94, 93, 78, 141, 172, 125, 141],
        [344, 343, 313, 312, 360, 297, 343, 282],
        [297, 266, 312, 282, 281, 281, 313, 265],
        [235, 281, 297, 250, 328, 266, 281, 297],
        [234, 266, 266, 234, 281, 266, 312, 235],
        [219, 265, 235, 250, 312, 266, 297, 250],
    ]
    targets = [[0], [0], [0], [1], [0], [1], [1], [1], [1], [1]]
    return [[float(v) for v in row] for row in inputs], [[float(v) for v in row] for row in targets]


DATASETS = {
    "xor": (_xor_dataset, [2, 2, 1]),
    "intensity": (_intensity_dataset, [8, 8, 1]),
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Train a backpropagation network")
    parser.add_argument("--dataset", type=str, default="xor", choices=sorted(DATASETS))
    parser.add_argument("--layers", type=int, nargs="+", default=None, help="layer sizes, input first")
    parser.add_argument("--lr", type=float, default=0.1)
    parser.add_argument("--max-error", type=float, default=0.01)
    parser.add_argument("--max-epochs", type=int, default=50000, help="0 trains without an epoch limit")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--progress", type=str, default="tqdm", choices=["tqdm", "log", "none"])
    parser.add_argument("--log-interval", type=int, default=1000)
    parser.add_argument("--plot-path", type=str, default=None, help="save the error curve to this file")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    loader, default_layers = DATASETS[args.dataset]
    inputs, targets = loader()
    config = TrainingConfig(
        learning_rate=args.lr,
        max_error=args.max_error,
        max_epochs=args.max_epochs or None,
        seed=args.seed,
    )
    print(f"Training on {args.dataset} with {asdict(config)}")

    bar: Optional[TqdmProgress] = None
    if args.progress == "tqdm":
        bar = TqdmProgress(total=config.max_epochs)
        progress = bar
    elif args.progress == "log":
        progress = LoggingProgress(every=args.log_interval)
    else:
        progress = None

    network = NeuralNetwork(config, progress=progress)
    network.build(args.layers or default_layers)
    network.randomize()
    network.set_training_data(inputs)
    network.set_target(targets)
    try:
        history = network.train()
    finally:
        if bar is not None:
            bar.close()

    status = "converged" if history.converged else "stopped"
    print(f"{status} after {history.epochs} epochs, final error {network.final_error:.6f}")
    for example, target in zip(inputs, targets):
        output = network.test(example)
        print(f"{example} -> {[round(float(v), 4) for v in output]} (target {target})")

    if args.plot_path:
        from backprop.visualization import plot_error_history

        plot_error_history(history.errors, args.plot_path)
        print(f"Saved error curve to {args.plot_path}")


if __name__ == "__main__":
    main()
