import threading

import numpy as np
import pytest

from backprop import (
    ConfigurationError,
    NeuralNetwork,
    ShapeMismatchError,
    TrainingConfig,
    UninitializedStateError,
)


def make_xor_dataset():
    x = [
        [0.0, 0.0],
        [0.0, 1.0],
        [1.0, 0.0],
        [1.0, 1.0],
    ]
    y = [[0.0], [1.0], [1.0], [0.0]]
    return x, y


def make_network(*layers, **config) -> NeuralNetwork:
    network = NeuralNetwork(TrainingConfig(**config))
    network.build(*layers)
    return network


def test_build_allocates_bias_augmented_layers() -> None:
    network = make_network(3, 4, 5, 2)

    assert network.layers == (3, 4, 5, 2)
    assert [len(layer) for layer in network.neurons] == [4, 5, 6, 2]
    assert [layer[-1] for layer in network.neurons[:-1]] == [1.0, 1.0, 1.0]
    assert [len(delta) for delta in network.deltas] == [4, 5, 2]
    assert [block.shape for block in network.weights] == [(4, 4), (5, 5), (6, 2)]
    assert network.weight_count == 16 + 25 + 12


def test_build_accepts_a_sequence() -> None:
    network = NeuralNetwork()
    network.build([2, 3, 1])
    assert network.layers == (2, 3, 1)


@pytest.mark.parametrize("layers", [(), (3,), (3, 0, 1), (2, -1), (2.5, 1), (True, 1)])
def test_build_rejects_malformed_topology(layers) -> None:
    network = NeuralNetwork()
    with pytest.raises(ConfigurationError):
        network.build(*layers)


def test_rebuild_discards_previous_weights() -> None:
    network = make_network(2, 2, 1)
    network.randomize()
    network.build(2, 3, 1)

    assert all(not block.any() for block in network.weights)
    with pytest.raises(UninitializedStateError):
        network.test([0.0, 1.0])


def test_randomize_draws_from_unit_interval() -> None:
    network = make_network(4, 6, 3)
    network.randomize()

    values = np.concatenate([block.ravel() for block in network.weights])
    assert np.all(values >= -1.0)
    assert np.all(values < 1.0)
    assert values.min() < 0.0 < values.max()


def test_randomize_is_not_deterministic_without_seed() -> None:
    first = make_network(4, 6, 3)
    second = make_network(4, 6, 3)
    first.randomize()
    second.randomize()
    assert not np.array_equal(first.weights[0], second.weights[0])


def test_randomize_is_reproducible_with_seed() -> None:
    first = make_network(4, 6, 3, seed=7)
    second = make_network(4, 6, 3, seed=7)
    first.randomize()
    second.randomize()
    for a, b in zip(first.weights, second.weights):
        np.testing.assert_array_equal(a, b)


def test_flat_weights_fill_stage_then_row_then_column() -> None:
    network = make_network(2, 2, 1)
    network.set_weights(list(range(9)))

    stage0, stage1 = network.weights
    np.testing.assert_array_equal(stage0, [[0, 1], [2, 3], [4, 5]])
    np.testing.assert_array_equal(stage1, [[6], [7], [8]])


def test_nested_weights_are_copied() -> None:
    network = make_network(2, 2, 1)
    nested = [[[0.1, 0.2], [0.3, 0.4], [0.5, 0.6]], [[0.7], [0.8], [0.9]]]
    network.set_weights(nested)
    nested[0][0][0] = 99.0

    assert network.weights[0][0, 0] == pytest.approx(0.1)
    assert network.weights[1][2, 0] == pytest.approx(0.9)


def test_set_weights_rejects_wrong_shapes_without_mutation() -> None:
    network = make_network(2, 2, 1)
    network.set_weights([0.5] * 9)

    with pytest.raises(ShapeMismatchError):
        network.set_weights([0.1] * 8)
    with pytest.raises(ShapeMismatchError):
        network.set_weights([[[0.1, 0.2], [0.3, 0.4], [0.5, 0.6]], [[0.7], [0.8]]])
    with pytest.raises(ShapeMismatchError):
        network.set_weights([[[0.1, 0.2], [0.3, 0.4], [0.5, 0.6]]])

    assert all(np.all(block == 0.5) for block in network.weights)


def test_use_before_build_or_initialisation_fails_fast() -> None:
    network = NeuralNetwork()
    with pytest.raises(UninitializedStateError):
        network.randomize()
    with pytest.raises(UninitializedStateError):
        network.test([0.0])

    network.build(2, 2, 1)
    x, y = make_xor_dataset()
    network.set_training_data(x)
    network.set_target(y)
    with pytest.raises(UninitializedStateError):
        network.train()


def test_train_requires_data() -> None:
    network = make_network(2, 2, 1)
    network.randomize()
    with pytest.raises(UninitializedStateError):
        network.train()
    network.set_training_data([[0.0, 1.0]])
    with pytest.raises(UninitializedStateError):
        network.train()


@pytest.mark.parametrize(
    "inputs, targets",
    [
        ([[0.0, 1.0], [1.0, 0.0]], [[1.0]]),
        ([[0.0, 1.0, 1.0]], [[1.0]]),
        ([[0.0, 1.0]], [[1.0, 0.0]]),
        ([], []),
    ],
)
def test_train_rejects_mismatched_data_without_touching_weights(inputs, targets) -> None:
    network = make_network(2, 2, 1, max_epochs=1)
    network.randomize()
    before = network.weights
    network.set_training_data(inputs)
    network.set_target(targets)

    with pytest.raises(ShapeMismatchError):
        network.train()
    for old, new in zip(before, network.weights):
        np.testing.assert_array_equal(old, new)
    assert network.final_error is None


def test_ragged_training_data_is_rejected() -> None:
    network = make_network(2, 2, 1)
    with pytest.raises(ShapeMismatchError):
        network.set_training_data([[0.0, 1.0], [1.0]])


def test_test_rejects_wrong_input_width() -> None:
    network = make_network(3, 2, 1)
    network.randomize()
    with pytest.raises(ShapeMismatchError):
        network.test([0.1, 0.2])
    with pytest.raises(ShapeMismatchError):
        network.test([[0.1, 0.2, 0.3]])


def test_forward_pass_is_deterministic_and_leaves_weights_alone() -> None:
    network = make_network(3, 5, 4, 2)
    network.randomize()
    before = network.weights

    first = network.test([0.3, -0.2, 0.9])
    network.test([1.0, 1.0, 1.0])
    second = network.test([0.3, -0.2, 0.9])

    np.testing.assert_array_equal(first, second)
    for old, new in zip(before, network.weights):
        np.testing.assert_array_equal(old, new)
    assert np.all((first > 0.0) & (first < 1.0))


def test_test_returns_a_copy() -> None:
    network = make_network(2, 2, 1)
    network.randomize()
    output = network.test([0.0, 1.0])
    output[0] = -5.0
    assert network.neurons[-1][0] != -5.0


def test_bias_slots_stay_fixed_through_training_and_inference() -> None:
    x, y = make_xor_dataset()
    network = make_network(2, 3, 3, 1, learning_rate=0.5, max_epochs=25, seed=3)
    network.randomize()
    network.set_training_data(x)
    network.set_target(y)
    network.train()
    network.test([1.0, 0.0])

    assert [layer[-1] for layer in network.neurons[:-1]] == [1.0, 1.0, 1.0]
    assert [block.shape for block in network.weights] == [(3, 3), (4, 3), (4, 1)]


def test_xor_training_terminates_within_epoch_budget() -> None:
    x, y = make_xor_dataset()
    network = make_network(2, 2, 1, learning_rate=0.5, max_error=0.01, max_epochs=3000, seed=0)
    network.randomize()
    network.set_training_data(x)
    network.set_target(y)
    history = network.train()

    assert 1 <= history.epochs <= 3000
    assert history.converged == (history.errors[-1] <= 0.01)
    if not history.converged:
        assert history.epochs == 3000
    assert network.final_error == history.errors[-1]


def test_xor_error_decreases_with_larger_hidden_layer() -> None:
    x, y = make_xor_dataset()
    network = make_network(2, 4, 1, learning_rate=0.8, max_error=0.01, max_epochs=5000, seed=42)
    network.randomize()
    network.set_training_data(x)
    network.set_target(y)
    history = network.train()

    assert history.errors[-1] < history.errors[0]


def test_unbounded_epochs_stop_once_error_is_satisfied() -> None:
    # A single output in (0, 1) cannot be off by more than 1, so the error is below 0.5.
    x, y = [[0.0, 0.0]], [[0.5]]
    network = make_network(2, 2, 1, max_error=1.0)
    assert network.max_epochs is None
    network.randomize()
    network.set_training_data(x)
    network.set_target(y)
    history = network.train()

    assert history.epochs == 1
    assert history.converged


def test_epoch_budget_of_one_runs_a_single_epoch() -> None:
    x, y = make_xor_dataset()
    network = make_network(2, 2, 1, max_error=1e-12, max_epochs=1)
    network.randomize()
    network.set_training_data(x)
    network.set_target(y)
    history = network.train()

    assert history.epochs == 1
    assert not history.converged


def test_progress_sink_receives_every_epoch() -> None:
    x, y = make_xor_dataset()
    reports = []
    network = NeuralNetwork(
        TrainingConfig(max_error=1e-12, max_epochs=5),
        progress=lambda epoch, error: reports.append((epoch, error)),
    )
    network.build(2, 2, 1)
    network.randomize()
    network.set_training_data(x)
    network.set_target(y)
    history = network.train()

    assert [epoch for epoch, _ in reports] == [1, 2, 3, 4, 5]
    assert [error for _, error in reports] == history.errors


def test_stop_event_cancels_training() -> None:
    x, y = make_xor_dataset()
    stop = threading.Event()
    network = NeuralNetwork(
        TrainingConfig(max_error=1e-12),
        progress=lambda epoch, error: stop.set() if epoch == 3 else None,
    )
    network.build(2, 2, 1)
    network.randomize()
    network.set_training_data(x)
    network.set_target(y)
    history = network.train(stop_event=stop)

    assert history.cancelled
    assert not history.converged
    assert history.epochs == 3
    assert network.final_error == history.errors[-1]


def test_hyperparameter_setters_validate() -> None:
    network = NeuralNetwork()
    network.learning_rate = 0.15
    network.max_error = 0.5
    network.max_epochs = 10
    assert network.config == TrainingConfig(learning_rate=0.15, max_error=0.5, max_epochs=10)

    with pytest.raises(ConfigurationError):
        network.learning_rate = 0.0
    with pytest.raises(ConfigurationError):
        network.max_epochs = -1
    assert network.learning_rate == 0.15
