from __future__ import annotations

from typing import List, Mapping

import numpy as np
import pytest

from backpropnet.core.activations import ActivationKind
from backpropnet.core.layers import WeightLayer
from backpropnet.core.network import HiddenLayerSpec, Network, NetworkSettings, construct
from backpropnet.data import ArrayDataset, make_blobs
from backpropnet.errors import ConfigurationError, DimensionError
from backpropnet.training.trainer import Trainer


class _Capture:
    def __init__(self) -> None:
        self.history: List[tuple[int, Mapping[str, float]]] = []

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self.history.append((epoch, dict(metrics)))


class _CloseTracker(ArrayDataset):
    closed = 0

    def close(self) -> None:
        self.closed += 1


def _network(num_inputs=4, num_labels=3, hidden=8, lr=0.1, seed=0):
    settings = NetworkSettings(
        input_size=num_inputs,
        output_size=num_labels,
        learning_rate=lr,
        hidden_layers=(HiddenLayerSpec(hidden, ActivationKind.SIGMOID),),
    )
    return construct(settings, rng=np.random.default_rng(seed))


def _blobs(n=150, seed=0, sample_seed=None, cls=ArrayDataset):
    inputs, labels = make_blobs(n, 4, 3, seed=seed, sample_seed=sample_seed, spread=0.05)
    return cls(inputs, labels, num_labels=3)


def test_training_reduces_loss_and_reports_epochs():
    capture = _Capture()
    seen = []
    trainer = Trainer(
        _network(),
        rng=np.random.default_rng(1),
        callbacks=[capture, lambda epoch, metrics: seen.append(epoch)],
    )
    trainer.train_with_dataset(_blobs(), batch_size=16, epochs=30)

    assert [epoch for epoch, _ in capture.history] == list(range(1, 31))
    assert seen == list(range(1, 31))
    assert all(metrics["samples"] == 150 for _, metrics in capture.history)
    assert capture.history[-1][1]["loss"] < capture.history[0][1]["loss"]


def test_trained_network_classifies_held_out_blobs():
    trainer = Trainer(_network(hidden=16, lr=0.3), rng=np.random.default_rng(1))
    trainer.train_with_dataset(_blobs(), batch_size=16, epochs=40)
    result = trainer.test(_blobs(n=60, sample_seed=9))
    assert result.total == 60
    assert result.accuracy > 60.0


def test_test_reports_predictions_in_dataset_order():
    hidden = WeightLayer(2, 2, ActivationKind.RELU, np.eye(2))
    output = WeightLayer(2, 2, ActivationKind.SOFTMAX, np.eye(2))
    network = Network(input_size=2, output_size=2, learning_rate=0.1, layers=[hidden, output])
    inputs = np.array([[1.0, 0.0], [0.0, 1.0], [2.0, 0.5], [0.2, 0.9]])
    dataset = ArrayDataset(inputs, [0, 1, 1, 1], num_labels=2)

    result = Trainer(network).test(dataset)

    assert result.predictions == [0, 1, 0, 1]
    assert (result.correct, result.total) == (3, 4)
    assert result.accuracy == pytest.approx(75.0)


def test_test_on_empty_dataset():
    dataset = ArrayDataset(np.zeros((0, 4)), [], num_labels=3)
    result = Trainer(_network()).test(dataset)
    assert result.predictions == []
    assert result.accuracy == 0.0


def test_trainer_closes_datasets():
    trainer = Trainer(_network(), rng=np.random.default_rng(0))
    train_set = _blobs(n=12, cls=_CloseTracker)
    test_set = _blobs(n=6, cls=_CloseTracker)
    trainer.train_with_dataset(train_set, batch_size=4, epochs=1)
    trainer.test(test_set)
    assert train_set.closed == 1
    assert test_set.closed == 1


class _FailingDataset(_CloseTracker):
    served = 0

    def next_sample(self):
        self.served += 1
        if self.served > 3:
            raise OSError("reader failed")
        return super().next_sample()


def test_trainer_closes_datasets_when_reading_fails():
    trainer = Trainer(_network(), rng=np.random.default_rng(0))
    train_set = _blobs(n=12, cls=_FailingDataset)
    with pytest.raises(OSError, match="reader failed"):
        trainer.train_with_dataset(train_set, batch_size=4, epochs=1)
    assert train_set.closed == 1

    test_set = _blobs(n=6, cls=_FailingDataset)
    with pytest.raises(OSError, match="reader failed"):
        trainer.test(test_set)
    assert test_set.closed == 1


def test_trainer_closes_dataset_when_callback_fails():
    def _stop(epoch, metrics):
        raise RuntimeError("callback failed")

    trainer = Trainer(_network(), rng=np.random.default_rng(0), callbacks=[_stop])
    train_set = _blobs(n=12, cls=_CloseTracker)
    with pytest.raises(RuntimeError, match="callback failed"):
        trainer.train_with_dataset(train_set, batch_size=4, epochs=2)
    assert train_set.closed == 1


def test_dimension_mismatch_is_rejected():
    trainer = Trainer(_network(num_inputs=5))
    with pytest.raises(DimensionError):
        trainer.train_with_dataset(_blobs(), batch_size=4, epochs=1)
    with pytest.raises(DimensionError):
        trainer.test(_blobs())

    trainer = Trainer(_network(num_labels=4))
    with pytest.raises(DimensionError):
        trainer.train_with_dataset(_blobs(), batch_size=4, epochs=1)


def test_invalid_epochs_and_batch_size():
    trainer = Trainer(_network())
    with pytest.raises(ConfigurationError):
        trainer.train_with_dataset(_blobs(), batch_size=4, epochs=0)
    with pytest.raises(ConfigurationError):
        trainer.train_with_dataset(_blobs(), batch_size=0, epochs=1)


def test_same_seeds_give_identical_weights():
    def _run():
        trainer = Trainer(_network(seed=4), rng=np.random.default_rng(5))
        trainer.train_with_dataset(_blobs(n=40), batch_size=7, epochs=2)
        return [layer.matrix.copy() for layer in trainer.network.layers]

    for a, b in zip(_run(), _run()):
        np.testing.assert_array_equal(a, b)


def test_chain_derivatives_changes_updates():
    plain = Trainer(_network(seed=4), rng=np.random.default_rng(5))
    chained = Trainer(_network(seed=4), rng=np.random.default_rng(5), chain_derivatives=True)
    plain.train_with_dataset(_blobs(n=20), batch_size=5, epochs=1)
    chained.train_with_dataset(_blobs(n=20), batch_size=5, epochs=1)
    assert not np.allclose(plain.network.layers[0].matrix, chained.network.layers[0].matrix)
