"""Pipeline assembly: dataset -> network -> training -> evaluation -> artifacts."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Mapping

import numpy as np

from .. import persistence
from ..core.network import Network, NetworkSettings, construct
from ..core.types import RunResult
from ..data import registry
from ..errors import ConfigurationError
from ..reporting.artifacts import network_summary, write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from .trainer import Trainer

logger = logging.getLogger(__name__)


def _synthetic_data(n_train: int, n_test: int, num_inputs: int, num_labels: int, seed: int):
    shape = {"num_inputs": num_inputs, "num_labels": num_labels, "seed": seed}
    return {
        "train": {"name": "synthetic", "options": {"n_samples": n_train, **shape}},
        "test": {
            "name": "synthetic",
            "options": {"n_samples": n_test, "sample_seed": seed + 1, **shape},
        },
    }


def _mnist_fixture_data(n_train: int, n_test: int):
    # Without a "path" option the mnist_csv factory writes an offline fixture.
    return {
        "train": {"name": "mnist_csv", "options": {"n_samples": n_train, "seed": 0}},
        "test": {"name": "mnist_csv", "options": {"n_samples": n_test, "seed": 0}},
    }


def _hidden(activation: str, *sizes: int):
    return [{"size": size, "activation": activation} for size in sizes]


_PRESETS: Dict[str, Mapping[str, object]] = {
    "synthetic-sigmoid": {
        "data": _synthetic_data(300, 90, num_inputs=8, num_labels=3, seed=0),
        "model": {"hidden": _hidden("sigmoid", 16), "learning_rate": 0.3},
        "train": {"epochs": 10, "batch_size": 32, "seed": 7},
    },
    "synthetic-leaky-deep": {
        "data": _synthetic_data(600, 120, num_inputs=16, num_labels=4, seed=3),
        "model": {"hidden": _hidden("leaky_relu", 32, 16), "learning_rate": 0.01},
        "train": {"epochs": 10, "batch_size": 64, "seed": 11, "chain_derivatives": True},
    },
    "mnist-sigmoid": {
        "data": _mnist_fixture_data(500, 100),
        "model": {"hidden": _hidden("sigmoid", 100), "learning_rate": 0.1},
        "train": {"epochs": 2, "batch_size": 100, "seed": 1},
    },
    "mnist-leaky": {
        "data": _mnist_fixture_data(500, 100),
        "model": {"hidden": _hidden("leaky_relu", 64, 64, 32), "learning_rate": 0.0001},
        "train": {"epochs": 1, "batch_size": 5000, "seed": 1},
    },
}
for _name, _preset in _PRESETS.items():
    _preset["train"].setdefault("run_dir", f"runs/{_name}")  # type: ignore[index]
    _preset["train"].setdefault("enable_plots", False)  # type: ignore[index]


def presets() -> Mapping[str, Mapping[str, object]]:
    return {name: deepcopy(cfg) for name, cfg in _PRESETS.items()}


def load_preset(name: str) -> Mapping[str, object]:
    try:
        return deepcopy(_PRESETS[name])
    except KeyError:
        available = ", ".join(sorted(_PRESETS))
        raise KeyError(f"Unknown preset: {name}. Available presets: {available}") from None


def build_dataset(data_cfg: Mapping[str, object], cache_dir: str | Path | None = None):
    """Instantiate a dataset from a ``{"name": ..., "options": {...}}`` section."""

    try:
        name = str(data_cfg["name"])
    except KeyError:
        raise ConfigurationError("Dataset section is missing 'name'") from None
    options = dict(data_cfg.get("options", {}))  # type: ignore[arg-type]
    try:
        return registry.get_dataset(name, cache_dir=cache_dir, **options)
    except KeyError as exc:
        raise ConfigurationError(str(exc.args[0])) from exc
    except TypeError as exc:
        raise ConfigurationError(f"Invalid options for dataset {name!r}: {exc}") from exc


def build_network(
    model_cfg: Mapping[str, object],
    input_size: int,
    output_size: int,
    seed: int | None,
) -> Network:
    """Load ``model.init_from`` or construct a fresh network from ``model_cfg``."""

    init_from = model_cfg.get("init_from")
    if init_from:
        network = persistence.from_file(str(init_from))
        if network.input_size != input_size or network.output_size != output_size:
            raise ConfigurationError(
                f"Network from {init_from} maps {network.input_size}->{network.output_size}, "
                f"dataset needs {input_size}->{output_size}"
            )
        return network

    merged = dict(model_cfg)
    for key, inferred in (("input_size", input_size), ("output_size", output_size)):
        configured = merged.setdefault(key, inferred)
        if int(configured) != inferred:  # type: ignore[arg-type]
            raise ConfigurationError(
                f"Configured {key}={configured} but the dataset provides {inferred}"
            )
    settings = NetworkSettings.from_mapping(merged)
    return construct(settings, rng=np.random.default_rng(seed))


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    data_cfg = dict(config["data"])  # type: ignore[arg-type]
    model_cfg = dict(config["model"])  # type: ignore[arg-type]
    train_cfg = dict(config["train"])  # type: ignore[arg-type]

    if "train" not in data_cfg:
        raise ConfigurationError("data.train must describe the training dataset")
    cache_dir = train_cfg.get("cache_dir")
    seed = train_cfg.get("seed")
    seed = int(seed) if seed is not None else None
    epochs = int(train_cfg.get("epochs", 1))
    batch_size = int(train_cfg.get("batch_size", 1))

    train_set = build_dataset(data_cfg["train"], cache_dir)  # type: ignore[arg-type]
    test_set = (
        build_dataset(data_cfg["test"], cache_dir)  # type: ignore[arg-type]
        if data_cfg.get("test")
        else None
    )

    network = build_network(model_cfg, train_set.num_inputs(), train_set.num_labels(), seed)
    run_dir = _resolve_run_dir(train_cfg)
    run_dir.mkdir(parents=True, exist_ok=True)

    _log_startup_summary(
        str(data_cfg["train"]["name"]),  # type: ignore[index]
        network_summary(network),
        batch_size=batch_size,
        epochs=epochs,
    )

    jsonl = JsonlSink(run_dir / "metrics.jsonl", split="train", seed=seed)
    csv_sink = CsvSink(run_dir / "metrics.csv", split="train")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    shuffle_rng = np.random.default_rng(None if seed is None else seed + 1)
    trainer = Trainer(
        network,
        rng=shuffle_rng,
        callbacks=[jsonl, csv_sink, plots],
        chain_derivatives=bool(train_cfg.get("chain_derivatives", False)),
    )
    trainer.train_with_dataset(train_set, batch_size, epochs)

    accuracy = float("nan")
    results: Dict[str, object] = {"epochs": epochs}
    if test_set is not None:
        evaluation = trainer.test(test_set)
        accuracy = evaluation.accuracy
        results.update(
            {"accuracy": accuracy, "correct": evaluation.correct, "total": evaluation.total}
        )
        (run_dir / "predictions.json").write_text(json.dumps(evaluation.predictions))

    model_path = run_dir / "network.json"
    persistence.to_file(network, model_path)
    plots.close()

    manifest = write_manifest(
        run_dir / "manifest.json",
        config=json.loads(json.dumps(config)),
        dataset_provenance={
            "train": data_cfg["train"],
            "test": data_cfg.get("test"),
        },
        results=results,
        network=network,
    )
    return RunResult(
        epochs=epochs,
        accuracy=accuracy,
        model_path=str(model_path),
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
    )


def _resolve_run_dir(train_cfg: Mapping[str, object]) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp


def _log_startup_summary(
    dataset_name: str, summary: Mapping[str, Any], *, batch_size: int, epochs: int
) -> None:
    logger.info("=== backpropnet run ===")
    logger.info("Dataset       : %s", dataset_name)
    logger.info("Dimensions    : %s", summary["dims"])
    logger.info("Activations   : %s", summary["activations"])
    logger.info("Learning rate : %s", summary["learning_rate"])
    logger.info("Batch size    : %d", batch_size)
    logger.info("Epochs        : %d", epochs)
    logger.info("Parameters    : %d", summary["parameters"])
    logger.info("=======================")


__all__ = ["build_dataset", "build_network", "load_preset", "presets", "run_pipeline"]
