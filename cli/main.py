"""Train and evaluate a backpropnet classifier from a preset or config file."""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Any, Iterable, Mapping

from backpropnet.errors import ConfigurationError, NetworkError
from backpropnet.reporting.images import export_digit_images
from backpropnet.training import pipelines

logger = logging.getLogger("backpropnet.cli")

DEFAULT_PRESET = "synthetic-sigmoid"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Set the root level from ``level``, else ``LOG_LEVEL``, else INFO."""

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT, force=True
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)

    run = parser.add_argument_group("run selection")
    run.add_argument(
        "--preset",
        choices=sorted(pipelines.presets()),
        default=DEFAULT_PRESET,
        help=f"named configuration to start from (default: {DEFAULT_PRESET})",
    )
    run.add_argument("--config", type=Path, help="JSON or YAML file merged over the preset")
    run.add_argument("--list-presets", action="store_true", help="print preset names and exit")
    run.add_argument("--dump-config", type=Path, help="write the resolved config as JSON")

    data = parser.add_argument_group("data")
    data.add_argument("--train-csv", type=Path, help="MNIST-format CSV to train on")
    data.add_argument("--test-csv", type=Path, help="MNIST-format CSV to evaluate on")

    training = parser.add_argument_group("training")
    training.add_argument("--seed", type=int, help="seed for weight init and shuffling")
    training.add_argument("--epochs", type=int, help="passes over the training set")
    training.add_argument("--batch-size", type=int, help="samples shuffled together")
    training.add_argument("--load", type=Path, help="saved network to continue training")

    output = parser.add_argument_group("output")
    output.add_argument("--run-dir", type=Path, help="where metrics and network.json go")
    output.add_argument("--enable-plots", action="store_true", help="save loss.png")
    output.add_argument(
        "--export-images",
        type=int,
        default=0,
        metavar="N",
        help="save the first N test digits as PNG files",
    )
    output.add_argument("--log-level", help="DEBUG, INFO, ... (default: $LOG_LEVEL or INFO)")
    return parser


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(None if argv is None else list(argv))


def read_config_file(path: Path) -> dict:
    """Parse ``path`` as YAML when it has a YAML suffix, JSON otherwise.

    Syntax errors and documents that are not a mapping raise
    :class:`ConfigurationError`.
    """

    with path.open(encoding="utf-8") as handle:
        if path.suffix.lower() in {".yaml", ".yml"}:
            import yaml

            try:
                loaded = yaml.safe_load(handle)
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
        else:
            try:
                loaded = json.load(handle)
            except json.JSONDecodeError as exc:
                raise ConfigurationError(f"Invalid JSON in {path}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, Mapping):
        raise ConfigurationError(f"{path} must contain a mapping, got {type(loaded).__name__}")
    return dict(loaded)


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _csv_source(path: Path) -> dict:
    return {"name": "mnist_csv", "options": {"path": str(path)}}


def resolve_config(args: argparse.Namespace) -> dict:
    """Preset, then ``--config``, then individual flags; later wins."""

    config = pipelines.load_preset(args.preset)
    if args.config:
        override = read_config_file(args.config)
        complete = {"data", "model", "train"} <= override.keys()
        config = override if complete else deep_merge(config, override)
    config = json.loads(json.dumps(config))

    data = config.setdefault("data", {})
    if args.train_csv:
        data["train"] = _csv_source(args.train_csv)
    if args.test_csv:
        data["test"] = _csv_source(args.test_csv)
    if args.load:
        config.setdefault("model", {})["init_from"] = str(args.load)

    flags = {
        "seed": args.seed,
        "epochs": args.epochs,
        "batch_size": args.batch_size,
        "run_dir": None if args.run_dir is None else str(args.run_dir),
        "enable_plots": True if args.enable_plots else None,
    }
    train = config.setdefault("train", {})
    train.update({key: value for key, value in flags.items() if value is not None})
    return config


def _export_images(config: Mapping[str, Any], run_dir: Path, limit: int) -> None:
    source = config["data"].get("test")
    if not source:
        logger.warning("No test dataset configured, skipping image export")
        return
    dataset = pipelines.build_dataset(source, config["train"].get("cache_dir"))
    written = export_digit_images(dataset, run_dir / "images", limit)
    logger.info("Exported %d images to %s", len(written), run_dir / "images")


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.list_presets:
        print("\n".join(sorted(pipelines.presets())))
        raise SystemExit(0)

    try:
        config = resolve_config(args)
        if args.dump_config:
            args.dump_config.parent.mkdir(parents=True, exist_ok=True)
            args.dump_config.write_text(json.dumps(config, indent=2))

        result = pipelines.run_pipeline(config)
        if args.export_images > 0:
            _export_images(config, Path(result.model_path).parent, args.export_images)
    except (NetworkError, OSError) as exc:
        logger.error("%s", exc)
        raise SystemExit(f"error: {exc}") from exc

    summary = {
        "epochs": result.epochs,
        "accuracy": result.accuracy,
        "model": result.model_path,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    print(json.dumps(summary, sort_keys=True))


__all__ = [
    "build_parser",
    "configure_logging",
    "deep_merge",
    "main",
    "parse_args",
    "read_config_file",
    "resolve_config",
]


if __name__ == "__main__":
    main()
