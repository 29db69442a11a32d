"""Per-epoch training metric sinks.

Both sinks are Trainer callbacks: ``on_epoch(epoch, metrics)`` receives the
mean squared output error (``loss``) and the number of samples seen.
"""

from __future__ import annotations

import csv
import json
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Mapping

import numpy as np

EPOCH_FIELDS = ("epoch", "split", "loss", "samples")


def git_sha(cwd: str | Path | None = None) -> str:
    """Return the current commit hash, or ``"unknown"`` outside a checkout."""

    try:
        out = subprocess.check_output(
            ["git", "rev-parse", "HEAD"], cwd=cwd, stderr=subprocess.DEVNULL
        )
    except (OSError, subprocess.CalledProcessError):  # pragma: no cover - git may be unavailable
        return "unknown"
    return out.decode().strip()


def _epoch_record(epoch: int, split: str, metrics: Mapping[str, Any]) -> Dict[str, Any]:
    record: Dict[str, Any] = {"epoch": int(epoch), "split": split}
    for key, value in metrics.items():
        if isinstance(value, (int, float, np.number)) and not isinstance(value, bool):
            record[key] = float(value)
    return record


class JsonlSink:
    """One JSON object per epoch, tagged with the run seed and git revision."""

    def __init__(
        self,
        path: str | Path,
        *,
        split: str = "train",
        seed: int | None = None,
        sha: str | None = None,
    ) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.split = split
        self.tags = {"seed": seed, "sha": sha or git_sha()}

    def on_epoch(self, epoch: int, metrics: Mapping[str, Any]) -> None:
        record = _epoch_record(epoch, self.split, metrics)
        record.update(self.tags)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")

    def records(self) -> List[Dict[str, Any]]:
        lines = self.path.read_text(encoding="utf-8").splitlines()
        return [json.loads(line) for line in lines if line]

    __call__ = on_epoch


class CsvSink:
    """Epoch table with the fixed columns of :data:`EPOCH_FIELDS`."""

    def __init__(self, path: str | Path, *, split: str = "train") -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.split = split
        with self.path.open("w", encoding="utf-8", newline="") as handle:
            csv.DictWriter(handle, fieldnames=EPOCH_FIELDS).writeheader()

    def on_epoch(self, epoch: int, metrics: Mapping[str, Any]) -> None:
        row = _epoch_record(epoch, self.split, metrics)
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=EPOCH_FIELDS, extrasaction="ignore")
            writer.writerow(row)

    __call__ = on_epoch


__all__ = ["CsvSink", "EPOCH_FIELDS", "JsonlSink", "git_sha"]
