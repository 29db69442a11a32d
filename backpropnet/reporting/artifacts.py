"""Run manifest: what was trained, on which data, with which results."""

from __future__ import annotations

import json
import platform
import time
from importlib import metadata
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Mapping

from .metrics import git_sha

if TYPE_CHECKING:  # pragma: no cover
    from ..core.network import Network

_TRACKED_DISTRIBUTIONS = ("numpy", "pandas", "gevent", "matplotlib")


def network_summary(network: "Network") -> Dict[str, Any]:
    return {
        "dims": list(network.dims),
        "activations": [layer.activation.name.lower() for layer in network.layers],
        "learning_rate": network.learning_rate,
        "parameters": network.parameter_count(),
    }


def _environment() -> Dict[str, str]:
    versions = {"python": platform.python_version()}
    for name in _TRACKED_DISTRIBUTIONS:
        try:
            versions[name] = metadata.version(name)
        except metadata.PackageNotFoundError:
            versions[name] = "missing"
    return versions


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    dataset_provenance: Mapping[str, object],
    results: Mapping[str, object] | None = None,
    network: "Network | None" = None,
) -> str:
    """Write ``manifest.json`` next to the run's metrics and saved network."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest: Dict[str, Any] = {
        "git_sha": git_sha(),
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": config,
        "dataset": dict(dataset_provenance),
        "results": dict(results or {}),
        "environment": _environment(),
    }
    if network is not None:
        manifest["network"] = network_summary(network)
    path.write_text(json.dumps(manifest, indent=2))
    return str(path)


__all__ = ["network_summary", "write_manifest"]
