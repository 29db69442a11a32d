"""Network persistence.

Networks are stored as a JSON document::

    {"input_nodes": 784, "output_nodes": 10, "learning_rate": 0.0001,
     "weights": [{"l_nodes": 784, "r_nodes": 64, "act_func": 3, "m": "..."}]}

``m`` is the base64 text of a binary matrix blob: a 40 byte little-endian
header (``uint32`` version, form/packing/uplo bytes, unit flag, ``int64``
rows, cols, ku, kl) followed by the row-major ``float64`` payload. The
layout matches gonum's ``mat.Dense.MarshalBinary`` so files remain
interchangeable with that format.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import math
import struct
from pathlib import Path
from typing import Any, Mapping

import numpy as np

from .core.activations import ActivationKind
from .core.layers import WeightLayer
from .core.network import MAX_LEARNING_RATE, MIN_LEARNING_RATE, Network
from .core.types import Array
from .errors import NetworkError, SerializationError

logger = logging.getLogger(__name__)

MATRIX_VERSION = 1
_HEADER = struct.Struct("<I3s?qqqq")
_DENSE_TAG = b"GFA"
_PAYLOAD_DTYPE = np.dtype("<f8")


def encode_matrix(matrix: Array) -> bytes:
    """Return the binary blob for a dense 2-D ``matrix``."""

    data = np.asarray(matrix, dtype=np.float64)
    if data.ndim != 2:
        raise SerializationError(f"Only 2-D matrices can be encoded, got {data.ndim}-D")
    rows, cols = data.shape
    header = _HEADER.pack(MATRIX_VERSION, _DENSE_TAG, False, rows, cols, 0, 0)
    return header + np.ascontiguousarray(data, dtype=_PAYLOAD_DTYPE).tobytes()


def decode_matrix(blob: bytes) -> Array:
    """Inverse of :func:`encode_matrix`."""

    if len(blob) < _HEADER.size:
        raise SerializationError("Matrix blob is shorter than its header")
    version, tag, _unit, rows, cols, _ku, _kl = _HEADER.unpack_from(blob)
    if version != MATRIX_VERSION:
        raise SerializationError(f"Unsupported matrix blob version {version}")
    if tag != _DENSE_TAG:
        raise SerializationError(f"Matrix blob is not a dense matrix: {tag!r}")
    if rows < 0 or cols < 0:
        raise SerializationError(f"Matrix blob has negative size {rows}x{cols}")
    payload = blob[_HEADER.size :]
    expected = rows * cols * _PAYLOAD_DTYPE.itemsize
    if len(payload) != expected:
        raise SerializationError(
            f"Matrix blob payload has {len(payload)} bytes, expected {expected}"
        )
    values = np.frombuffer(payload, dtype=_PAYLOAD_DTYPE)
    return values.astype(np.float64).reshape(rows, cols)


def to_document(network: Network) -> dict[str, Any]:
    weights = []
    for layer in network.layers:
        blob = encode_matrix(layer.matrix)
        weights.append(
            {
                "l_nodes": layer.left_size,
                "r_nodes": layer.right_size,
                "act_func": int(layer.activation),
                "m": base64.b64encode(blob).decode("ascii"),
            }
        )
    return {
        "input_nodes": network.input_size,
        "output_nodes": network.output_size,
        "learning_rate": network.learning_rate,
        "weights": weights,
    }


def from_document(document: Mapping[str, Any]) -> Network:
    if not isinstance(document, Mapping):
        raise SerializationError("Network document must be a JSON object")
    try:
        layers = [_layer_from_record(idx, record) for idx, record in enumerate(document["weights"])]
        return Network(
            input_size=_node_count(document, "input_nodes"),
            output_size=_node_count(document, "output_nodes"),
            learning_rate=_learning_rate(document["learning_rate"]),
            layers=layers,
        )
    except SerializationError:
        raise
    except NetworkError as exc:
        raise SerializationError(f"Invalid network document: {exc}") from exc
    except (KeyError, TypeError, ValueError) as exc:
        raise SerializationError(f"Malformed network document: {exc!r}") from exc


def _layer_from_record(idx: int, record: Mapping[str, Any]) -> WeightLayer:
    try:
        blob = base64.b64decode(record["m"], validate=True)
    except (binascii.Error, TypeError) as exc:
        raise SerializationError(f"Layer {idx} matrix is not valid base64") from exc
    matrix = decode_matrix(blob)
    return WeightLayer(
        left_size=_node_count(record, "l_nodes"),
        right_size=_node_count(record, "r_nodes"),
        activation=ActivationKind.parse(_integer(record, "act_func")),
        matrix=matrix,
    )


def _integer(record: Mapping[str, Any], key: str) -> int:
    value = record[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise SerializationError(f"{key!r} must be an integer, got {value!r}")
    return value


def _node_count(record: Mapping[str, Any], key: str) -> int:
    value = _integer(record, key)
    if value < 1:
        raise SerializationError(f"{key!r} must be at least 1, got {value}")
    return value


def _learning_rate(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SerializationError(f"'learning_rate' must be a number, got {value!r}")
    rate = float(value)
    if not math.isfinite(rate) or not MIN_LEARNING_RATE <= rate <= MAX_LEARNING_RATE:
        raise SerializationError(
            f"'learning_rate' must lie in [{MIN_LEARNING_RATE}, {MAX_LEARNING_RATE}], got {rate}"
        )
    return rate


def dumps(network: Network) -> bytes:
    """Serialise ``network`` to JSON bytes."""

    return json.dumps(to_document(network)).encode("utf-8")


def loads(data: bytes | str) -> Network:
    """Rebuild a :class:`Network` from :func:`dumps` output."""

    try:
        document = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SerializationError(f"Network data is not valid JSON: {exc}") from exc
    return from_document(document)


def to_file(network: Network, path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dumps(network))
    logger.info("Saved network %s to %s", network.dims, path)


def from_file(path: str | Path) -> Network:
    path = Path(path)
    network = loads(path.read_bytes())
    logger.info("Loaded network %s from %s", network.dims, path)
    return network


__all__ = [
    "decode_matrix",
    "dumps",
    "encode_matrix",
    "from_document",
    "from_file",
    "loads",
    "to_document",
    "to_file",
]
