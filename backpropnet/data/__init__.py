"""Dataset registry and loader helpers."""

# Ensure built-in datasets register themselves when the package is imported.
from . import mnist as _mnist  # noqa: F401
from . import synthetic as _synthetic  # noqa: F401
from .memory import ArrayDataset
from .mnist import MnistCsvDataset, write_mnist_fixture
from .registry import Dataset, available_datasets, get_dataset, register_dataset
from .synthetic import make_blobs

__all__ = [
    "ArrayDataset",
    "Dataset",
    "MnistCsvDataset",
    "available_datasets",
    "get_dataset",
    "make_blobs",
    "register_dataset",
    "write_mnist_fixture",
]
