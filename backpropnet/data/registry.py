"""Dataset contract and registry."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable, MutableMapping, Optional, Protocol, runtime_checkable

from ..core.types import DataSample


@runtime_checkable
class Dataset(Protocol):
    """Sequential source of :class:`DataSample` objects.

    ``next_sample`` returns ``None`` once the dataset is exhausted; ``reset``
    rewinds to the first sample.
    """

    def num_inputs(self) -> int:
        """Length of every sample's input vector."""

    def num_labels(self) -> int:
        """Number of classes, i.e. the length of every target vector."""

    def next_sample(self) -> Optional[DataSample]:
        """Return the next sample or ``None`` when exhausted."""

    def reset(self) -> None:
        """Rewind to the start of the dataset."""

    def close(self) -> None:
        """Release any resources held by the dataset."""


DatasetFactory = Callable[..., Dataset]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("mnist_csv")
        def build_mnist_csv(**kwargs):
            ...

    or directly::

        register_dataset("mnist_csv", build_mnist_csv)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(
    dataset: str,
    /,
    *,
    cache_dir: str | Path | None = None,
    **options: Any,
) -> Dataset:
    """Instantiate the dataset registered as ``dataset``."""

    if dataset not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset: {dataset}. Available datasets: {available}")
    factory = _REGISTRY[dataset]
    return factory(cache_dir=cache_dir, **options)


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


__all__ = [
    "Dataset",
    "DatasetFactory",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
