"""Reporting utilities for backpropnet."""

from .artifacts import network_summary, write_manifest
from .images import export_digit_images, save_digit_image
from .metrics import CsvSink, JsonlSink
from .plots import PlotAdapter

__all__ = [
    "CsvSink",
    "JsonlSink",
    "PlotAdapter",
    "export_digit_images",
    "network_summary",
    "save_digit_image",
    "write_manifest",
]
