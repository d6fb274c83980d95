"""Merge exporters and the per-attempt controller."""

from .controller import ExportController
from .json_doc import JsonMergeExporter
from .results import ExportedDocument, ExportReport, FormatResult
from .sheets import SpreadsheetMergeExporter
from .tabular import TabularMergeExporter

__all__ = [
    "ExportController",
    "ExportReport",
    "FormatResult",
    "ExportedDocument",
    "SpreadsheetMergeExporter",
    "TabularMergeExporter",
    "JsonMergeExporter",
]
