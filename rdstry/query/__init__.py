"""Query execution and CSV export against a clone instance."""

from __future__ import annotations

from .executor import QueryExecutor
from .exporter import ExportResult, ResultExporter
from .loader import load_queries

__all__ = [
    "ExportResult",
    "QueryExecutor",
    "ResultExporter",
    "load_queries",
]
