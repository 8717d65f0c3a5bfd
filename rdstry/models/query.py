"""Query batch models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from ..errors import QueryError


@dataclass(frozen=True)
class Query:
    """A named SQL statement. The name is used for the CSV file name."""

    name: str
    sql: str


@dataclass
class QueryResult:
    """Outcome of one executed query.

    Attributes:
        name: Query name
        elapsed: Wall-clock time between issuing the query and receiving the result
        csv_path: Path of the exported CSV file, if one was written
        exported: False when an export was attempted and failed
    """

    name: str
    elapsed: timedelta
    csv_path: Optional[str] = None
    exported: bool = True


@dataclass
class QueryBatchResult:
    """Results of a query batch.

    ``results`` holds the queries that completed, in execution order. When a
    query fails, ``error`` is set and the remaining queries were not run.
    """

    results: List[QueryResult] = field(default_factory=list)
    error: Optional[QueryError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def durations(self) -> List[timedelta]:
        return [r.elapsed for r in self.results]


@dataclass
class ExportConfig:
    """CSV export settings for a run.

    Attributes:
        enabled: Write a CSV file per query
        root: Destination directory (default: home directory)
        bom: Prefix files with a UTF-8 byte-order mark and comment line
    """

    enabled: bool = True
    root: Optional[str] = None
    bom: bool = False
