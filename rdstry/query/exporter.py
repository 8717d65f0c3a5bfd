"""CSV export of query results.

Writes one file per query. Values are rendered as text and NULLs as the
literal ``null``. In BOM mode the file name gets a ``utf8-bom_`` prefix and
the file starts with a byte-order mark and an encoding comment line, which
lets spreadsheet applications detect UTF-8.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from ..models.query import ExportConfig
from ..utils.naming import format_time, get_home_dir

BOM = "\ufeff"
BOM_FILE_PREFIX = "utf8-bom_"
BOM_COMMENT = "# character encoding : utf-8 with BOM"
NULL_TEXT = "null"
CSV_EXTENSION = ".csv"


@dataclass
class ExportResult:
    """Outcome of a single CSV write.

    Attributes:
        ok: False if opening or writing the file failed
        path: Destination file path
        rows: Data rows written before success or failure
    """

    ok: bool
    path: str
    rows: int = 0


def render_value(value: Any) -> str:
    """Render a column value as CSV text."""
    if value is None:
        return NULL_TEXT
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


class ResultExporter:
    """Writes query result sets to CSV files."""

    def __init__(self, config: ExportConfig, logger: Optional[logging.Logger] = None) -> None:
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    @property
    def output_dir(self) -> Path:
        return Path(self.config.root) if self.config.root else Path(get_home_dir())

    def file_name(self, query_name: str, now: Optional[datetime] = None) -> str:
        name = f"{query_name}-{format_time(now)}{CSV_EXTENSION}"
        if self.config.bom:
            # Excel only detects UTF-8 reliably when the BOM is present
            name = f"{BOM_FILE_PREFIX}{name}"
        return name

    def write(
        self,
        query_name: str,
        columns: Sequence[str],
        rows: Iterable[Sequence[Any]],
        now: Optional[datetime] = None,
    ) -> ExportResult:
        """Write a result set to a new CSV file.

        Failures are logged and reported through the result; rows already
        written stay in the file.

        Args:
            query_name: Query name used in the file name
            columns: Column names for the header row
            rows: Result rows, consumed once
            now: Timestamp for the file name (default: current UTC time)

        Returns:
            ExportResult describing the write
        """
        path = self.output_dir / self.file_name(query_name, now)
        written = 0

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="") as handle:
                writer = csv.writer(handle, lineterminator="\n")

                if self.config.bom:
                    writer.writerow([BOM + BOM_COMMENT])

                writer.writerow(list(columns))

                for row in rows:
                    writer.writerow([render_value(value) for value in row])
                    written += 1

        except Exception as e:
            self.logger.error(f"Failed to write {path} after {written} rows: {e}")
            return ExportResult(ok=False, path=str(path), rows=written)

        self.logger.info(f"Exported {written} rows to {path}")
        return ExportResult(ok=True, path=str(path), rows=written)
