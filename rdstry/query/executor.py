"""Query batch execution against a clone instance."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Sequence

from ..errors import DatabaseConnectionError, DriverNotFoundError, QueryError
from ..models.query import ExportConfig, Query, QueryBatchResult, QueryResult
from ..models.resource import Endpoint
from .drivers import open_connection, resolve_driver
from .exporter import ResultExporter


class QueryExecutor:
    """Runs an ordered list of queries over a single connection.

    Attributes:
        user: Database user for the clone
        password: Database password for the clone
        export_config: CSV export settings
        exporter: Result exporter used for each query with columns
    """

    def __init__(
        self,
        user: str,
        password: str,
        export_config: Optional[ExportConfig] = None,
        exporter: Optional[ResultExporter] = None,
        connect: Callable[[str, str], Any] = open_connection,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.user = user
        self.password = password
        self.export_config = export_config or ExportConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.exporter = exporter or ResultExporter(self.export_config, logger=self.logger)
        self._connect = connect

    def execute(self, engine: str, endpoint: Endpoint, queries: Sequence[Query]) -> QueryBatchResult:
        """Execute queries in order and export their results.

        The first failing query stops the batch. Results of the queries that
        completed are returned together with the error.

        Args:
            engine: RDS engine name of the clone
            endpoint: Clone endpoint
            queries: Queries in execution order

        Returns:
            QueryBatchResult with per-query timings and CSV paths

        Raises:
            DriverNotFoundError: If no driver matches the engine
            DatabaseConnectionError: If the connection cannot be opened
        """
        driver, dsn = resolve_driver(engine, endpoint, self.user, self.password)

        try:
            connection = self._connect(driver, dsn)
        except DriverNotFoundError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to connect to {endpoint.address}:{endpoint.port}: {e}")
            raise DatabaseConnectionError(driver, e) from e

        batch = QueryBatchResult()
        try:
            for query in queries:
                try:
                    batch.results.append(self._run_query(connection, query))
                except QueryError as e:
                    batch.error = e
                    break
        finally:
            connection.close()

        return batch

    def _run_query(self, connection: Any, query: Query) -> QueryResult:
        """Run one query and export its result set.

        Raises:
            QueryError: If the statement fails
        """
        self.logger.debug(f"query value: {query}")

        cursor = connection.cursor()
        try:
            start = datetime.now(timezone.utc)
            self.logger.info(f"[{query.name}] query start time: {start.isoformat()}")

            try:
                cursor.execute(query.sql)
            except Exception as e:
                self.logger.error(f"[{query.name}] {e}")
                raise QueryError(query.name, e) from e

            end = datetime.now(timezone.utc)
            self.logger.info(f"[{query.name}] query end time: {end.isoformat()}")

            result = QueryResult(name=query.name, elapsed=end - start)

            columns = self._columns(cursor)
            if self.export_config.enabled and columns:
                export = self.exporter.write(query.name, columns, cursor)
                result.csv_path = export.path
                result.exported = export.ok

            return result
        finally:
            cursor.close()

    @staticmethod
    def _columns(cursor: Any) -> List[str]:
        # description is None for statements that return no rows
        return [column[0] for column in (cursor.description or [])]
