"""Exception hierarchy for rdstry."""

from __future__ import annotations

from typing import Any, Optional


class RdsTryError(Exception):
    """Base class for all rdstry errors."""


class NotFoundError(RdsTryError):
    """A required instance, snapshot or driver does not exist."""


class DBInstanceNotFoundError(NotFoundError):
    """DB instance is not found."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"DB instance '{identifier}' is not found")
        self.identifier = identifier


class SnapshotNotFoundError(NotFoundError):
    """DB snapshot is not found."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"DB snapshot is not found for '{identifier}'")
        self.identifier = identifier


class DriverNotFoundError(NotFoundError):
    """No SQL driver matches the RDS engine."""

    def __init__(self, engine: str) -> None:
        super().__init__(f"No SQL driver available for engine '{engine}'")
        self.engine = engine


class ProviderError(RdsTryError):
    """A call to the RDS API failed.

    Attributes:
        operation: API operation name (e.g. "RestoreDBInstanceFromDBSnapshot")
        code: AWS error code, or "Unknown" for non-client errors
    """

    def __init__(self, operation: str, code: str, message: str) -> None:
        super().__init__(f"{operation} failed: {code} - {message}")
        self.operation = operation
        self.code = code
        self.message = message


class WaitFailedError(RdsTryError):
    """A resource did not reach the available status.

    Attributes:
        result: The WaitResult delivered by the status waiter
    """

    def __init__(self, identifier: str, result: Any) -> None:
        super().__init__(f"Waiting for '{identifier}' ended with status {result.status.value}")
        self.identifier = identifier
        self.result = result


class QueryError(RdsTryError):
    """A query in the batch failed.

    Attributes:
        query_name: Name of the failing query
        cause: Exception raised by the driver
        batch: QueryBatchResult holding the queries that completed, set by
            the clone lifecycle before the error is raised
    """

    def __init__(self, query_name: str, cause: Optional[BaseException] = None) -> None:
        message = f"Query '{query_name}' failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.query_name = query_name
        self.cause = cause
        self.batch: Optional[Any] = None


class DatabaseConnectionError(QueryError):
    """Opening the SQL connection to the clone failed."""

    def __init__(self, driver: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"<connect:{driver}>", cause)
        self.driver = driver


class ConfigError(RdsTryError):
    """Configuration or query file is missing or invalid."""
