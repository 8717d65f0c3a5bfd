"""Data models for RDS resources and query batches."""

from __future__ import annotations

from .query import ExportConfig, Query, QueryBatchResult, QueryResult
from .resource import DBInstance, DBSnapshot, Endpoint, RDSResource, resource_kind

__all__ = [
    "DBInstance",
    "DBSnapshot",
    "Endpoint",
    "ExportConfig",
    "Query",
    "QueryBatchResult",
    "QueryResult",
    "RDSResource",
    "resource_kind",
]
