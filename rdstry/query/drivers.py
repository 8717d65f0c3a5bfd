"""SQL driver selection and DB-API connectors.

RDS engine names are mapped to a driver name and a data source name by
substring match. Only drivers with a registered connector can be opened.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, Tuple
from urllib.parse import quote

import psycopg
import pymysql

from ..errors import DriverNotFoundError
from ..models.resource import Endpoint

logger = logging.getLogger(__name__)

# Checked in order against the lowercased engine name
# (mysql, aurora-mysql, oracle-se2, sqlserver-ex, postgres, aurora-postgresql, ...)
ENGINE_DRIVERS = (
    ("mysql", "mysql"),
    ("oracle", "oracle"),
    ("sqlserver", "sqlserver"),
    ("postgres", "postgres"),
)

MYSQL_DSN_PATTERN = re.compile(
    r"^(?P<user>[^:]*):(?P<password>.*)@tcp\((?P<host>[^()]+):(?P<port>\d+)\)/(?P<database>[^?]*)$"
)


def resolve_driver(engine: str, endpoint: Endpoint, user: str, password: str) -> Tuple[str, str]:
    """Map an RDS engine name to a driver name and data source name.

    Oracle and SQL Server resolve to a driver name with an empty data source
    name; no connector exists for them yet.

    Args:
        engine: RDS engine name (e.g. "mysql", "aurora-postgresql", "oracle-se2")
        endpoint: Clone endpoint
        user: Master user name
        password: Master password

    Returns:
        Tuple of (driver name, data source name)

    Raises:
        DriverNotFoundError: If no driver matches the engine
    """
    name = engine.lower()
    logger.debug(f"aws engine name: {name}")

    driver = ""
    for fragment, driver_name in ENGINE_DRIVERS:
        if fragment in name:
            driver = driver_name
            break

    if not driver:
        logger.error(f"failed to convert. no matching SQL driver: {name}")
        raise DriverNotFoundError(engine)

    dsn = ""
    if driver == "mysql":
        dsn = f"{user}:{password}@tcp({endpoint.address}:{endpoint.port})/"
    elif driver == "postgres":
        credentials = f"{quote(user, safe='')}:{quote(password, safe='')}"
        dsn = f"postgresql://{credentials}@{endpoint.address}:{endpoint.port}/postgres"

    logger.debug(f"db driver name: {driver}")
    return driver, dsn


def connect_mysql(dsn: str) -> Any:
    """Open a PyMySQL connection from a ``user:pass@tcp(host:port)/db`` DSN."""
    match = MYSQL_DSN_PATTERN.match(dsn)
    if not match:
        raise ValueError("Malformed MySQL data source name")

    return pymysql.connect(
        host=match.group("host"),
        port=int(match.group("port")),
        user=match.group("user"),
        password=match.group("password"),
        database=match.group("database") or None,
        charset="utf8mb4",
    )


def connect_postgres(dsn: str) -> Any:
    """Open a psycopg connection from a ``postgresql://`` URL."""
    return psycopg.connect(dsn, autocommit=True)


CONNECTORS: Dict[str, Callable[[str], Any]] = {
    "mysql": connect_mysql,
    "postgres": connect_postgres,
}


def open_connection(driver: str, dsn: str) -> Any:
    """Open a DB-API connection for a resolved driver.

    Raises:
        DriverNotFoundError: If the driver has no connector or no data source name
    """
    connector = CONNECTORS.get(driver)
    if connector is None or not dsn:
        logger.error(f"No connector available for driver: {driver}")
        raise DriverNotFoundError(driver)
    return connector(dsn)
