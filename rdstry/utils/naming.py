"""Naming helpers for resources and artifacts created by rdstry."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

APP_NAME = "rdstry"

# Hyphen separated so the token is valid inside an RDS identifier
TIME_FORMAT = "%Y-%m-%d-%H-%M-%S"

# RDS instance and snapshot identifiers are limited to 63 characters
MAX_IDENTIFIER_LENGTH = 63


def format_time(now: Optional[datetime] = None) -> str:
    """Return the timestamp token used in tags, identifiers and file names."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.strftime(TIME_FORMAT)


def get_home_dir() -> str:
    """Return the current user's home directory."""
    return str(Path.home())


def display_name(identifier: str, now: Optional[datetime] = None) -> str:
    """Derive an identifier for a clone or snapshot of ``identifier``.

    The result has the form ``rdstry-<identifier>-<timestamp>``. The source
    identifier is shortened when needed to stay within the RDS limit.

    Args:
        identifier: Source DB instance identifier
        now: Timestamp to embed (default: current UTC time)

    Returns:
        Identifier valid for RestoreDBInstanceFromDBSnapshot / CreateDBSnapshot
    """
    stamp = format_time(now)
    budget = MAX_IDENTIFIER_LENGTH - len(APP_NAME) - len(stamp) - 2
    base = identifier[:budget].rstrip("-")
    return f"{APP_NAME}-{base}-{stamp}"
