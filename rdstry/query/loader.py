"""Query file loading."""

from __future__ import annotations

from pathlib import Path
from typing import List, Union

import yaml

from ..errors import ConfigError
from ..models.query import Query


def load_queries(path: Union[str, Path]) -> List[Query]:
    """Load an ordered list of queries from a YAML file.

    Expected format::

        queries:
          - name: active_users
            sql: SELECT id, email FROM users WHERE active = 1

    Raises:
        ConfigError: If the file is missing, unparsable or has no valid queries
    """
    query_path = Path(path).expanduser()
    if not query_path.is_file():
        raise ConfigError(f"Query file not found: {query_path}")

    try:
        data = yaml.safe_load(query_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in query file {query_path}: {e}")

    entries = data.get("queries") if isinstance(data, dict) else None
    if not entries or not isinstance(entries, list):
        raise ConfigError(f"No queries defined in {query_path}")

    queries: List[Query] = []
    for index, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict) or not entry.get("name") or not entry.get("sql"):
            raise ConfigError(f"Query #{index} in {query_path} needs both 'name' and 'sql'")
        queries.append(Query(name=str(entry["name"]), sql=str(entry["sql"]).strip()))

    return queries
