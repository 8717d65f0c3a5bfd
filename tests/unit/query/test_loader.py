"""Tests for query file loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from rdstry.errors import ConfigError
from rdstry.models.query import Query
from rdstry.query.loader import load_queries


class TestLoadQueries:
    """Tests for load_queries."""

    def test_loads_queries_in_order(self, tmp_path: Path) -> None:
        """Test a valid query file."""
        path = tmp_path / "queries.yaml"
        path.write_text(
            "queries:\n"
            "  - name: active_users\n"
            "    sql: SELECT id FROM users WHERE active = 1\n"
            "  - name: order_totals\n"
            "    sql: |\n"
            "      SELECT user_id, SUM(total)\n"
            "      FROM orders GROUP BY user_id\n",
            encoding="utf-8",
        )

        queries = load_queries(path)

        assert queries == [
            Query("active_users", "SELECT id FROM users WHERE active = 1"),
            Query("order_totals", "SELECT user_id, SUM(total)\nFROM orders GROUP BY user_id"),
        ]

    def test_accepts_string_path(self, tmp_path: Path) -> None:
        """Test that a str path works."""
        path = tmp_path / "q.yaml"
        path.write_text("queries:\n  - {name: one, sql: SELECT 1}\n", encoding="utf-8")

        assert load_queries(str(path)) == [Query("one", "SELECT 1")]

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file raises ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            load_queries(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test that unparsable YAML raises ConfigError."""
        path = tmp_path / "bad.yaml"
        path.write_text("queries: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_queries(path)

    @pytest.mark.parametrize("content", ["", "queries: []\n", "other: 1\n", "- name: a\n  sql: SELECT 1\n"])
    def test_no_queries(self, tmp_path: Path, content: str) -> None:
        """Test files without a queries list."""
        path = tmp_path / "empty.yaml"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigError, match="No queries"):
            load_queries(path)

    @pytest.mark.parametrize(
        "entry",
        ["{name: only_name}", "{sql: SELECT 1}", "just-a-string", "{name: '', sql: SELECT 1}"],
    )
    def test_incomplete_entry(self, tmp_path: Path, entry: str) -> None:
        """Test that each entry needs a name and SQL."""
        path = tmp_path / "incomplete.yaml"
        path.write_text(f"queries:\n  - {{name: ok, sql: SELECT 1}}\n  - {entry}\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="Query #2"):
            load_queries(path)
