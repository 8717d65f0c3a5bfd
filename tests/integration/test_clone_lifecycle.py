"""Integration tests for the clone lifecycle.

A real gateway, tag registry, waiter, executor and exporter run against an
in-memory RDS client, a virtual clock and a fake DB-API connection.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional, Sequence
from unittest.mock import Mock

import pytest

from rdstry.aws.gateway import RDSGateway
from rdstry.clone.orchestrator import CloneLifecycle, RunOptions
from rdstry.clone.tags import TagRegistry
from rdstry.clone.waiter import StatusWaiter, WaitStatus
from rdstry.errors import QueryError, WaitFailedError
from rdstry.models.query import ExportConfig, Query
from rdstry.query.executor import QueryExecutor
from tests.fixtures.rds import ACCOUNT_ID, REGION, FakeClock, FakeRDSClient, rds_instance_dict, rds_snapshot_dict


class FakeCursor:
    """DB-API cursor returning canned rows."""

    def __init__(self, results: dict) -> None:
        self.results = results
        self.description: Optional[List[tuple]] = None
        self._rows: Sequence[tuple] = []
        self.closed = False

    def execute(self, sql: str) -> None:
        if sql not in self.results:
            raise RuntimeError(f"syntax error near '{sql}'")
        columns, rows = self.results[sql]
        self.description = [(name,) for name in columns]
        self._rows = rows

    def __iter__(self):
        return iter(self._rows)

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    def __init__(self, results: dict) -> None:
        self.results = results
        self.closed = False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self.results)

    def close(self) -> None:
        self.closed = True


RESULTS = {
    "SELECT id, email FROM users": (["id", "email"], [(1, "a@example.com"), (2, None)]),
    "SELECT COUNT(*) AS total FROM orders": (["total"], [(42,)]),
}


@pytest.fixture
def client() -> FakeRDSClient:
    client = FakeRDSClient(describes_until_available=2)
    client.instances["prod-db"] = rds_instance_dict("prod-db", security_groups=["sg-app", "sg-vpn"])
    client.snapshots["rds:prod-db-2024-01-01"] = rds_snapshot_dict("rds:prod-db-2024-01-01")
    client.snapshots["rds:prod-db-2024-01-02"] = rds_snapshot_dict("rds:prod-db-2024-01-02")
    client.snapshots["other-db-snap"] = rds_snapshot_dict("other-db-snap", instance_identifier="other-db")
    return client


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection(RESULTS)


@pytest.fixture
def connect(connection: FakeConnection) -> Mock:
    return Mock(return_value=connection)


def build_lifecycle(
    client: FakeRDSClient, clock: FakeClock, connect: Any, out_dir: Path, timeout: float = 1800.0
) -> CloneLifecycle:
    gateway = RDSGateway(client=client, region=REGION, account_id=ACCOUNT_ID)
    executor = QueryExecutor(
        user="admin",
        password="secret",
        export_config=ExportConfig(root=str(out_dir)),
        connect=connect,
    )
    return CloneLifecycle(
        gateway=gateway,
        tag_registry=TagRegistry(gateway),
        waiter=StatusWaiter(gateway, timeout=timeout, clock=clock, sleep=clock.sleep),
        executor=executor,
    )


def test_run_end_to_end(
    client: FakeRDSClient, clock: FakeClock, connect: Mock, connection: FakeConnection, tmp_path: Path
) -> None:
    """Test restore, modify, query, export and teardown in one run."""
    lifecycle = build_lifecycle(client, clock, connect, tmp_path)
    queries = [
        Query("users", "SELECT id, email FROM users"),
        Query("order_count", "SELECT COUNT(*) AS total FROM orders"),
    ]

    report = lifecycle.run(RunOptions("prod-db", queries, instance_class="db.t3.small"))

    # Restored from the last available snapshot of the source, with ownership tags
    restore = client.called("restore_db_instance_from_db_snapshot")[0]
    assert restore["DBSnapshotIdentifier"] == "rds:prod-db-2024-01-02"
    assert restore["DBInstanceClass"] == "db.t3.small"
    assert restore["DBSubnetGroupName"] == "prod-subnets"
    assert {t["Key"] for t in restore["Tags"]} == {"rt_name", "rt_time"}

    modify = client.called("modify_db_instance")[0]
    assert modify["DBParameterGroupName"] == "prod-mysql57"
    assert modify["VpcSecurityGroupIds"] == ["sg-app", "sg-vpn"]
    assert modify["ApplyImmediately"] is True

    # Two polls for the restore and two for the modify
    assert clock.now == 120.0

    address = f"{report.clone_identifier}.abc123.us-east-1.rds.amazonaws.com"
    connect.assert_called_once_with("mysql", f"admin:secret@tcp({address}:3306)/")
    assert connection.closed is True

    assert [r.name for r in report.batch.results] == ["users", "order_count"]
    users_csv = Path(report.batch.results[0].csv_path)
    assert users_csv.parent == tmp_path
    assert users_csv.read_text(encoding="utf-8") == "id,email\n1,a@example.com\n2,null\n"
    assert Path(report.batch.results[1].csv_path).read_text(encoding="utf-8") == "total\n42\n"

    assert client.called("delete_db_instance") == [
        {"DBInstanceIdentifier": report.clone_identifier, "SkipFinalSnapshot": True}
    ]
    assert report.clone_identifier not in client.instances
    assert "prod-db" in client.instances
    assert client.called("delete_db_snapshot") == []


def test_fresh_snapshot_is_removed(client: FakeRDSClient, clock: FakeClock, connect: Mock, tmp_path: Path) -> None:
    """Test that a snapshot taken for the run is deleted with the clone."""
    lifecycle = build_lifecycle(client, clock, connect, tmp_path)

    report = lifecycle.run(
        RunOptions("prod-db", [Query("users", "SELECT id, email FROM users")], fresh_snapshot=True)
    )

    assert report.snapshot_identifier.startswith("rdstry-prod-db-")
    assert report.snapshot_deleted is True
    restore = client.called("restore_db_instance_from_db_snapshot")[0]
    assert restore["DBSnapshotIdentifier"] == report.snapshot_identifier
    assert report.snapshot_identifier not in client.snapshots
    assert "rds:prod-db-2024-01-02" in client.snapshots


def test_query_failure_deletes_clone(client: FakeRDSClient, clock: FakeClock, connect: Mock, tmp_path: Path) -> None:
    """Test that the clone is deleted when a query fails."""
    lifecycle = build_lifecycle(client, clock, connect, tmp_path)
    queries = [
        Query("users", "SELECT id, email FROM users"),
        Query("broken", "SELEC 1"),
        Query("order_count", "SELECT COUNT(*) AS total FROM orders"),
    ]

    with pytest.raises(QueryError) as exc_info:
        lifecycle.run(RunOptions("prod-db", queries))

    assert exc_info.value.query_name == "broken"
    completed = exc_info.value.batch.results
    assert [r.name for r in completed] == ["users"]
    assert Path(completed[0].csv_path).read_text(encoding="utf-8") == "id,email\n1,a@example.com\n2,null\n"
    assert len(client.called("delete_db_instance")) == 1
    assert list(client.instances) == ["prod-db"]
    assert len(list(tmp_path.glob("users-*.csv"))) == 1
    assert list(tmp_path.glob("order_count-*.csv")) == []


def test_timed_out_clone_is_found_and_removed(
    client: FakeRDSClient, clock: FakeClock, connect: Mock, tmp_path: Path
) -> None:
    """Test that a clone left by a failed wait is discovered and deleted."""
    client.describes_until_available = 100
    lifecycle = build_lifecycle(client, clock, connect, tmp_path, timeout=300.0)

    with pytest.raises(WaitFailedError) as exc_info:
        lifecycle.run(RunOptions("prod-db", [Query("users", "SELECT id, email FROM users")]))

    assert exc_info.value.result.status == WaitStatus.TIMED_OUT
    assert clock.now == 300.0
    clone_id = exc_info.value.identifier
    assert clone_id in client.instances
    connect.assert_not_called()

    owned = lifecycle.discover_owned_instances()

    assert [i.identifier for i in owned] == [clone_id]
    assert lifecycle.discover_owned_snapshots() == []

    assert lifecycle.delete_all(owned) == [clone_id]
    assert list(client.instances) == ["prod-db"]
