"""Test fixtures for RDS API payloads, a fake RDS client and a virtual clock."""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from rdstry.models.resource import DBInstance, DBSnapshot

REGION = "us-east-1"
ACCOUNT_ID = "123456789012"


def rds_instance_dict(
    identifier: str = "prod-db",
    status: str = "available",
    engine: str = "mysql",
    address: Optional[str] = "prod-db.abc123.us-east-1.rds.amazonaws.com",
    port: int = 3306,
    parameter_group: str = "prod-mysql57",
    parameter_apply_status: str = "in-sync",
    security_groups: Optional[List[str]] = None,
    security_group_status: str = "active",
) -> Dict[str, Any]:
    """Create a describe_db_instances item.

    Args:
        identifier: DBInstanceIdentifier
        status: DBInstanceStatus
        engine: Engine name
        address: Endpoint address (None for no endpoint)
        port: Endpoint port
        parameter_group: DB parameter group name
        parameter_apply_status: ParameterApplyStatus of the group
        security_groups: VPC security group IDs
        security_group_status: Status of every security group

    Returns:
        Dictionary shaped like the RDS API response item
    """
    if security_groups is None:
        security_groups = ["sg-0123456789abcdef0"]

    data: Dict[str, Any] = {
        "DBInstanceIdentifier": identifier,
        "DBInstanceStatus": status,
        "Engine": engine,
        "DBInstanceClass": "db.r5.large",
        "MultiAZ": True,
        "StorageType": "gp2",
        "DBSubnetGroup": {"DBSubnetGroupName": "prod-subnets"},
        "DBParameterGroups": [
            {"DBParameterGroupName": parameter_group, "ParameterApplyStatus": parameter_apply_status}
        ],
        "VpcSecurityGroups": [{"VpcSecurityGroupId": sg, "Status": security_group_status} for sg in security_groups],
    }
    if address:
        data["Endpoint"] = {"Address": address, "Port": port}
    return data


def rds_snapshot_dict(
    identifier: str = "rds:prod-db-2024-01-01-00-00",
    instance_identifier: str = "prod-db",
    status: str = "available",
    created_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Create a describe_db_snapshots item."""
    return {
        "DBSnapshotIdentifier": identifier,
        "DBInstanceIdentifier": instance_identifier,
        "Status": status,
        "SnapshotType": "automated",
        "SnapshotCreateTime": created_at or datetime(2024, 1, 1, tzinfo=timezone.utc),
    }


def make_instance(identifier: str = "prod-db", status: str = "available", **kwargs: Any) -> DBInstance:
    return DBInstance.from_api(rds_instance_dict(identifier=identifier, status=status, **kwargs))


def make_snapshot(identifier: str = "rds:prod-db-2024-01-01-00-00", status: str = "available", **kwargs: Any) -> DBSnapshot:
    return DBSnapshot.from_api(rds_snapshot_dict(identifier=identifier, status=status, **kwargs))


def client_error(code: str, operation: str = "DescribeDBInstances", message: str = "error") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class FakeClock:
    """Virtual clock; sleeping advances time instantly."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class _Paginator:
    def __init__(self, client: "FakeRDSClient", method: str) -> None:
        self.client = client
        self.method = method

    def paginate(self, **params: Any) -> List[Dict[str, Any]]:
        return [getattr(self.client, self.method)(**params)]


class FakeRDSClient:
    """In-memory stand-in for the boto3 RDS client.

    Instances and snapshots created through the client start in a transitional
    status and become available after ``describes_until_available`` describe
    calls for that identifier.
    """

    def __init__(self, describes_until_available: int = 2) -> None:
        self.instances: Dict[str, Dict[str, Any]] = {}
        self.snapshots: Dict[str, Dict[str, Any]] = {}
        self.tags: Dict[str, List[Dict[str, str]]] = {}
        self.pending: Dict[str, int] = {}
        self.calls: List[tuple] = []
        self.describes_until_available = describes_until_available

    def arn(self, kind: str, identifier: str) -> str:
        return f"arn:aws:rds:{REGION}:{ACCOUNT_ID}:{kind}:{identifier}"

    def get_paginator(self, method: str) -> _Paginator:
        return _Paginator(self, method)

    def _tick(self, identifier: str, record: Dict[str, Any], status_key: str) -> None:
        if identifier in self.pending:
            self.pending[identifier] -= 1
            if self.pending[identifier] <= 0:
                del self.pending[identifier]
                record[status_key] = "available"

    def describe_db_instances(self, DBInstanceIdentifier: Optional[str] = None) -> Dict[str, Any]:
        self.calls.append(("describe_db_instances", DBInstanceIdentifier))
        if DBInstanceIdentifier is None:
            return {"DBInstances": [copy.deepcopy(i) for i in self.instances.values()]}
        if DBInstanceIdentifier not in self.instances:
            raise client_error("DBInstanceNotFound", "DescribeDBInstances")
        record = self.instances[DBInstanceIdentifier]
        self._tick(DBInstanceIdentifier, record, "DBInstanceStatus")
        return {"DBInstances": [copy.deepcopy(record)]}

    def describe_db_snapshots(
        self, DBInstanceIdentifier: Optional[str] = None, DBSnapshotIdentifier: Optional[str] = None
    ) -> Dict[str, Any]:
        self.calls.append(("describe_db_snapshots", DBInstanceIdentifier or DBSnapshotIdentifier))
        if DBSnapshotIdentifier is not None:
            if DBSnapshotIdentifier not in self.snapshots:
                raise client_error("DBSnapshotNotFound", "DescribeDBSnapshots")
            record = self.snapshots[DBSnapshotIdentifier]
            self._tick(DBSnapshotIdentifier, record, "Status")
            return {"DBSnapshots": [copy.deepcopy(record)]}
        items = [
            copy.deepcopy(s)
            for s in self.snapshots.values()
            if DBInstanceIdentifier is None or s["DBInstanceIdentifier"] == DBInstanceIdentifier
        ]
        return {"DBSnapshots": items}

    def restore_db_instance_from_db_snapshot(self, **params: Any) -> Dict[str, Any]:
        self.calls.append(("restore_db_instance_from_db_snapshot", params))
        snapshot = self.snapshots[params["DBSnapshotIdentifier"]]
        source = self.instances[snapshot["DBInstanceIdentifier"]]
        identifier = params["DBInstanceIdentifier"]
        record = rds_instance_dict(
            identifier=identifier,
            status="creating",
            engine=source["Engine"],
            address=f"{identifier}.abc123.us-east-1.rds.amazonaws.com",
            parameter_group="default.mysql5.7",
            security_groups=["sg-default"],
        )
        record["DBInstanceClass"] = params["DBInstanceClass"]
        record["MultiAZ"] = params["MultiAZ"]
        self.instances[identifier] = record
        self.tags[self.arn("db", identifier)] = list(params.get("Tags", []))
        self.pending[identifier] = self.describes_until_available
        return {"DBInstance": copy.deepcopy(record)}

    def modify_db_instance(self, **params: Any) -> Dict[str, Any]:
        self.calls.append(("modify_db_instance", params))
        record = self.instances[params["DBInstanceIdentifier"]]
        record["DBInstanceStatus"] = "modifying"
        record["DBParameterGroups"] = [
            {"DBParameterGroupName": params["DBParameterGroupName"], "ParameterApplyStatus": "in-sync"}
        ]
        record["VpcSecurityGroups"] = [
            {"VpcSecurityGroupId": sg, "Status": "active"} for sg in params["VpcSecurityGroupIds"]
        ]
        self.pending[params["DBInstanceIdentifier"]] = self.describes_until_available
        return {"DBInstance": copy.deepcopy(record)}

    def reboot_db_instance(self, **params: Any) -> Dict[str, Any]:
        self.calls.append(("reboot_db_instance", params))
        record = self.instances[params["DBInstanceIdentifier"]]
        record["DBInstanceStatus"] = "rebooting"
        self.pending[params["DBInstanceIdentifier"]] = self.describes_until_available
        return {"DBInstance": copy.deepcopy(record)}

    def delete_db_instance(self, **params: Any) -> Dict[str, Any]:
        self.calls.append(("delete_db_instance", params))
        record = self.instances.pop(params["DBInstanceIdentifier"])
        record["DBInstanceStatus"] = "deleting"
        return {"DBInstance": record}

    def create_db_snapshot(self, **params: Any) -> Dict[str, Any]:
        self.calls.append(("create_db_snapshot", params))
        identifier = params["DBSnapshotIdentifier"]
        record = rds_snapshot_dict(
            identifier=identifier, instance_identifier=params["DBInstanceIdentifier"], status="creating"
        )
        record["SnapshotType"] = "manual"
        self.snapshots[identifier] = record
        self.tags[self.arn("snapshot", identifier)] = list(params.get("Tags", []))
        self.pending[identifier] = self.describes_until_available
        return {"DBSnapshot": copy.deepcopy(record)}

    def delete_db_snapshot(self, **params: Any) -> Dict[str, Any]:
        self.calls.append(("delete_db_snapshot", params))
        record = self.snapshots.pop(params["DBSnapshotIdentifier"])
        record["Status"] = "deleted"
        return {"DBSnapshot": record}

    def list_tags_for_resource(self, ResourceName: str) -> Dict[str, Any]:
        self.calls.append(("list_tags_for_resource", ResourceName))
        return {"TagList": list(self.tags.get(ResourceName, []))}

    def called(self, method: str) -> List[Any]:
        """Return the recorded arguments of every call to a method."""
        return [args for name, args in self.calls if name == method]
